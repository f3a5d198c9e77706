"""
Async Traversal Walker.

Drives one end-user session through a category's steps. The walker owns an
immutable WalkerState and swaps it for the reducer output after every
operation; store reads are the only awaits.
"""

from typing import Awaitable, Callable, Dict, List, Optional
import logging

from quizflow.engine.models import Condition, Step
from quizflow.engine import state as reducers
from quizflow.engine.state import BranchingStrategy, Transition, TransitionType, WalkerState
from quizflow.storage.base import FlowStore


logger = logging.getLogger(__name__)

CompletionHook = Callable[[Dict[str, str]], Awaitable[None]]


async def log_selections(selections: Dict[str, str]) -> None:
    """Default completion hook; recommendation scoring plugs in here."""
    logger.info(f"Questionnaire completed with selections: {selections}")


class TraversalWalker:
    """
    Sequential questionnaire walker.

    Usage:
        walker = TraversalWalker(store)
        await walker.initialize("laptop")
        await walker.load_options_for_current_step()
        transition = await walker.select_option(option_id)
    """

    def __init__(
        self,
        store: FlowStore,
        strategy: BranchingStrategy = BranchingStrategy.LINEAR,
        state: Optional[WalkerState] = None,
        on_complete: Optional[CompletionHook] = log_selections,
    ):
        """
        Initialize the walker.

        Args:
            store: Flow store to read steps, options and conditions from
            strategy: Branching strategy (ignored when resuming from `state`)
            state: Existing state to resume a stored session
            on_complete: Awaited with the selections when the walk completes
        """
        self.store = store
        self.state = state or WalkerState(strategy=strategy)
        self.on_complete = on_complete

    async def initialize(self, category_slug: str) -> WalkerState:
        """
        Resolve the slug to its category and ordered steps.

        Raises NotFoundError for an unknown slug; the walker then stays in
        the loading state.
        """
        category = await self.store.get_category_by_slug(category_slug)
        steps = await self.store.list_steps(category.id)

        conditions: List[Condition] = []
        if self.state.strategy == BranchingStrategy.CONDITIONAL:
            conditions = await self._conditions_for(steps)

        self.state = reducers.start(category, steps, self.state.strategy, conditions)
        logger.info(f"Walker initialized for '{category_slug}' with {len(steps)} steps")
        return self.state

    async def _conditions_for(self, steps: List[Step]) -> List[Condition]:
        step_ids = {step.id for step in steps}
        return [c for c in await self.store.list_conditions() if c.next_step_id in step_ids]

    async def load_options_for_current_step(self) -> WalkerState:
        """
        Fetch the options of the current step.

        A result that resolves after the walker moved to another step is
        discarded. A step without options is valid and simply offers none.
        """
        step = self.state.current_step
        if step is None:
            return self.state

        generation = self.state.options_generation
        options = await self.store.list_options(step.id)

        updated = reducers.apply_options(self.state, generation, options)
        if updated is self.state:
            logger.debug(f"Discarded stale options for step '{step.id}' (generation {generation})")
        self.state = updated
        return self.state

    async def select_option(self, option_id: str) -> Optional[Transition]:
        """Record the selection for the current step and move on."""
        self.state, transition = reducers.select_option(self.state, option_id)

        if transition is None:
            logger.debug(f"Ignored selection '{option_id}' in state '{self.state.status.value}'")
        elif transition.type == TransitionType.COMPLETED and self.on_complete is not None:
            await self.on_complete(transition.selections)
        return transition

    def go_to_previous(self) -> WalkerState:
        """Go back one step; a no-op on the first step."""
        self.state = reducers.go_to_previous(self.state)
        return self.state
