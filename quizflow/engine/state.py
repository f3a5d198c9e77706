"""
Traversal State for the questionnaire walker.

The walker state is an immutable pydantic model. Every reducer in this module
receives a state and returns a new one, so a session can be serialized,
stored and replayed outside of any UI runtime.
"""

from typing import Dict, List, Optional, Sequence, Tuple
from pydantic import BaseModel, Field
from enum import Enum

from quizflow.engine.models import Category, Condition, Option, Step


class WalkerStatus(str, Enum):
    """Lifecycle of a traversal session."""
    LOADING = "loading"
    AWAITING_SELECTION = "awaiting_selection"
    COMPLETED = "completed"


class BranchingStrategy(str, Enum):
    """How the walker picks the step after a selection."""
    LINEAR = "linear"            # Always the next step by order_index
    CONDITIONAL = "conditional"  # Follow a matching condition, else linear


class TransitionType(str, Enum):
    ADVANCED = "advanced"
    JUMPED = "jumped"
    COMPLETED = "completed"


class Transition(BaseModel):
    """What happened to the step pointer after a selection."""
    type: TransitionType
    from_step_id: str
    to_step_id: Optional[str] = None
    selections: Dict[str, str] = Field(default_factory=dict)


class WalkerState(BaseModel):
    """
    The state of one end-user walk through a category.

    Attributes:
        category: The resolved category (None while loading)
        steps: Steps of the category ordered by order_index
        current_index: Position of the step on screen
        options: Options of the current step
        selections: step_id -> option_id chosen so far
        status: loading, awaiting_selection or completed
        strategy: Branching strategy used by select_option
        conditions: Conditions targeting this category (conditional strategy only)
        history: Indices visited before the current one
        options_generation: Bumped on every move; option fetches started under
            an older generation are discarded
    """

    category: Optional[Category] = None
    steps: List[Step] = Field(default_factory=list)
    current_index: int = 0
    options: List[Option] = Field(default_factory=list)
    selections: Dict[str, str] = Field(default_factory=dict)
    status: WalkerStatus = WalkerStatus.LOADING
    strategy: BranchingStrategy = BranchingStrategy.LINEAR
    conditions: List[Condition] = Field(default_factory=list)
    history: List[int] = Field(default_factory=list)
    options_generation: int = 0

    @property
    def current_step(self) -> Optional[Step]:
        """The step on screen, or None when the index is out of range."""
        if 0 <= self.current_index < len(self.steps):
            return self.steps[self.current_index]
        return None

    @property
    def is_last_step(self) -> bool:
        return bool(self.steps) and self.current_index == len(self.steps) - 1


# ============================================================
# Reducers
# ============================================================

def start(
    category: Category,
    steps: Sequence[Step],
    strategy: BranchingStrategy = BranchingStrategy.LINEAR,
    conditions: Sequence[Condition] = (),
) -> WalkerState:
    """Build the initial awaiting-selection state once the steps resolved."""
    return WalkerState(
        category=category,
        steps=list(steps),
        current_index=0,
        status=WalkerStatus.AWAITING_SELECTION,
        strategy=strategy,
        conditions=list(conditions) if strategy == BranchingStrategy.CONDITIONAL else [],
    )


def apply_options(state: WalkerState, generation: int, options: Sequence[Option]) -> WalkerState:
    """
    Apply fetched options to the state.

    Returns the state unchanged when the fetch was started for a generation
    the walker has since moved away from.
    """
    if generation != state.options_generation:
        return state
    return state.model_copy(update={"options": list(options)})


def resolve_jump(state: WalkerState, option_id: str) -> Optional[int]:
    """Index of the step a condition on `option_id` routes to, if any."""
    if state.strategy != BranchingStrategy.CONDITIONAL:
        return None

    positions = {step.id: index for index, step in enumerate(state.steps)}
    for condition in state.conditions:
        if condition.option_id == option_id and condition.next_step_id in positions:
            return positions[condition.next_step_id]
    return None


def select_option(state: WalkerState, option_id: str) -> Tuple[WalkerState, Optional[Transition]]:
    """
    Record a selection for the current step and move on.

    Out-of-range indices and states that are not awaiting a selection are a
    precondition violation: the state is returned as-is with no transition.
    """
    step = state.current_step
    if state.status != WalkerStatus.AWAITING_SELECTION or step is None:
        return state, None

    selections = {**state.selections, step.id: option_id}
    jump_index = resolve_jump(state, option_id)

    if jump_index is None and state.is_last_step:
        completed = state.model_copy(update={
            "selections": selections,
            "status": WalkerStatus.COMPLETED,
        })
        return completed, Transition(
            type=TransitionType.COMPLETED,
            from_step_id=step.id,
            selections=dict(selections),
        )

    if jump_index is None:
        next_index = state.current_index + 1
        transition_type = TransitionType.ADVANCED
    else:
        next_index = jump_index
        transition_type = TransitionType.JUMPED

    moved = state.model_copy(update={
        "selections": selections,
        "current_index": next_index,
        "options": [],
        "history": state.history + [state.current_index],
        "options_generation": state.options_generation + 1,
    })
    return moved, Transition(
        type=transition_type,
        from_step_id=step.id,
        to_step_id=state.steps[next_index].id,
        selections=dict(selections),
    )


def go_to_previous(state: WalkerState) -> WalkerState:
    """
    Step back one screen. Selections are kept.

    At index 0, or outside awaiting_selection, the state is returned as-is.
    """
    if state.status != WalkerStatus.AWAITING_SELECTION or state.current_index == 0:
        return state

    if state.strategy == BranchingStrategy.CONDITIONAL and state.history:
        previous_index = state.history[-1]
    else:
        previous_index = max(0, state.current_index - 1)

    return state.model_copy(update={
        "current_index": previous_index,
        "options": [],
        "history": state.history[:-1],
        "options_generation": state.options_generation + 1,
    })
