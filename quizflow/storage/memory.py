"""
In-Memory Storage for QuizFlow.

Provides lock-guarded tables for the flow entities plus per-session storage
for walker states and builder projectors.
"""

from typing import TYPE_CHECKING, Dict, List, Optional
from datetime import datetime
from dataclasses import dataclass, field
import asyncio
import uuid

from quizflow.engine.models import Category, Condition, Option, Step
from quizflow.engine.state import WalkerState
from quizflow.exceptions import ConflictError, NotFoundError, ValidationError
from quizflow.storage.base import FlowStore

if TYPE_CHECKING:
    from quizflow.engine.projector import GraphProjector


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryFlowStore(FlowStore):
    """
    Flow entities held in dicts keyed by id.

    Insertion order is preserved by the dicts, which keeps option listings
    and order_index ties stable across calls.
    """

    def __init__(self):
        self._categories: Dict[str, Category] = {}
        self._steps: Dict[str, Step] = {}
        self._options: Dict[str, Option] = {}
        self._conditions: Dict[str, Condition] = {}
        self._lock = asyncio.Lock()

    async def list_categories(self) -> List[Category]:
        async with self._lock:
            return list(self._categories.values())

    async def get_category(self, category_id: str) -> Category:
        async with self._lock:
            category = self._categories.get(category_id)
        if category is None:
            raise NotFoundError(f"Category '{category_id}' not found")
        return category

    async def get_category_by_slug(self, slug: str) -> Category:
        async with self._lock:
            category = next((c for c in self._categories.values() if c.slug == slug), None)
        if category is None:
            raise NotFoundError(f"Category '{slug}' not found")
        return category

    async def list_steps(self, category_id: str) -> List[Step]:
        async with self._lock:
            steps = [s for s in self._steps.values() if s.category_id == category_id]
        return sorted(steps, key=lambda s: s.order_index)

    async def list_options(self, step_id: str) -> List[Option]:
        async with self._lock:
            return [o for o in self._options.values() if o.step_id == step_id]

    async def list_conditions(self) -> List[Condition]:
        async with self._lock:
            return list(self._conditions.values())

    async def create_category(self, name: str, slug: str) -> Category:
        async with self._lock:
            if any(c.slug == slug for c in self._categories.values()):
                raise ConflictError(f"Category slug '{slug}' already exists")
            category = Category(id=_new_id(), name=name, slug=slug)
            self._categories[category.id] = category
            return category

    async def create_step(
        self,
        category_id: str,
        title: str,
        description: str = "",
        order_index: Optional[int] = None,
        parent_option_id: Optional[str] = None,
        is_conditional: bool = False,
    ) -> Step:
        async with self._lock:
            if category_id not in self._categories:
                raise NotFoundError(f"Category '{category_id}' not found")
            if parent_option_id is not None and parent_option_id not in self._options:
                raise NotFoundError(f"Option '{parent_option_id}' not found")

            taken = {s.order_index for s in self._steps.values() if s.category_id == category_id}
            if order_index is None:
                order_index = max(taken) + 1 if taken else 0
            elif order_index in taken:
                raise ConflictError(
                    f"order_index {order_index} is already used in category '{category_id}'"
                )

            step = Step(
                id=_new_id(),
                category_id=category_id,
                title=title,
                description=description,
                order_index=order_index,
                parent_option_id=parent_option_id,
                is_conditional=is_conditional,
            )
            self._steps[step.id] = step
            return step

    async def create_option(self, step_id: str, title: str, description: str = "") -> Option:
        async with self._lock:
            if step_id not in self._steps:
                raise NotFoundError(f"Step '{step_id}' not found")
            option = Option(id=_new_id(), step_id=step_id, title=title, description=description)
            self._options[option.id] = option
            return option

    async def create_condition(self, option_id: str, next_step_id: str) -> Condition:
        async with self._lock:
            option = self._options.get(option_id)
            if option is None:
                raise NotFoundError(f"Option '{option_id}' not found")
            target = self._steps.get(next_step_id)
            if target is None:
                raise NotFoundError(f"Step '{next_step_id}' not found")

            source = self._steps[option.step_id]
            if source.category_id != target.category_id:
                raise ValidationError(
                    "Condition crosses categories",
                    detail=f"option '{option_id}' and step '{next_step_id}' "
                           f"belong to different categories",
                )

            condition = Condition(id=_new_id(), option_id=option_id, next_step_id=next_step_id)
            self._conditions[condition.id] = condition
            return condition

    def __len__(self) -> int:
        return len(self._categories)


@dataclass
class StoredSession:
    """A stored walker session."""
    session_id: str
    state: WalkerState
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


class SessionStorage:
    """
    In-memory storage for walker sessions.

    Each session is owned by the client that created it; nothing is shared
    between sessions.
    """

    def __init__(self):
        self._sessions: Dict[str, StoredSession] = {}
        self._session_locks: Dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    def lock(self, session_id: str) -> asyncio.Lock:
        """
        Lock serializing read-modify-write cycles on one session.

        Hold it from `get` through `save` so overlapping requests apply in
        turn instead of overwriting each other. Unknown ids get a fresh,
        unshared lock.
        """
        return self._session_locks.get(session_id) or asyncio.Lock()

    async def create(self, state: WalkerState) -> StoredSession:
        async with self._lock:
            stored = StoredSession(session_id=_new_id(), state=state)
            self._sessions[stored.session_id] = stored
            self._session_locks[stored.session_id] = asyncio.Lock()
            return stored

    async def get(self, session_id: str) -> Optional[StoredSession]:
        """Get a session by ID."""
        async with self._lock:
            return self._sessions.get(session_id)

    async def save(self, session_id: str, state: WalkerState) -> Optional[StoredSession]:
        """Replace the state of an existing session."""
        async with self._lock:
            stored = self._sessions.get(session_id)
            if stored is None:
                return None
            stored.state = state
            stored.updated_at = datetime.now()
            return stored

    async def delete(self, session_id: str) -> bool:
        async with self._lock:
            self._session_locks.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


class ProjectorStorage:
    """
    In-memory storage for builder projectors, one per category.

    Local connections live only here and are lost on restart.
    """

    def __init__(self):
        self._projectors: Dict[str, "GraphProjector"] = {}
        self._lock = asyncio.Lock()

    async def get(self, category_id: str) -> Optional["GraphProjector"]:
        async with self._lock:
            return self._projectors.get(category_id)

    async def put(self, category_id: str, projector: "GraphProjector") -> "GraphProjector":
        async with self._lock:
            self._projectors[category_id] = projector
            return projector

    def __len__(self) -> int:
        return len(self._projectors)

