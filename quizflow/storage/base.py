"""
Flow Schema store contract.

The walker, projector and registry only talk to this interface, so the
in-memory tables and the remote REST service are interchangeable.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from quizflow.engine.models import Category, Condition, Option, Step


class FlowStore(ABC):
    """
    Async access to categories, steps, options and conditions.

    Failures surface as NotFoundError, ConflictError, ValidationError or
    TransportError; nothing is retried.
    """

    # Reads

    @abstractmethod
    async def list_categories(self) -> List[Category]:
        """All categories."""

    @abstractmethod
    async def get_category(self, category_id: str) -> Category:
        """Category by id. Raises NotFoundError."""

    @abstractmethod
    async def get_category_by_slug(self, slug: str) -> Category:
        """Category by slug. Raises NotFoundError."""

    @abstractmethod
    async def list_steps(self, category_id: str) -> List[Step]:
        """Steps of a category ordered by order_index ascending."""

    @abstractmethod
    async def list_options(self, step_id: str) -> List[Option]:
        """Options attached to a step."""

    @abstractmethod
    async def list_conditions(self) -> List[Condition]:
        """All conditions, unfiltered."""

    # Inserts

    @abstractmethod
    async def create_category(self, name: str, slug: str) -> Category:
        """Insert a category. Raises ConflictError on a duplicate slug."""

    @abstractmethod
    async def create_step(
        self,
        category_id: str,
        title: str,
        description: str = "",
        order_index: Optional[int] = None,
        parent_option_id: Optional[str] = None,
        is_conditional: bool = False,
    ) -> Step:
        """Insert a step; order_index defaults to one past the current maximum."""

    @abstractmethod
    async def create_option(self, step_id: str, title: str, description: str = "") -> Option:
        """Insert an option for a step."""

    @abstractmethod
    async def create_condition(self, option_id: str, next_step_id: str) -> Condition:
        """Insert a condition. Both ends must belong to the same category."""

    async def close(self) -> None:
        """Release any held resources."""
