"""
Category Registry for QuizFlow.

Lists and creates questionnaire categories and attaches display metadata
for the slugs the front page knows how to decorate.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass
import logging

from quizflow.engine.models import Category
from quizflow.storage.base import FlowStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryDisplay:
    """
    Display metadata for a category card.

    Attributes:
        icon: Icon name for known slugs, None otherwise
        tagline: Short line shown under the category name
    """
    icon: Optional[str]
    tagline: str


# Closed set of slugs with a dedicated icon
CATEGORY_ICONS: Dict[str, str] = {
    "laptop": "laptop",
    "tv": "monitor",
    "ac": "wind",
}


def display_for(category: Category) -> CategoryDisplay:
    """Display metadata for a category; unknown slugs get no icon."""
    return CategoryDisplay(
        icon=CATEGORY_ICONS.get(category.slug),
        tagline=f"Find the perfect {category.name.lower()}",
    )


class CategoryRegistry:
    """
    Registry of top-level categories.

    Usage:
        registry = CategoryRegistry(store)
        laptop = await registry.create("Laptop", "laptop")
        categories = await registry.list()
    """

    def __init__(self, store: FlowStore):
        self.store = store

    async def list(self) -> List[Category]:
        """List all categories."""
        return await self.store.list_categories()

    async def create(self, name: str, slug: str) -> Category:
        """
        Create a category.

        Raises:
            ConflictError: A category with this slug already exists
        """
        category = await self.store.create_category(name=name, slug=slug)
        logger.info(f"Created category: {category.slug} ({category.id})")
        return category
