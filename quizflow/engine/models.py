"""
Flow Schema entities.

The relational shape shared by the traversal walker and the graph projector.
Identifiers are opaque strings handed out by the backing store.
"""

from typing import Optional
from pydantic import BaseModel, Field


class Category(BaseModel):
    """Top-level questionnaire grouping, addressed externally by its slug."""
    id: str
    name: str
    slug: str


class Step(BaseModel):
    """
    One screen of the questionnaire.

    Attributes:
        order_index: Position within the category (unique per category)
        parent_option_id: When set, the step is a branch reachable via that option
        is_conditional: Reachable only through a condition or parent option
    """
    id: str
    category_id: str
    title: str
    description: Optional[str] = ""
    order_index: int
    parent_option_id: Optional[str] = None
    is_conditional: bool = False


class Option(BaseModel):
    """A selectable choice attached to a step."""
    id: str
    step_id: str
    title: str
    description: Optional[str] = ""


class Condition(BaseModel):
    """Directed edge: picking `option_id` routes traversal to `next_step_id`."""
    id: str
    option_id: str
    next_step_id: str = Field(..., description="Step the option jumps to")
