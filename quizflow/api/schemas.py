"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
import re

from quizflow.engine.models import Category, Option, Step
from quizflow.engine.projector import FlowEdge, FlowNode
from quizflow.engine.state import BranchingStrategy, Transition, WalkerStatus


SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


# ============================================================
# Category Schemas
# ============================================================

class CategoryCreateRequest(BaseModel):
    """Request to create a new category."""
    name: str = Field(..., min_length=1, description="Display name")
    slug: str = Field(..., min_length=1, description="URL key, unique across categories")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name cannot be blank")
        return value

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, value: str) -> str:
        value = value.strip().lower()
        if not SLUG_PATTERN.match(value):
            raise ValueError("slug must be lowercase letters, digits and single hyphens")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Laptop",
                "slug": "laptop",
            }
        }


class CategoryResponse(BaseModel):
    """A category with its display metadata."""
    id: str
    name: str
    slug: str
    icon: Optional[str] = Field(None, description="Icon name, absent for unknown slugs")
    tagline: str
    flow_path: str = Field(..., description="Route of the questionnaire")


class CategoryListResponse(BaseModel):
    """Response listing all categories."""
    categories: List[CategoryResponse]
    total: int


# ============================================================
# Traversal Session Schemas
# ============================================================

class SessionCreateRequest(BaseModel):
    """Request to start walking a category."""
    strategy: Optional[BranchingStrategy] = Field(
        None,
        description="Branching strategy (defaults to the server setting)",
    )


class SelectOptionRequest(BaseModel):
    """Selection of an option on the current step."""
    option_id: str = Field(..., description="ID of the chosen option")


class SessionResponse(BaseModel):
    """Current state of a traversal session."""
    session_id: str
    status: WalkerStatus
    strategy: BranchingStrategy
    category: Optional[Category]
    current_index: int
    total_steps: int
    current_step: Optional[Step]
    options: List[Option]
    selections: Dict[str, str]
    can_go_back: bool
    transition: Optional[Transition] = Field(
        None,
        description="Transition produced by the request, if any",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "7d0c4e1a-...",
                "status": "awaiting_selection",
                "strategy": "linear",
                "category": {"id": "c1", "name": "Laptop", "slug": "laptop"},
                "current_index": 1,
                "total_steps": 2,
                "current_step": {
                    "id": "s2",
                    "category_id": "c1",
                    "title": "What is your budget?",
                    "description": "",
                    "order_index": 1,
                    "parent_option_id": None,
                    "is_conditional": False,
                },
                "options": [{"id": "o4", "step_id": "s2", "title": "Under $800", "description": ""}],
                "selections": {"s1": "o1"},
                "can_go_back": True,
                "transition": {
                    "type": "advanced",
                    "from_step_id": "s1",
                    "to_step_id": "s2",
                    "selections": {"s1": "o1"},
                },
            }
        }


# ============================================================
# Builder Schemas
# ============================================================

class GraphResponse(BaseModel):
    """Projected node/edge graph of a category."""
    category_id: str
    nodes: List[FlowNode]
    edges: List[FlowEdge]
    mermaid_diagram: Optional[str] = Field(None, description="Mermaid diagram of the graph")


class ConnectRequest(BaseModel):
    """A connection drawn in the editor from an option handle to a step."""
    source_handle: str = Field(..., description="Option id the edge leaves from")
    target: str = Field(..., description="Step id the edge points at")


class StepCreateRequest(BaseModel):
    """Request to add a step to a category."""
    title: str = Field(..., min_length=1)
    description: str = ""
    order_index: Optional[int] = Field(
        None, ge=0, description="Position (defaults to after the last step)"
    )
    parent_option_id: Optional[str] = None
    is_conditional: bool = False


class OptionCreateRequest(BaseModel):
    """Request to add an option to a step."""
    title: str = Field(..., min_length=1)
    description: str = ""


class ConditionCreateRequest(BaseModel):
    """Request to persist a branch from an option to a step."""
    option_id: str
    next_step_id: str


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
