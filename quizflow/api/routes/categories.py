"""
Category API Routes.

Endpoints for listing and creating questionnaire categories.
"""

from fastapi import APIRouter, Depends, status
import logging

from quizflow.api.dependencies import get_registry
from quizflow.api.schemas import (
    CategoryCreateRequest,
    CategoryListResponse,
    CategoryResponse,
    ErrorResponse,
)
from quizflow.engine.models import Category
from quizflow.registry import CategoryRegistry, display_for


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Categories"])


def _to_response(category: Category) -> CategoryResponse:
    display = display_for(category)
    return CategoryResponse(
        id=category.id,
        name=category.name,
        slug=category.slug,
        icon=display.icon,
        tagline=display.tagline,
        flow_path=f"/flow/{category.slug}",
    )


@router.get(
    "/",
    response_model=CategoryListResponse,
)
async def list_categories(
    registry: CategoryRegistry = Depends(get_registry),
) -> CategoryListResponse:
    """List all categories with their display metadata."""
    categories = await registry.list()
    items = [_to_response(c) for c in categories]
    return CategoryListResponse(categories=items, total=len(items))


@router.post(
    "/",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Slug already taken"},
        502: {"model": ErrorResponse, "description": "Backing store failure"},
    },
)
async def create_category(
    request: CategoryCreateRequest,
    registry: CategoryRegistry = Depends(get_registry),
) -> CategoryResponse:
    """Create a new category. The slug becomes the questionnaire's URL key."""
    category = await registry.create(name=request.name, slug=request.slug)
    return _to_response(category)
