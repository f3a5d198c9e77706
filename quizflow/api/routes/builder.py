"""
Builder API Routes.

Endpoints for the authoring surface: the projected node/edge graph of a
category, local connections drawn in the editor, and the write path for
steps, options and conditions.
"""

from fastapi import APIRouter, Depends, status
import logging

from quizflow.api.dependencies import get_projector_storage, get_store
from quizflow.api.schemas import (
    ConditionCreateRequest,
    ConnectRequest,
    ErrorResponse,
    GraphResponse,
    OptionCreateRequest,
    StepCreateRequest,
)
from quizflow.config import settings
from quizflow.engine.models import Condition, Option, Step
from quizflow.engine.projector import GraphProjector
from quizflow.exceptions import NotFoundError, ValidationError
from quizflow.storage.base import FlowStore
from quizflow.storage.memory import ProjectorStorage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/builder", tags=["Builder"])


async def _get_projector(
    category_id: str,
    store: FlowStore,
    projectors: ProjectorStorage,
    refresh: bool = False,
) -> GraphProjector:
    """Return the category's projector, projecting it on first use."""
    projector = await projectors.get(category_id)
    if projector is None:
        await store.get_category(category_id)
        projector = GraphProjector(store, spacing=settings.NODE_SPACING, row_y=settings.NODE_ROW_Y)
        refresh = True
    if refresh:
        await projector.load(category_id)
        await projectors.put(category_id, projector)
    return projector


async def _reproject(category_id: str, projectors: ProjectorStorage) -> None:
    """Refresh an already open projection after an authoring write."""
    projector = await projectors.get(category_id)
    if projector is not None:
        await projector.load(category_id)


def _graph_response(category_id: str, projector: GraphProjector) -> GraphResponse:
    return GraphResponse(
        category_id=category_id,
        nodes=projector.graph.nodes,
        edges=projector.graph.edges,
        mermaid_diagram=projector.to_mermaid(),
    )


async def _step_in_category(store: FlowStore, category_id: str, step_id: str) -> Step:
    steps = await store.list_steps(category_id)
    step = next((s for s in steps if s.id == step_id), None)
    if step is None:
        raise NotFoundError(f"Step '{step_id}' not found in category '{category_id}'")
    return step


# ============================================================
# Graph Endpoints
# ============================================================

@router.get(
    "/{category_id}/graph",
    response_model=GraphResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_graph(
    category_id: str,
    refresh: bool = False,
    store: FlowStore = Depends(get_store),
    projectors: ProjectorStorage = Depends(get_projector_storage),
) -> GraphResponse:
    """
    Get the node/edge projection of a category.

    Pass `refresh=true` to re-read the store; local connections are kept.
    """
    projector = await _get_projector(category_id, store, projectors, refresh=refresh)
    return _graph_response(category_id, projector)


@router.post(
    "/{category_id}/connect",
    response_model=GraphResponse,
    responses={404: {"model": ErrorResponse}},
)
async def connect(
    category_id: str,
    request: ConnectRequest,
    store: FlowStore = Depends(get_store),
    projectors: ProjectorStorage = Depends(get_projector_storage),
) -> GraphResponse:
    """
    Add an edge drawn in the editor.

    The edge is kept in this builder session only and is not written to the
    store; use `POST /builder/{category_id}/conditions` to persist a branch.
    """
    projector = await _get_projector(category_id, store, projectors)
    projector.connect(request.source_handle, request.target)
    logger.info(f"Local edge {request.source_handle} -> {request.target} in '{category_id}'")
    return _graph_response(category_id, projector)


# ============================================================
# Authoring Endpoints
# ============================================================

@router.post(
    "/{category_id}/steps",
    response_model=Step,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "order_index already used"},
    },
)
async def create_step(
    category_id: str,
    request: StepCreateRequest,
    store: FlowStore = Depends(get_store),
    projectors: ProjectorStorage = Depends(get_projector_storage),
) -> Step:
    """Add a step to a category."""
    step = await store.create_step(
        category_id=category_id,
        title=request.title,
        description=request.description,
        order_index=request.order_index,
        parent_option_id=request.parent_option_id,
        is_conditional=request.is_conditional,
    )
    logger.info(f"Created step {step.id} at order_index {step.order_index} in '{category_id}'")
    await _reproject(category_id, projectors)
    return step


@router.post(
    "/{category_id}/steps/{step_id}/options",
    response_model=Option,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def create_option(
    category_id: str,
    step_id: str,
    request: OptionCreateRequest,
    store: FlowStore = Depends(get_store),
    projectors: ProjectorStorage = Depends(get_projector_storage),
) -> Option:
    """Add an option to a step of the category."""
    await _step_in_category(store, category_id, step_id)
    option = await store.create_option(step_id, title=request.title, description=request.description)
    await _reproject(category_id, projectors)
    return option


@router.post(
    "/{category_id}/conditions",
    response_model=Condition,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse, "description": "Condition crosses categories"},
    },
)
async def create_condition(
    category_id: str,
    request: ConditionCreateRequest,
    store: FlowStore = Depends(get_store),
    projectors: ProjectorStorage = Depends(get_projector_storage),
) -> Condition:
    """Persist a branch from an option to a step of this category."""
    await store.get_category(category_id)
    steps = await store.list_steps(category_id)
    if request.next_step_id not in {s.id for s in steps}:
        raise ValidationError(
            "Condition target outside category",
            detail=f"step '{request.next_step_id}' is not part of category '{category_id}'",
        )

    condition = await store.create_condition(request.option_id, request.next_step_id)
    logger.info(f"Created condition {condition.option_id} -> {condition.next_step_id}")
    await _reproject(category_id, projectors)
    return condition
