"""
Flow API Routes.

Endpoints that drive an end user's walk through a category. Each session
holds one serialized WalkerState; every request resumes a walker from it,
applies one operation and stores the new state.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from quizflow.api.dependencies import get_session_storage, get_store
from quizflow.api.schemas import (
    ErrorResponse,
    SelectOptionRequest,
    SessionCreateRequest,
    SessionResponse,
)
from quizflow.config import settings
from quizflow.engine.state import BranchingStrategy, Transition, WalkerStatus
from quizflow.engine.walker import TraversalWalker
from quizflow.storage.base import FlowStore
from quizflow.storage.memory import SessionStorage, StoredSession


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flow", tags=["Flow"])


def _session_response(stored: StoredSession, transition: Optional[Transition] = None) -> SessionResponse:
    state = stored.state
    return SessionResponse(
        session_id=stored.session_id,
        status=state.status,
        strategy=state.strategy,
        category=state.category,
        current_index=state.current_index,
        total_steps=len(state.steps),
        current_step=state.current_step,
        options=state.options,
        selections=state.selections,
        can_go_back=state.status == WalkerStatus.AWAITING_SELECTION and state.current_index > 0,
        transition=transition,
    )


async def _get_session(sessions: SessionStorage, session_id: str) -> StoredSession:
    stored = await sessions.get(session_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return stored


@router.post(
    "/{category_slug}/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown category slug"},
        502: {"model": ErrorResponse, "description": "Backing store failure"},
    },
)
async def start_session(
    category_slug: str,
    request: Optional[SessionCreateRequest] = None,
    store: FlowStore = Depends(get_store),
    sessions: SessionStorage = Depends(get_session_storage),
) -> SessionResponse:
    """
    Start walking the questionnaire of a category.

    Resolves the slug, loads the ordered steps and the options of the first
    step.
    """
    strategy = (request.strategy if request else None) or BranchingStrategy(settings.BRANCHING_STRATEGY)

    walker = TraversalWalker(store, strategy=strategy)
    await walker.initialize(category_slug)
    await walker.load_options_for_current_step()

    stored = await sessions.create(walker.state)
    logger.info(f"Started session {stored.session_id} for '{category_slug}' ({strategy.value})")
    return _session_response(stored)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_session(
    session_id: str,
    sessions: SessionStorage = Depends(get_session_storage),
) -> SessionResponse:
    """Get the current state of a session."""
    return _session_response(await _get_session(sessions, session_id))


@router.post(
    "/sessions/{session_id}/select",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def select_option(
    session_id: str,
    request: SelectOptionRequest,
    store: FlowStore = Depends(get_store),
    sessions: SessionStorage = Depends(get_session_storage),
) -> SessionResponse:
    """
    Select an option on the current step.

    Moves to the next step, or completes the session on the last one. A
    selection on a completed or empty session changes nothing. Overlapping
    requests on one session are applied one after the other.
    """
    async with sessions.lock(session_id):
        stored = await _get_session(sessions, session_id)

        walker = TraversalWalker(store, state=stored.state)
        transition = await walker.select_option(request.option_id)
        if transition is not None and walker.state.status == WalkerStatus.AWAITING_SELECTION:
            await walker.load_options_for_current_step()

        stored = await sessions.save(session_id, walker.state)
    return _session_response(stored, transition)


@router.post(
    "/sessions/{session_id}/previous",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def go_to_previous(
    session_id: str,
    store: FlowStore = Depends(get_store),
    sessions: SessionStorage = Depends(get_session_storage),
) -> SessionResponse:
    """Go back one step. Recorded selections are kept."""
    async with sessions.lock(session_id):
        stored = await _get_session(sessions, session_id)

        walker = TraversalWalker(store, state=stored.state)
        before = walker.state
        if walker.go_to_previous() is not before:
            await walker.load_options_for_current_step()

        stored = await sessions.save(session_id, walker.state)
    return _session_response(stored)


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def abandon_session(
    session_id: str,
    sessions: SessionStorage = Depends(get_session_storage),
):
    """Abandon a session."""
    async with sessions.lock(session_id):
        deleted = await sessions.delete(session_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    logger.info(f"Abandoned session {session_id}")
