"""
Dependency wiring for the API.

Stores and session storages are process-wide singletons created on first
use; tests swap them through `app.dependency_overrides`.
"""

from functools import lru_cache
from fastapi import Depends

from quizflow.config import settings
from quizflow.registry import CategoryRegistry
from quizflow.storage.base import FlowStore
from quizflow.storage.memory import InMemoryFlowStore, ProjectorStorage, SessionStorage
from quizflow.storage.rest import RestFlowStore


@lru_cache()
def get_store() -> FlowStore:
    if settings.STORE_BACKEND == "rest":
        if not settings.REST_URL:
            raise RuntimeError("REST_URL must be set when STORE_BACKEND is 'rest'")
        return RestFlowStore(
            base_url=settings.REST_URL,
            api_key=settings.REST_API_KEY,
            timeout=settings.REST_TIMEOUT,
        )
    return InMemoryFlowStore()


# In-memory session storage must be a singleton so sessions survive across requests
@lru_cache()
def get_session_storage() -> SessionStorage:
    return SessionStorage()


@lru_cache()
def get_projector_storage() -> ProjectorStorage:
    return ProjectorStorage()


def get_registry(store: FlowStore = Depends(get_store)) -> CategoryRegistry:
    return CategoryRegistry(store)
