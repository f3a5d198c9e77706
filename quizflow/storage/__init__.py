"""
Storage package - Flow entity stores and session storage.
"""

from quizflow.storage.base import FlowStore
from quizflow.storage.memory import (
    InMemoryFlowStore,
    ProjectorStorage,
    SessionStorage,
    StoredSession,
)
from quizflow.storage.rest import RestFlowStore

__all__ = [
    "FlowStore",
    "InMemoryFlowStore",
    "RestFlowStore",
    "SessionStorage",
    "StoredSession",
    "ProjectorStorage",
]
