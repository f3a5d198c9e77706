"""
Engine package - Flow schema entities and traversal state.

The walker (`quizflow.engine.walker`) and projector
(`quizflow.engine.projector`) read from a FlowStore and are imported from
their modules directly.
"""

from quizflow.engine.models import Category, Step, Option, Condition
from quizflow.engine.state import (
    WalkerState,
    WalkerStatus,
    BranchingStrategy,
    Transition,
    TransitionType,
)

__all__ = [
    "Category",
    "Step",
    "Option",
    "Condition",
    "WalkerState",
    "WalkerStatus",
    "BranchingStrategy",
    "Transition",
    "TransitionType",
]
