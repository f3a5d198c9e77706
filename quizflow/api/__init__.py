"""
API package - FastAPI routes and schemas.
"""

from quizflow.api.routes import builder, categories, flow

__all__ = ["builder", "categories", "flow"]
