"""REST API."""

from taskflow.api.router import router

__all__ = ["router"]
