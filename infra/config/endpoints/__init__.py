"""API endpoints."""

from .frontend import Frontend

__all__ = ["Frontend"]
