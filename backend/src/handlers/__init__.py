"""Lambda handlers for the Feedback Survey API."""

from .api_handler import api_handler

__all__ = ["api_handler"]
