"""HTTP surface: FastAPI router mounting and the app factory."""

from autocrud.api.app import create_app
from autocrud.api.router import error_response, mount, request_context, status_for

__all__ = ["create_app", "error_response", "mount", "request_context", "status_for"]
