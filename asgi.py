"""
asgi.py -- ASGI entry point for the Pennant backend API.

Run with:  uvicorn asgi:app --reload

The browser-facing edge is a separate process with its own entry point
(uvicorn edge.main:edge_app). It is not imported here: loading api.main
validates the backend's settings, and the edge must boot with none of the
backend's secrets present.
"""

from api.main import app

__all__ = ["app"]
