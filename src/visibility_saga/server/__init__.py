"""FastAPI server adapter for visibility-saga.

Design intent:
- Keep runtime logic in `visibility_saga.saga` and `visibility_saga.visibility`
- Keep server-specific concerns (routing, CORS, request models) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from visibility_saga.server.app import create_app
