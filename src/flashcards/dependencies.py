from __future__ import annotations

from fastapi import Request

from .store import Store


def get_store(request: Request) -> Store:
    """Return the store created by `create_app` for this application."""
    return request.app.state.store
