"""Sink & Destroy ASGI entrypoint (``uvicorn main:app``)."""

from __future__ import annotations

from src.sinkdestroy.main import app, create_app

__all__ = ["app", "create_app"]
