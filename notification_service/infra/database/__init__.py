"""Database infrastructure: engine and session lifecycle."""

from __future__ import annotations

from .session import Database, create_session_factory

__all__ = ["Database", "create_session_factory"]
