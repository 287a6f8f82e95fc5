"""Repository exceptions.

Raised instead of returning sentinels where a missing row means the caller's
state is inconsistent (for example updating a record that was never created).
"""
from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryError):
    """A row expected to exist was not found.

    Attributes:
        model_name: Name of the mapped class
        record_id: Primary key that was looked up
    """

    def __init__(self, model_name: str, record_id: Any) -> None:
        self.model_name = model_name
        self.record_id = record_id
        super().__init__(f"{model_name} not found with id={record_id!s}")
