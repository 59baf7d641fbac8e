"""
Unit Test Fixtures.

Fixtures for unit tests - all external dependencies are mocked.
Unit tests should be fast and isolated, never touching real databases.
"""

from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from notesapp.backend.models.note import Note


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Usage:
        def test_repository(mock_db_session: AsyncMock):
            repo = NoteRepository(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture
def make_note() -> Any:
    """
    Build detached Note rows.

    Usage:
        note = make_note(id=3, user_id="user-1", image_url="images/x.png")
    """

    def _make(**overrides: Any) -> Note:
        values: dict[str, Any] = {
            "id": 1,
            "user_id": "user-1",
            "title": "Groceries",
            "content": "Milk, eggs",
            "image_url": None,
            "created_at": datetime(2026, 1, 1, 12, 0, 0),
            "updated_at": datetime(2026, 1, 1, 12, 0, 0),
        }
        values.update(overrides)
        return Note(**values)

    return _make
