"""Common utilities and fixtures for tests."""

from typing import Any, Iterator, Optional

import pytest
from mockfirestore import CollectionReference, MockFirestore, Query


def _where_with_filter(
    self: Any,
    field_path: Optional[str] = None,
    op_string: Optional[str] = None,
    value: Any = None,
    filter: Any = None,
) -> Any:
    if filter:
        return self._where(filter.field_path, filter.op_string, filter.value)
    return self._where(field_path, op_string, value)


def patch_mockfirestore() -> None:
    """Make mockfirestore's ``where`` accept ``filter=FieldFilter(...)``."""
    for cls in (CollectionReference, Query):
        if not hasattr(cls, "_where"):
            cls._where = cls.where
            cls.where = _where_with_filter


@pytest.fixture
def mock_db() -> Iterator[MockFirestore]:
    """An empty, patched in-memory Firestore."""
    patch_mockfirestore()
    db = MockFirestore()
    yield db
    db.reset()
