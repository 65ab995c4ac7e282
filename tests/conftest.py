"""Shared fixtures for llm_content tests."""

import logging
from datetime import datetime, timezone

import pytest
from llm_content.models.content import ContentItem
from llm_content.storage import ArtifactStore

CREATED = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)


def _make_item(item_id=1, **overrides):
    fields = {
        "id": item_id,
        "langcode": "en",
        "published": True,
        "type": "article",
        "title": f"Item {item_id}",
        "created": CREATED,
    }
    fields.update(overrides)
    return ContentItem(**fields)


@pytest.fixture
def make_item():
    """Factory for published English articles; any field can be overridden."""
    return _make_item


@pytest.fixture
def store(tmp_path):
    """Create an artifact store backed by a temporary SQLite file."""
    artifact_store = ArtifactStore(tmp_path / "llm_content.db")
    yield artifact_store
    artifact_store.close()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo CLI logging setup so captured streams are not reused."""
    yield
    package_logger = logging.getLogger("llm_content")
    for handler in list(package_logger.handlers):
        handler.close()
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
