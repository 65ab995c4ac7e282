"""Tests for backlog processing and content event handling."""

from unittest.mock import MagicMock

import pytest
from llm_content.core import BacklogProcessor, ContentEventHandler, ConversionService
from llm_content.errors import RenderFailure
from llm_content.models.config import LlmContentConfig
from llm_content.models.events import EventType


@pytest.fixture
def renderer():
    """Create mock renderer that fails for item 3."""

    def render(item, view_mode):
        if item.id == 3:
            raise RuntimeError("broken template")
        return f"<p>Body of {item.id}</p>"

    mock = MagicMock()
    mock.render.side_effect = render
    return mock


@pytest.fixture
def service(store, renderer):
    config = LlmContentConfig(enabled_content_types=["article"])
    return ConversionService(store, config=config, renderer=renderer)


@pytest.fixture
def catalog(store, make_item):
    for item_id in range(1, 6):
        store.save_item(make_item(item_id))
    return store


class TestBacklogProcessor:
    """Tests for BacklogProcessor."""

    def test_converts_only_missing(self, service, catalog, renderer):
        catalog.upsert((2, "en"), "existing", generated_at=1)
        catalog.upsert((4, "en"), "existing", generated_at=1)
        renderer.render.side_effect = lambda item, view_mode: "<p>ok</p>"

        stats = BacklogProcessor(service).run()

        assert stats.total == 3
        assert stats.processed == 3
        assert stats.failed == 0
        assert catalog.get((2, "en")) == "existing"
        assert service.find_missing() == []

    def test_continues_past_failures(self, service, catalog):
        stats = BacklogProcessor(service).run(batch_size=2)

        assert stats.processed == 4
        assert stats.failed == 1
        assert service.find_missing() == [3]

    def test_force_regenerates_existing(self, service, catalog, renderer):
        catalog.upsert((1, "en"), "stale", generated_at=1)
        renderer.render.side_effect = lambda item, view_mode: "<p>fresh</p>"

        stats = BacklogProcessor(service).run(force=True)

        assert stats.processed == 5
        assert "fresh" in catalog.get((1, "en"))

    def test_limit(self, service, catalog):
        stats = BacklogProcessor(service).run(limit=2)

        assert stats.total == 2
        assert service.find_missing() == [3, 4, 5]

    def test_emits_events(self, service, catalog):
        events = []

        BacklogProcessor(service).run(batch_size=2, emit=events.append)

        types = [event.type for event in events]
        assert types[0] == EventType.STARTED
        assert types[-1] == EventType.COMPLETED
        assert types.count(EventType.ITEM_CONVERTED) == 4
        assert types.count(EventType.BATCH_PROGRESS) == 3
        failed = [event for event in events if event.type == EventType.ITEM_FAILED]
        assert [event.item_id for event in failed] == [3]
        assert "broken template" in failed[0].error
        assert events[-1].current == 5

    def test_items_gone_from_catalog_are_skipped(self, service, catalog):
        source = MagicMock()
        source.load_items.return_value = []

        stats = BacklogProcessor(service, item_source=source).run()

        assert stats.skipped == 5
        assert stats.processed == 0

    def test_rejects_bad_batch_size(self, service):
        with pytest.raises(ValueError):
            BacklogProcessor(service).run(batch_size=0)

    def test_empty_backlog(self, service):
        stats = BacklogProcessor(service).run()

        assert stats.total == 0
        assert stats.success_rate == 0.0


class TestContentEventHandler:
    """Tests for ContentEventHandler."""

    @pytest.fixture
    def handler(self, service):
        return ContentEventHandler(service)

    def test_saved_item_is_cataloged_and_generated(self, handler, store, make_item):
        document = handler.item_saved(make_item(1))

        assert store.get_item(1) is not None
        assert store.get((1, "en")) == document.body

    def test_unpublished_item_loses_its_language(self, handler, store, make_item):
        store.upsert((1, "en"), "en", generated_at=1)
        store.upsert((1, "fr"), "fr", generated_at=1)

        assert handler.item_saved(make_item(1, published=False)) is None

        assert store.get((1, "en")) is None
        assert store.get((1, "fr")) == "fr"

    def test_disabled_type_not_generated(self, handler, store, make_item):
        handler.item_saved(make_item(1, type="page"))

        assert store.get_item(1) is not None
        assert store.get((1, "en")) is None

    def test_auto_generate_off(self, store, renderer, make_item):
        config = LlmContentConfig(enabled_content_types=["article"], auto_generate=False)
        handler = ContentEventHandler(ConversionService(store, config=config, renderer=renderer))

        handler.item_saved(make_item(1))

        assert store.get((1, "en")) is None
        renderer.render.assert_not_called()

    def test_render_failure_keeps_prior_artifact(self, handler, store, make_item):
        store.upsert((3, "en"), "prior", generated_at=1)

        assert handler.item_saved(make_item(3)) is None

        assert store.get((3, "en")) == "prior"

    def test_item_deleted(self, handler, store, make_item):
        handler.item_saved(make_item(1))
        handler.item_saved(make_item(1, langcode="fr", default_translation=False))

        assert handler.item_deleted(1) == 2

        assert store.get((1, "en")) is None
        assert store.get((1, "fr")) is None
        assert store.get_item(1) is None

    def test_translation_deleted(self, handler, store, make_item):
        handler.item_saved(make_item(1))
        handler.item_saved(make_item(1, langcode="fr", default_translation=False))

        assert handler.translation_deleted(1, "fr") == 1

        assert store.get((1, "en")) is not None
        assert store.get_item(1, "fr") is None


class TestRenderFailure:
    def test_message(self):
        error = RenderFailure(7, "no markup")

        assert str(error) == "Render failed for item 7: no markup"
        assert error.item_id == 7
        assert error.reason == "no markup"
