"""Tests for the SQLite artifact store."""

from datetime import datetime, timedelta, timezone

import pytest
from llm_content.errors import StorageFailure
from llm_content.storage import ArtifactStore


class TestDocuments:
    """Tests for document reads and writes."""

    def test_get_missing_returns_none(self, store):
        assert store.get((1, "en")) is None
        assert store.get_document((1, "en")) is None

    def test_upsert_and_get(self, store):
        store.upsert((1, "en"), "# One", generated_at=100)

        assert store.get((1, "en")) == "# One"
        document = store.get_document((1, "en"))
        assert document.generated_at == 100
        assert document.key == (1, "en")

    def test_upsert_replaces(self, store):
        store.upsert((1, "en"), "old", generated_at=100)
        store.upsert((1, "en"), "new", generated_at=200)

        document = store.get_document((1, "en"))
        assert document.body == "new"
        assert document.generated_at == 200
        assert store.count_documents() == 1

    def test_languages_are_separate_keys(self, store):
        store.upsert((1, "en"), "english", generated_at=1)
        store.upsert((1, "fr"), "french", generated_at=1)

        assert store.get((1, "en")) == "english"
        assert store.get((1, "fr")) == "french"

    def test_persists_across_connections(self, tmp_path):
        database = tmp_path / "nested" / "store.db"
        with ArtifactStore(database) as first:
            first.upsert((7, "en"), "kept", generated_at=1)

        with ArtifactStore(database) as second:
            assert second.get((7, "en")) == "kept"


class TestDelete:
    """Tests for deletion scoping."""

    @pytest.fixture
    def populated(self, store):
        store.upsert((1, "en"), "1 en", generated_at=1)
        store.upsert((1, "fr"), "1 fr", generated_at=1)
        store.upsert((2, "en"), "2 en", generated_at=1)
        return store

    def test_delete_one_language(self, populated):
        assert populated.delete(1, "fr") == 1

        assert populated.get((1, "fr")) is None
        assert populated.get((1, "en")) == "1 en"
        assert populated.get((2, "en")) == "2 en"

    def test_delete_all_languages(self, populated):
        assert populated.delete(1) == 2

        assert populated.get((1, "en")) is None
        assert populated.get((1, "fr")) is None
        assert populated.get((2, "en")) == "2 en"

    def test_delete_absent_is_noop(self, populated):
        assert populated.delete(99) == 0
        assert populated.count_documents() == 3


class TestBacklog:
    """Tests for find_missing."""

    @pytest.fixture
    def catalog(self, store, make_item):
        for item_id in range(1, 6):
            store.save_item(make_item(item_id))
        store.save_item(make_item(6, published=False))
        store.save_item(make_item(7, type="page"))
        store.save_item(make_item(1, langcode="fr", default_translation=False))
        return store

    def test_all_missing(self, catalog):
        assert catalog.find_missing(["article"]) == [1, 2, 3, 4, 5]

    def test_excludes_items_with_documents(self, catalog):
        catalog.upsert((2, "en"), "x", generated_at=1)
        catalog.upsert((4, "en"), "x", generated_at=1)

        assert catalog.find_missing(["article"]) == [1, 3, 5]

    def test_translation_does_not_count(self, catalog):
        catalog.upsert((1, "fr"), "x", generated_at=1)

        assert 1 in catalog.find_missing(["article"])

    def test_limit(self, catalog):
        assert catalog.find_missing(["article"], limit=2) == [1, 2]

    def test_multiple_types(self, catalog):
        assert catalog.find_missing(["article", "page"]) == [1, 2, 3, 4, 5, 7]

    def test_empty_types(self, catalog):
        assert catalog.find_missing([]) == []

    def test_list_eligible_ignores_documents(self, catalog):
        catalog.upsert((2, "en"), "x", generated_at=1)

        assert catalog.list_eligible(["article"]) == [1, 2, 3, 4, 5]


class TestListAll:
    """Tests for list_all."""

    def test_ordered_by_id_then_language(self, store, make_item):
        store.save_item(make_item(2))
        store.save_item(make_item(1))
        store.save_item(make_item(1, langcode="fr", default_translation=False))
        store.upsert((2, "en"), "2 en", generated_at=1)
        store.upsert((1, "fr"), "1 fr", generated_at=1)
        store.upsert((1, "en"), "1 en", generated_at=1)

        assert store.list_all(["article"]) == ["1 en", "1 fr", "2 en"]

    def test_excludes_unpublished_and_other_types(self, store, make_item):
        store.save_item(make_item(1))
        store.save_item(make_item(2, published=False))
        store.save_item(make_item(3, type="page"))
        for item_id in (1, 2, 3):
            store.upsert((item_id, "en"), f"doc {item_id}", generated_at=1)

        assert store.list_all(["article"]) == ["doc 1"]

    def test_limit_is_capped(self, store, make_item):
        for item_id in range(1, 4):
            store.save_item(make_item(item_id))
            store.upsert((item_id, "en"), f"doc {item_id}", generated_at=1)

        assert store.list_all(["article"], limit=2) == ["doc 1", "doc 2"]
        assert len(store.list_all(["article"], limit=10_000)) == 3

    def test_hard_limit(self, make_item):
        store = ArtifactStore(":memory:")
        for item_id in range(1, ArtifactStore.HARD_LIMIT + 6):
            store.save_item(make_item(item_id))
            store.upsert((item_id, "en"), "x", generated_at=1)

        assert len(store.list_all(["article"], limit=10_000)) == ArtifactStore.HARD_LIMIT


class TestCatalog:
    """Tests for the item catalog."""

    def test_save_and_get_item(self, store, make_item):
        revised = datetime(2024, 2, 1, tzinfo=timezone.utc)
        item = make_item(5, title="Five", path="/five", revised=revised)
        store.save_item(item)

        assert store.get_item(5) == item

    def test_save_item_updates(self, store, make_item):
        store.save_item(make_item(5, title="Old"))
        store.save_item(make_item(5, title="New"))

        assert store.get_item(5).title == "New"

    def test_get_item_prefers_default_translation(self, store, make_item):
        store.save_item(make_item(5, langcode="de", default_translation=False))
        store.save_item(make_item(5, langcode="fr"))

        assert store.get_item(5).langcode == "fr"
        assert store.get_item(5, "de").langcode == "de"
        assert store.get_item(6) is None

    def test_load_items_returns_default_translations(self, store, make_item):
        store.save_item(make_item(1))
        store.save_item(make_item(1, langcode="fr", default_translation=False))
        store.save_item(make_item(2))

        items = store.load_items([2, 1, 99])

        assert [(item.id, item.langcode) for item in items] == [(1, "en"), (2, "en")]

    def test_remove_item(self, store, make_item):
        store.save_item(make_item(1))
        store.save_item(make_item(1, langcode="fr", default_translation=False))

        assert store.remove_item(1, "fr") == 1
        assert store.remove_item(1) == 1
        assert store.get_item(1) is None

    def test_list_items_newest_first(self, store, make_item):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store.save_item(make_item(1, created=base))
        store.save_item(make_item(2, created=base + timedelta(days=2)))
        store.save_item(make_item(3, created=base + timedelta(days=1)))
        store.save_item(make_item(4, created=base + timedelta(days=3), published=False))

        assert [item.id for item in store.list_items(["article"], limit=10)] == [2, 3, 1]
        assert [item.id for item in store.list_items(["article"], limit=1)] == [2]

    def test_list_items_by_last_change(self, store, make_item):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store.save_item(make_item(1, created=base, revised=base + timedelta(days=5)))
        store.save_item(make_item(2, created=base + timedelta(days=2)))
        store.save_item(make_item(3, created=base + timedelta(days=1)))

        assert [item.id for item in store.list_items(["article"], limit=10, by_changed=True)] == [1, 2, 3]


class TestFailures:
    def test_unopenable_database_raises_storage_failure(self, tmp_path):
        # A directory can not be opened as a database file
        store = ArtifactStore(tmp_path)

        with pytest.raises(StorageFailure):
            store.get((1, "en"))
