"""
Integration tests for the public catalog read flow.
"""

import threading

import pytest
from fastapi.testclient import TestClient

from shared.test_helpers import FakeClock, make_test_config
from service_catalog.app.main import CatalogService


class TestCatalogFlow:
    """End-to-end revalidation against a seeded service."""

    @pytest.fixture
    def cache_clock(self):
        return FakeClock()

    @pytest.fixture
    def catalog_service(self, cache_clock):
        return CatalogService(make_test_config(seed_demo_data=True), cache_timer=cache_clock)

    @pytest.fixture
    def client(self, catalog_service):
        return TestClient(catalog_service.app)

    def test_categories_revalidation_across_a_write(self, client, catalog_service):
        """200 E1, then 304, then a create, then 200 E2 with the new category."""
        first = client.get("/api/categories")
        assert first.status_code == 200
        e1 = first.headers["etag"]

        revalidated = client.get("/api/categories", headers={"If-None-Match": e1})
        assert revalidated.status_code == 304

        catalog_service.categories.create_category("Jalabiyas")

        changed = client.get("/api/categories", headers={"If-None-Match": e1})
        assert changed.status_code == 200
        e2 = changed.headers["etag"]
        assert e2 != e1
        assert "jalabiyas" in [c["slug"] for c in changed.json()]

        assert client.get("/api/categories", headers={"If-None-Match": e2}).status_code == 304

    def test_rename_and_removal_move_the_validator(self, client, catalog_service):
        etags = [client.get("/api/categories").headers["etag"]]
        dresses = catalog_service.store.find_category_by_slug("dresses")
        accessories = catalog_service.store.find_category_by_slug("accessories")

        catalog_service.categories.update_category(dresses.id, name="Evening Dresses")
        etags.append(client.get("/api/categories").headers["etag"])

        catalog_service.categories.delete_category(accessories.id)
        etags.append(client.get("/api/categories").headers["etag"])

        assert len(set(etags)) == 3
        assert etags[2].startswith('"c2-')

    def test_cache_expiry_picks_up_out_of_band_changes(self, client, catalog_service, cache_clock):
        """Without invalidation, staleness is bounded by the region TTL."""
        client.get("/api/categories")
        with catalog_service.store.transaction():
            catalog_service.store.insert_category("Direct", "direct")

        assert "direct" not in [c["slug"] for c in client.get("/api/categories").json()]

        cache_clock.advance(5 * 60)

        assert "direct" in [c["slug"] for c in client.get("/api/categories").json()]

    def test_hero_revalidation_across_a_write(self, client, catalog_service):
        e1 = client.get("/api/hero").headers["etag"]
        assert client.get("/api/hero", headers={"If-None-Match": e1}).status_code == 304

        catalog_service.hero.update_hero(title_line1="Ramadan collection")

        response = client.get("/api/hero", headers={"If-None-Match": e1})
        assert response.status_code == 200
        assert response.json()["titleLine1"] == "Ramadan collection"

    def test_concurrent_reads_and_writes_end_consistent(self, client, catalog_service):
        """After writers finish, the next read reflects every write."""
        errors = []

        def writer(index):
            try:
                catalog_service.categories.create_category(f"Collection {index}")
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)

        def reader():
            for _ in range(5):
                catalog_service.categories.list_public()

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(5)]
        threads += [threading.Thread(target=reader) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        slugs = [c["slug"] for c in client.get("/api/categories").json()]
        assert all(f"collection-{i}" in slugs for i in range(5))

    def test_region_cardinality_stays_fixed(self, client, catalog_service):
        """Traffic never grows the key space."""
        for query in ("a", "b", "c"):
            client.get("/api/categories", params={"q": query})
            client.get("/api/hero", params={"lang": query})

        stats = catalog_service.cache.stats()
        assert stats["categories"]["distinct_keys"] == 1
        assert stats["hero"]["distinct_keys"] == 1
