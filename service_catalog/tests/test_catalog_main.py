"""
Unit tests for the Catalog service HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from shared.errors import DataSourceError
from shared.test_helpers import CatalogDataFactory, FakeClock, FakeWallClock, make_test_config
from service_catalog.app.main import CatalogService, create_app
from service_catalog.app.repository import CatalogStore


class TestCatalogService:
    """Test cases for CatalogService."""

    @pytest.fixture
    def cache_clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self):
        store = CatalogStore(clock=FakeWallClock())
        CatalogDataFactory.populate(store)
        return store

    @pytest.fixture
    def catalog_service(self, store, cache_clock):
        """Create CatalogService instance over a known catalog."""
        return CatalogService(make_test_config(), store=store, cache_timer=cache_clock)

    @pytest.fixture
    def client(self, catalog_service):
        """Create test client."""
        return TestClient(catalog_service.app, raise_server_exceptions=False)

    def test_create_app_seeds_demo_catalog(self):
        """The default factory serves the demo catalog."""
        client = TestClient(create_app(make_test_config(seed_demo_data=True)))

        response = client.get("/api/categories")

        assert response.status_code == 200
        assert [c["slug"] for c in response.json()] == ["dresses", "abayas", "accessories"]

    def test_app_state_exposes_service(self, catalog_service):
        assert catalog_service.app.state.catalog_service is catalog_service

    def test_categories(self, client):
        """Active categories with cache headers and a collection ETag."""
        response = client.get("/api/categories")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=300"
        assert response.headers["etag"].startswith('"c2-')
        body = response.json()
        assert [c["slug"] for c in body] == ["shoes", "bags"]
        assert set(body[0]) == {"id", "name", "slug", "active", "updatedAt"}

    def test_categories_not_modified(self, client):
        """A matching validator gives 304 with an empty body."""
        etag = client.get("/api/categories").headers["etag"]

        response = client.get("/api/categories", headers={"If-None-Match": etag})

        assert response.status_code == 304
        assert response.content == b""
        assert response.headers["etag"] == etag
        assert response.headers["cache-control"] == "public, max-age=300"

    def test_categories_weak_and_list_validators(self, client):
        etag = client.get("/api/categories").headers["etag"]

        assert client.get("/api/categories", headers={"If-None-Match": f"W/{etag}"}).status_code == 304
        assert client.get("/api/categories", headers={"If-None-Match": f'"stale", {etag}'}).status_code == 304
        assert client.get("/api/categories", headers={"If-None-Match": '"stale"'}).status_code == 200

    def test_categories_served_from_cache(self, client, catalog_service, store):
        """Repeated reads hit the categories region."""
        client.get("/api/categories")
        client.get("/api/categories")

        stats = catalog_service.cache.stats()["categories"]
        assert stats["hits"] >= 1
        assert stats["distinct_keys"] == 1

    def test_product_detail(self, client):
        response = client.get("/api/products/leather-boot")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=120"
        assert response.headers["etag"].startswith('"p')
        body = response.json()
        assert body["category"]["slug"] == "shoes"
        assert body["minVariantPrice"] == 80.0
        assert body["originalPrice"] == 95.0
        assert body["variants"][0]["stockQuantity"] == 5

    def test_product_detail_not_modified(self, client):
        etag = client.get("/api/products/leather-boot").headers["etag"]

        response = client.get("/api/products/leather-boot", headers={"If-None-Match": etag})

        assert response.status_code == 304
        assert response.headers["cache-control"] == "public, max-age=120"

    def test_product_etag_moves_after_update(self, client, catalog_service, store):
        etag = client.get("/api/products/leather-boot").headers["etag"]
        product = store.find_product_by_slug("leather-boot")

        catalog_service.products.update_product(product.id, description="Resoled.")

        response = client.get("/api/products/leather-boot", headers={"If-None-Match": etag})
        assert response.status_code == 200
        assert response.headers["etag"] != etag

    def test_product_etag_moves_after_category_rename(self, client, catalog_service, store):
        """The embedded category is part of the product representation."""
        etag = client.get("/api/products/leather-boot").headers["etag"]
        shoes = store.find_category_by_slug("shoes")

        catalog_service.categories.update_category(shoes.id, name="Footwear")

        response = client.get("/api/products/leather-boot", headers={"If-None-Match": etag})
        assert response.status_code == 200
        assert response.json()["category"]["name"] == "Footwear"
        assert response.headers["etag"] != etag
        assert "updatedAt" not in response.json()["category"]

    @pytest.mark.parametrize("slug", ["missing", "retired-clutch", "hidden-scarf"])
    def test_product_not_found(self, client, slug):
        response = client.get(f"/api/products/{slug}")

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "NOT_FOUND"
        assert body["trace_id"] == response.headers["x-request-id"]

    def test_product_search(self, client):
        response = client.get("/api/products", params={"q": "boot", "sort": "price,desc"})

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=60"
        assert "etag" not in response.headers
        body = response.json()
        assert [p["slug"] for p in body["content"]] == ["leather-boot"]
        assert body["totalElements"] == 1
        assert body["numberOfElements"] == 1

    def test_product_search_filters(self, client, store):
        bags = store.find_category_by_slug("bags")

        response = client.get("/api/products", params={"categoryId": bags.id, "minPrice": "10", "maxPrice": "25"})

        assert [p["slug"] for p in response.json()["content"]] == ["market-tote"]

    def test_product_search_inverted_price_range(self, client):
        response = client.get("/api/products", params={"minPrice": "50", "maxPrice": "10"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_product_search_unknown_sort(self, client):
        response = client.get("/api/products", params={"sort": "rating,desc"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_product_search_malformed_parameter(self, client):
        response = client.get("/api/products", params={"page": "-1"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_hero_defaults(self, client):
        """Without a stored row the defaults are served with a content ETag."""
        response = client.get("/api/hero")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=300"
        assert response.headers["etag"].startswith('"h-')
        assert response.json()["id"] is None
        assert response.json()["ctaLink"] == "/products"

    def test_hero_after_update(self, client, catalog_service):
        before = client.get("/api/hero").headers["etag"]

        catalog_service.hero.update_hero(badge_text="Eid edit", hero_image_url="/uploads/hero/eid.jpg")

        response = client.get("/api/hero", headers={"If-None-Match": before})
        assert response.status_code == 200
        assert response.headers["etag"].startswith('"h1-')
        assert response.json()["badgeText"] == "Eid edit"
        assert response.json()["heroImageUrl"] == "/uploads/hero/eid.jpg"

    def test_data_source_failure(self, client, store, monkeypatch):
        """Loader failures map to 503 and are not cached."""
        def unavailable():
            raise DataSourceError("database unavailable")

        monkeypatch.setattr(store, "list_active_categories", unavailable)
        response = client.get("/api/categories")
        assert response.status_code == 503
        assert response.json()["code"] == "DATA_SOURCE_ERROR"

        monkeypatch.undo()
        assert client.get("/api/categories").status_code == 200

    def test_request_id_echoed(self, client):
        response = client.get("/api/categories", headers={"X-Request-ID": "req-123"})
        assert response.headers["x-request-id"] == "req-123"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "catalog"
        assert body["status"] == "ok"
        assert body["dependencies"] == {"data_source": "ok", "cache_registry": "ok"}

    def test_health_degraded(self, client, store, monkeypatch):
        def ping():
            raise DataSourceError()

        monkeypatch.setattr(store, "ping", ping)
        body = client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["dependencies"]["data_source"] == "error"

    def test_metrics(self, client):
        client.get("/api/categories")
        client.get("/api/categories")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'cache_hits_total{region="categories"} 1.0' in response.text
        assert 'cache_misses_total{region="categories"}' in response.text
        assert "http_requests_total" in response.text

    def test_conditional_metrics(self, client, catalog_service):
        etag = client.get("/api/categories").headers["etag"]
        client.get("/api/categories", headers={"If-None-Match": etag})

        assert catalog_service.metrics.get_sample_value(
            "conditional_responses_total", {"resource": "categories", "result": "not_modified"}
        ) == 1.0

    def test_cache_stats(self, client):
        client.get("/api/categories")
        client.get("/api/hero")

        body = client.get("/internal/cache/stats").json()

        assert body["service"] == "catalog"
        assert body["regions"]["categories"]["size"] == 1
        assert body["regions"]["hero"]["size"] == 1
        assert body["regions"]["hero"]["max_size"] == 10

    def test_cors_exposes_etag(self, client):
        response = client.get("/api/categories", headers={"Origin": "https://shop.example.com"})

        assert response.headers["access-control-allow-origin"] == "*"
        assert "ETag" in response.headers["access-control-expose-headers"]

    def test_custom_api_prefix(self, store, cache_clock):
        service = CatalogService(make_test_config(api_prefix="/v2"), store=store, cache_timer=cache_clock)
        client = TestClient(service.app)

        assert client.get("/v2/categories").status_code == 200
        assert client.get("/api/categories").status_code == 404
