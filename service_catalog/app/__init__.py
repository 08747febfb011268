"""
Catalog Service package for the Storefront public read API.

Serves the public catalog (categories, product detail and search, hero
banner) with in-process caching of the user-independent snapshots and HTTP
revalidation through ETags. It provides:

- app.main: API surface, health and cache statistics.
- app.caching: TTL/LRU cache regions, registry and read-through access.
- app.domain: Entities, read models, ETags and conditional responses.
- app.repository: The catalog data source.
- app.services: Category, product and hero use cases.

Guidelines:
- Cache only public snapshots under the region's fixed key.
- Every write that changes a cached snapshot invalidates its region inside
  the same data-source transaction.
- Validators derive from data timestamps, never from object identity.
"""
