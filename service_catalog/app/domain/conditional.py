"""
Conditional GET handling and public Cache-Control policies.
"""

from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from .etag import etag_matches

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass(frozen=True)
class CachePolicy:
    """A time-bounded HTTP cache directive."""
    max_age_seconds: int
    public: bool = True

    def header_value(self) -> str:
        visibility = "public" if self.public else "private"
        return f"{visibility}, max-age={self.max_age_seconds}"


CATEGORIES_POLICY = CachePolicy(max_age_seconds=300)
HERO_POLICY = CachePolicy(max_age_seconds=300)
PRODUCT_DETAIL_POLICY = CachePolicy(max_age_seconds=120)
PRODUCT_SEARCH_POLICY = CachePolicy(max_age_seconds=60)


def cacheable_response(content: Any, policy: CachePolicy, etag: Optional[str] = None) -> JSONResponse:
    """200 JSON response carrying the cache directive and, optionally, an ETag."""
    headers = {"Cache-Control": policy.header_value()}
    if etag is not None:
        headers["ETag"] = etag
    return JSONResponse(content=content, headers=headers)


def conditional_response(
    request: Request,
    content: Any,
    etag: str,
    policy: CachePolicy,
    *,
    resource: str,
    metrics: Optional["MetricsCollector"] = None,
) -> Response:
    """304 when the client's validator is current, otherwise the full body.

    Runs on every request; only the read model behind ``content`` is cached.
    """
    if etag_matches(request.headers.get("if-none-match"), etag):
        if metrics:
            metrics.increment_counter("conditional_responses_total", resource=resource, result="not_modified")
        return Response(
            status_code=304,
            headers={"ETag": etag, "Cache-Control": policy.header_value()},
        )

    if metrics:
        metrics.increment_counter("conditional_responses_total", resource=resource, result="ok")
    return cacheable_response(content, policy, etag)
