"""
Product candidate resolution.

Tiers, in strict precedence:
1. Exact ids: products an editor hand-picked on the selected options.
   When present, tag/type matching is never attempted.
2. Tag/type: any selected tag OR product type, clamped to the budget.
3. Fallback: any sellable product, preferring the budget band when one
   was given.

A tier that raises or times out counts as a tier that found nothing.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import TypeVar

from ..config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from ..matching.models import MatchingCriteria
from .catalog import CatalogQuery, CatalogService
from .models import CatalogProduct, RecommendedProduct

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 6
# Over-fetch so local sellable/price filtering still leaves a full page.
_FETCH_FACTOR = 2

T = TypeVar("T")

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="catalog")


def _call_tier(name: str, fn: Callable[[], T], timeout: float) -> T | None:
    """Run one catalog call with a deadline. Returns ``None`` on any failure."""
    future = _executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        logger.warning("Catalog %s tier timed out after %.1fs", name, timeout)
    except Exception:
        logger.warning("Catalog %s tier failed, falling through", name, exc_info=True)
    return None


def _sellable(products: Iterable[CatalogProduct] | None) -> list[CatalogProduct]:
    return [p for p in products or [] if p.is_sellable]


def _finish(products: list[CatalogProduct], limit: int) -> list[RecommendedProduct]:
    return [RecommendedProduct.from_catalog(p) for p in products[:limit]]


def resolve_recommendations(
    criteria: MatchingCriteria,
    catalog: CatalogService,
    limit: int = MAX_RECOMMENDATIONS,
    config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
) -> list[RecommendedProduct]:
    """Return between 0 and ``min(limit, 6)`` recommended products for *criteria*."""
    limit = max(0, min(limit, MAX_RECOMMENDATIONS))
    if limit == 0:
        return []
    fetch = limit * _FETCH_FACTOR

    # --- Tier 1: hand-picked products ---
    if criteria.exact_product_ids:
        ids = sorted(criteria.exact_product_ids)
        found = _sellable(_call_tier("exact-id", lambda: catalog.find_by_ids(ids), config.timeout))
        if found:
            logger.info("Resolved %d products from exact ids", min(len(found), limit))
            return _finish(found, limit)
        logger.info("No sellable hand-picked products, skipping to fallback")

    # --- Tier 2: tag / type match within budget ---
    elif criteria.tags or criteria.types:
        query = CatalogQuery(
            tags=frozenset(criteria.tags),
            types=frozenset(criteria.types),
            min_price=criteria.min_price,
            max_price=criteria.max_price,
            limit=fetch,
        )
        logger.debug("Catalog search: %s", query.describe())
        found = _sellable(_call_tier("tag/type", lambda: catalog.search(query), config.timeout))
        # The catalog's price filter is only a pre-filter.
        found = [p for p in found if criteria.price_ok(p.price)]
        if found:
            logger.info("Resolved %d products from tag/type match", min(len(found), limit))
            return _finish(found, limit)

    # --- Tier 3: anything sellable, budget band first ---
    if criteria.price_range is not None:
        band = CatalogQuery(min_price=criteria.min_price, max_price=criteria.max_price, limit=fetch)
        found = _sellable(_call_tier("budget-band", lambda: catalog.search(band), config.timeout))
        found = [p for p in found if criteria.price_ok(p.price)]
        if found:
            logger.info("Resolved %d fallback products in budget band", min(len(found), limit))
            return _finish(found, limit)

    found = _sellable(_call_tier("fallback", lambda: catalog.find_any(fetch), config.timeout))
    if found:
        logger.info("Resolved %d fallback products", min(len(found), limit))
        return _finish(found, limit)

    logger.info("No products available for recommendation")
    return []
