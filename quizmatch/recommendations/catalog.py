"""
Catalog query service.

The resolver only depends on the ``CatalogService`` protocol. The bundled
``DataFrameCatalog`` keeps the product feed in a pandas DataFrame loaded
from CSV, which is enough for a single storefront or for tests; a remote
storefront API client can be dropped in behind the same three methods.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from ..config import DEFAULT_CATALOG_CONFIG
from ..errors import UpstreamCatalogError
from .models import CatalogProduct

CATALOG_COLUMNS: list[str] = [
    "id",
    "variant_id",
    "title",
    "handle",
    "status",
    "price",
    "currency",
    "tags",
    "product_type",
    "image_url",
    "images",
    "url",
]


@dataclass(frozen=True)
class CatalogQuery:
    tags: frozenset[str] = field(default_factory=frozenset)
    types: frozenset[str] = field(default_factory=frozenset)
    min_price: float | None = None
    max_price: float | None = None
    limit: int = 10

    def describe(self) -> str:
        """Storefront-search style rendering, used in logs."""
        parts: list[str] = []
        clauses = [f"tag:'{t}'" for t in sorted(self.tags)]
        clauses += [f"product_type:'{t}'" for t in sorted(self.types)]
        if clauses:
            parts.append(f"({' OR '.join(clauses)})")
        if self.min_price is not None:
            parts.append(f"price:>={self.min_price:g}")
        if self.max_price is not None:
            parts.append(f"price:<={self.max_price:g}")
        return " AND ".join(parts) or "*"


class CatalogService(Protocol):
    def find_by_ids(self, ids: Iterable[str]) -> list[CatalogProduct]:
        """Return the products with the given ids, in any status."""
        ...

    def search(self, query: CatalogQuery) -> list[CatalogProduct]:
        """Return sellable products matching any tag or type, within the price range."""
        ...

    def find_any(self, limit: int) -> list[CatalogProduct]:
        """Return up to *limit* sellable products with no other constraint."""
        ...


def _split(value: Any, sep: str) -> list[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(sep) if part.strip()]


def _optional(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) and pd.isna(value):
        return None
    return value


def _optional_str(value: Any) -> str | None:
    value = _optional(value)
    return str(value) if value is not None else None


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in CATALOG_COLUMNS:
        if col not in df.columns:
            df[col] = None

    df["id"] = df["id"].astype(str)
    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    df["status"] = df["status"].fillna("active").astype(str)
    df["currency"] = df["currency"].fillna("USD").astype(str)

    # Lowercased copies for case-insensitive matching
    df["tags_list"] = df["tags"].apply(lambda v: _split(v, ","))
    df["tags_lower"] = df["tags_list"].apply(lambda tags: {t.lower() for t in tags})
    df["type_lower"] = df["product_type"].fillna("").astype(str).str.strip().str.lower()
    df["status_lower"] = df["status"].str.strip().str.lower()
    df["images_list"] = df["images"].apply(lambda v: _split(v, "|"))
    return df


class DataFrameCatalog:
    def __init__(self, df: pd.DataFrame | None = None, csv_path: Path | None = None) -> None:
        self._csv_path = csv_path or DEFAULT_CATALOG_CONFIG.csv_path
        self._df: pd.DataFrame | None = _prepare(df) if df is not None else None

    @classmethod
    def from_records(cls, records: Sequence[dict[str, Any]]) -> "DataFrameCatalog":
        return cls(df=pd.DataFrame.from_records(list(records), columns=CATALOG_COLUMNS))

    def _frame(self) -> pd.DataFrame:
        if self._df is None:
            try:
                self._df = _prepare(pd.read_csv(self._csv_path))
            except (OSError, pd.errors.ParserError) as exc:
                raise UpstreamCatalogError(f"Catalog feed unavailable: {self._csv_path}") from exc
        return self._df

    def reload(self) -> None:
        self._df = None

    def _to_products(self, frame: pd.DataFrame) -> list[CatalogProduct]:
        products: list[CatalogProduct] = []
        for _, row in frame.iterrows():
            products.append(CatalogProduct(
                id=row["id"],
                variant_id=_optional_str(row["variant_id"]),
                title=str(row["title"]),
                handle=str(row["handle"]),
                status=row["status"],
                price=float(row["price"]) if pd.notna(row["price"]) else None,
                currency=row["currency"],
                tags=row["tags_list"],
                product_type=_optional_str(row["product_type"]),
                image_url=_optional_str(row["image_url"]),
                images=row["images_list"],
                url=_optional_str(row["url"]),
            ))
        return products

    def find_by_ids(self, ids: Iterable[str]) -> list[CatalogProduct]:
        wanted = [str(i) for i in ids]
        if not wanted:
            return []
        df = self._frame()
        matched = df.loc[df["id"].isin(wanted)]
        order = {pid: pos for pos, pid in enumerate(wanted)}
        matched = matched.assign(_pos=matched["id"].map(order)).sort_values("_pos")
        return self._to_products(matched)

    def search(self, query: CatalogQuery) -> list[CatalogProduct]:
        df = self._frame()
        mask = df["status_lower"] == "active"

        tags = {t.lower() for t in query.tags}
        types = {t.lower() for t in query.types}
        if tags or types:
            tag_hit = df["tags_lower"].apply(lambda row_tags: bool(tags & row_tags)).astype(bool)
            type_hit = df["type_lower"].isin(types)
            mask = mask & (tag_hit | type_hit)

        if query.min_price is not None:
            mask = mask & (df["price"] >= query.min_price)
        if query.max_price is not None:
            mask = mask & (df["price"] <= query.max_price)

        return self._to_products(df.loc[mask].head(query.limit))

    def find_any(self, limit: int) -> list[CatalogProduct]:
        df = self._frame()
        return self._to_products(df.loc[df["status_lower"] == "active"].head(limit))


_default_catalog: DataFrameCatalog | None = None


def get_default_catalog() -> DataFrameCatalog:
    """Return the process-wide CSV-backed catalog, creating it on first call."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = DataFrameCatalog()
    return _default_catalog
