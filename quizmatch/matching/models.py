from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .price_range import PriceRange


class Answer(BaseModel):
    """One selected option, as posted by the storefront widget."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question_id: str = Field(..., min_length=1)
    option_id: str = Field(..., min_length=1)


def _string_set(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(v.strip() for v in value if isinstance(v, str) and v.strip())


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class ProductMatching:
    """Matching rule attached to a question option.

    Stored as JSON on the option row. Unknown keys are ignored and fields
    with the wrong shape are dropped, so partially-populated or legacy
    rules still contribute whatever they can.
    """

    tags: frozenset[str] = frozenset()
    types: frozenset[str] = frozenset()
    exact_product_ids: frozenset[str] = frozenset()
    budget_min: float | None = None
    budget_max: float | None = None

    @classmethod
    def from_raw(cls, raw: str | dict | None) -> "ProductMatching":
        """Parse a stored rule.

        Raises ``ValueError`` only when the payload as a whole is unusable
        (undecodable JSON or not an object). Individual bad fields are dropped.
        """
        if raw is None or raw == "":
            return cls()
        data = json.loads(raw) if isinstance(raw, str) else raw
        if not isinstance(data, dict):
            raise ValueError(f"product matching must be an object, got {type(data).__name__}")

        exact = data.get("exactProductIds", data.get("productIds", data.get("exact_product_ids")))
        return cls(
            tags=_string_set(data.get("tags")),
            types=_string_set(data.get("types")),
            exact_product_ids=_string_set(exact),
            budget_min=_number(data.get("budgetMin", data.get("budget_min"))),
            budget_max=_number(data.get("budgetMax", data.get("budget_max"))),
        )

    @property
    def budget(self) -> PriceRange | None:
        if self.budget_min is None and self.budget_max is None:
            return None
        return PriceRange(min=self.budget_min, max=self.budget_max)


@dataclass
class MatchingCriteria:
    tags: set[str] = field(default_factory=set)
    types: set[str] = field(default_factory=set)
    exact_product_ids: set[str] = field(default_factory=set)
    min_price: float | None = None
    max_price: float | None = None

    @property
    def price_range(self) -> PriceRange | None:
        if self.min_price is None and self.max_price is None:
            return None
        return PriceRange(min=self.min_price, max=self.max_price)

    def price_ok(self, price: float | None) -> bool:
        bounds = self.price_range
        if bounds is None:
            return True
        if price is None:
            return False
        return bounds.contains(price)
