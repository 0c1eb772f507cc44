"""
Heuristic budget extraction from option display text.

Examples::

    parse_price_range("Under $50")    -> PriceRange(min=None, max=50.0)
    parse_price_range("Over $200")    -> PriceRange(min=200.0, max=None)
    parse_price_range("$50 - $100")   -> PriceRange(min=50.0, max=100.0)
    parse_price_range("$100+")        -> PriceRange(min=100.0, max=None)
    parse_price_range("Surprise me")  -> None

Missing a range is normal: option text is written for shoppers, not parsers.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

_CURRENCY_RE = re.compile(r"[$€£¥₹]|\b(?:usd|eur|gbp|inr|rs\.?)(?=[\s\d]|$)")
_NUM = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

_UNDER_RE = re.compile(rf"(?:\bunder\b|\bless than\b|\bbelow\b|<)\s*{_NUM}")
_OVER_RE = re.compile(rf"(?:\bover\b|\babove\b|\bmore than\b|>)\s*{_NUM}")
_RANGE_RE = re.compile(rf"{_NUM}\s*(?:-|–|—|\bto\b)\s*{_NUM}")
_PLUS_RE = re.compile(rf"{_NUM}\s*\+")


@dataclass(frozen=True)
class PriceRange:
    min: float | None = None
    max: float | None = None

    def contains(self, price: float) -> bool:
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True


def _to_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def _normalize(text: str) -> str:
    lowered = text.strip().lower()
    return _CURRENCY_RE.sub(" ", lowered)


def parse_price_range(text: str | None) -> PriceRange | None:
    """Return the price bounds described by *text*, or ``None`` if there are none."""
    if not text or not isinstance(text, str):
        return None

    normalized = _normalize(text)

    match = _UNDER_RE.search(normalized)
    if match:
        return PriceRange(max=_to_number(match.group(1)))

    match = _OVER_RE.search(normalized)
    if match:
        return PriceRange(min=_to_number(match.group(1)))

    match = _RANGE_RE.search(normalized)
    if match:
        low, high = _to_number(match.group(1)), _to_number(match.group(2))
        if low > high:
            low, high = high, low
        return PriceRange(min=low, max=high)

    match = _PLUS_RE.search(normalized)
    if match:
        return PriceRange(min=_to_number(match.group(1)))

    return None
