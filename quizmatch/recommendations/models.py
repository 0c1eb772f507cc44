from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PLACEHOLDER_IMAGE = "https://via.placeholder.com/200"


class CatalogProduct(BaseModel):
    """A product as returned by a catalog service."""

    id: str
    variant_id: str | None = None
    title: str
    handle: str
    status: str = "active"
    price: float | None = None
    currency: str = "USD"
    tags: list[str] = Field(default_factory=list)
    product_type: str | None = None
    image_url: str | None = None
    images: list[str] = Field(default_factory=list)
    url: str | None = None

    @property
    def is_sellable(self) -> bool:
        return self.status.strip().lower() == "active"


class Money(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    amount: str
    currency_code: str


class RecommendedProduct(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    variant_id: str | None = None
    title: str
    handle: str
    price: Money | None = None
    image_url: str
    images: list[str] = Field(default_factory=list)
    url: str

    @classmethod
    def from_catalog(cls, product: CatalogProduct) -> "RecommendedProduct":
        price = None
        if product.price is not None:
            price = Money(amount=f"{product.price:.2f}", currency_code=product.currency)
        return cls(
            id=product.id,
            variant_id=product.variant_id,
            title=product.title,
            handle=product.handle,
            price=price,
            image_url=product.image_url or PLACEHOLDER_IMAGE,
            images=list(product.images),
            url=product.url or f"/products/{product.handle}",
        )
