"""Catalog record types for the menu_items table."""

from pydantic import BaseModel, ConfigDict, Field


class OptionEntry(BaseModel):
    """A size or extra ingredient offered on a menu item."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    extra_price: int = Field(default=0, ge=0)


class CatalogItem(BaseModel):
    """menu_items row.

    Read-only from the order workflow. Rows are validated on read so a
    malformed catalog entry fails loudly instead of pricing an order.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    description: str | None = None
    category: str | None = None
    base_price: int = Field(ge=0)
    discount_price: int | None = Field(default=None, ge=0)
    size_options: list[OptionEntry] = Field(default_factory=list)
    extra_ingredients: list[OptionEntry] = Field(default_factory=list)
    image_url: str | None = None

    @property
    def effective_price(self) -> int:
        """Discount price when it undercuts the base price, else the base price."""
        if self.discount_price is not None and self.discount_price < self.base_price:
            return self.discount_price
        return self.base_price

    def find_size(self, name: str) -> OptionEntry | None:
        # Exact, case-sensitive match
        return next((option for option in self.size_options if option.name == name), None)

    def find_extra(self, name: str) -> OptionEntry | None:
        return next((option for option in self.extra_ingredients if option.name == name), None)
