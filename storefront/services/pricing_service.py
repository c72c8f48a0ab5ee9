"""Server-side cart pricing against the catalog."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from storefront.api.middleware.error_handler import (
    InvalidExtraError,
    InvalidSizeError,
    ItemNotFoundError,
)
from storefront.core.config import get_settings
from storefront.models.order import OrderLine, SelectedOption
from storefront.schemas.order import CartLineIn
from storefront.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricedCart:
    """Result of pricing a cart: the frozen line snapshot and its charges."""

    lines: list[OrderLine]
    subtotal: int
    tax: int
    delivery_fee: int


class PricingService:
    """Recomputes cart totals from authoritative catalog records.

    Prices sent by the client never enter the calculation. Each cart
    line is one unit of the referenced item.
    """

    def __init__(self, catalog_service: CatalogService | None = None) -> None:
        """Initialize pricing service.

        Args:
            catalog_service: Optional catalog service for testing.
        """
        self.catalog = catalog_service or CatalogService()
        self.settings = get_settings()

    def compute_tax(self, subtotal: int) -> int:
        """Tax on the subtotal, rounded half-up to a whole unit."""
        return round_half_up(Decimal(subtotal) * self.settings.tax_rate)

    def compute_delivery_fee(self, subtotal: int) -> int:
        """Flat delivery fee, waived at or above the free delivery threshold."""
        if subtotal >= self.settings.free_delivery_threshold:
            return 0
        return self.settings.delivery_fee

    async def price_cart(self, cart: list[CartLineIn]) -> PricedCart:
        """Resolve every cart line against the catalog and total the cart.

        Args:
            cart: Untrusted cart lines.

        Returns:
            PricedCart: Line snapshots, subtotal, tax and delivery fee.

        Raises:
            ItemNotFoundError: A line references an unknown item.
            InvalidSizeError: A line asks for a size the item does not offer.
            InvalidExtraError: A line asks for an extra the item does not offer.
        """
        catalog = await self.catalog.get_items_by_ids([line.item_id for line in cart])

        lines: list[OrderLine] = []
        for index, line in enumerate(cart):
            item = catalog.get(line.item_id)
            if item is None:
                raise ItemNotFoundError(
                    f"Menu item not found: {line.item_id}",
                    details=[{"loc": ["cart", index, "item_id"], "msg": "Unknown menu item", "type": "item_not_found"}],
                )

            unit_price = item.effective_price
            line_total = unit_price

            size = None
            if line.size is not None:
                option = item.find_size(line.size)
                if option is None:
                    raise InvalidSizeError(
                        f"Invalid size '{line.size}' for {item.name}",
                        details=[{"loc": ["cart", index, "size"], "msg": "Unknown size", "type": "invalid_size"}],
                    )
                size = SelectedOption(name=option.name, extra_price=option.extra_price)
                line_total += option.extra_price

            extras = []
            for extra_name in line.extras:
                option = item.find_extra(extra_name)
                if option is None:
                    raise InvalidExtraError(
                        f"Invalid extra '{extra_name}' for {item.name}",
                        details=[{"loc": ["cart", index, "extras"], "msg": "Unknown extra", "type": "invalid_extra"}],
                    )
                extras.append(SelectedOption(name=option.name, extra_price=option.extra_price))
                line_total += option.extra_price

            lines.append(
                OrderLine(
                    item_id=item.id,
                    name=item.name,
                    image_url=item.image_url,
                    base_price=item.base_price,
                    unit_price=unit_price,
                    size=size,
                    extras=tuple(extras),
                    line_total=line_total,
                )
            )

        subtotal = sum(line.line_total for line in lines)
        priced = PricedCart(
            lines=lines,
            subtotal=subtotal,
            tax=self.compute_tax(subtotal),
            delivery_fee=self.compute_delivery_fee(subtotal),
        )
        logger.debug("Priced cart of %d lines: subtotal=%d", len(lines), subtotal)
        return priced
