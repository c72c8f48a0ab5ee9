"""Read-only access to the menu catalog."""

import logging
from uuid import UUID

from storefront.core.supabase import get_supabase_client
from storefront.models.catalog import CatalogItem

logger = logging.getLogger(__name__)


def is_uuid(value: str) -> bool:
    """Check whether a string parses as a UUID, the catalog's key type."""
    try:
        UUID(value)
    except ValueError:
        return False
    return True


class CatalogService:
    """Service for looking up menu items by ID."""

    def __init__(self) -> None:
        """Initialize catalog service with Supabase client."""
        self.client = get_supabase_client()

    async def get_item(self, item_id: str) -> CatalogItem | None:
        """Get a menu item by ID.

        Args:
            item_id: The menu item ID.

        Returns:
            CatalogItem | None: The item or None if not found.
        """
        if not is_uuid(item_id):
            return None

        response = (
            self.client.table("menu_items")
            .select("*")
            .eq("id", item_id)
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return None
        return CatalogItem.model_validate(response.data)

    async def get_items_by_ids(self, item_ids: list[str]) -> dict[str, CatalogItem]:
        """Get several menu items in one query.

        Args:
            item_ids: Menu item IDs; duplicates are fine.

        Returns:
            dict[str, CatalogItem]: Found items keyed by ID. Missing IDs,
            including ones that are not UUIDs, are absent.
        """
        unique_ids = sorted({item_id for item_id in item_ids if is_uuid(item_id)})
        if not unique_ids:
            return {}

        response = (
            self.client.table("menu_items")
            .select("*")
            .in_("id", unique_ids)
            .execute()
        )

        items = [CatalogItem.model_validate(row) for row in response.data or []]
        logger.debug("Loaded %d of %d catalog items", len(items), len(unique_ids))
        return {item.id: item for item in items}
