"""Unit tests for the order status state machine."""

from typing import Any, Callable
from unittest.mock import patch
from uuid import uuid4

import pytest

from storefront.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    InvalidStatusError,
    OrderNotFoundError,
)
from storefront.models.order import OrderStatus, PaymentStatus
from storefront.services.lifecycle_service import LifecycleService, parse_status
from tests.fakes import FakeSupabaseClient


def seed_order(fake: FakeSupabaseClient, status: str | None = "placed", **fields: Any) -> dict[str, Any]:
    row = {
        "user_email": "alice@example.com",
        "user_name": "Alice",
        "address": "12 MG Road",
        "cart": [],
        "subtotal": 250,
        "tax": 13,
        "delivery_fee": 50,
        "coupon_code": "SAVE10",
        "discount_amount": 30,
        "total": 283,
        "currency": "INR",
        "gateway_order_id": "order_abc",
        "security_hash": "e" * 64,
        "payment_status": "verified",
        "status": status,
    }
    row.update(fields)
    (stored,) = fake.seed("orders", row)
    return stored


class TestParseStatus:
    @pytest.mark.parametrize("value", ["placed", "Confirmed", " out_for_delivery ", "canceled"])
    def test_known_values(self, value: str) -> None:
        assert isinstance(parse_status(value), OrderStatus)

    @pytest.mark.parametrize("value", ["shipped", "cancelled", ""])
    def test_unknown_values(self, value: str) -> None:
        with pytest.raises(InvalidStatusError) as exc_info:
            parse_status(value)

        assert exc_info.value.status_code == 400

    def test_ranks_are_ordered(self) -> None:
        ranks = [status.rank for status in OrderStatus if status is not OrderStatus.CANCELED]

        assert ranks == [1, 2, 3, 4, 5]
        assert OrderStatus.CANCELED.rank is None


class TestCancelOrder:
    """Tests for LifecycleService.cancel_order."""

    @pytest.mark.asyncio
    async def test_owner_can_cancel(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)

        order = await LifecycleService().cancel_order(row["id"], make_principal("alice@example.com"))

        assert order.status is OrderStatus.CANCELED
        assert order.payment_status is PaymentStatus.REFUND_INITIATED
        assert order.canceled_at is not None

    @pytest.mark.asyncio
    async def test_admin_can_cancel_any_order(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status="out_for_delivery")

        order = await LifecycleService().cancel_order(row["id"], make_principal("root@example.com", is_admin=True))

        assert order.status is OrderStatus.CANCELED

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)

        with pytest.raises(AuthorizationError):
            await LifecycleService().cancel_order(row["id"], make_principal("mallory@example.com"))

        assert fake_supabase.find("orders", id=row["id"])["status"] == "placed"

    @pytest.mark.asyncio
    async def test_cancel_keeps_coupon_usage(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        fake_supabase.seed("coupons", {"code": "SAVE10", "discount_type": "fixed", "discount_value": 30, "usage_count": 1})
        row = seed_order(fake_supabase)

        await LifecycleService().cancel_order(row["id"], make_principal("alice@example.com"))

        assert fake_supabase.find("coupons", code="SAVE10")["usage_count"] == 1
        assert fake_supabase.rpc_calls == []

    @pytest.mark.asyncio
    async def test_cancel_unplaced_order(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status=None, payment_status="pending")

        order = await LifecycleService().cancel_order(row["id"], make_principal("alice@example.com"))

        assert order.status is OrderStatus.CANCELED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["completed", "canceled"])
    async def test_terminal_orders_cannot_be_canceled(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any], status: str
    ) -> None:
        row = seed_order(fake_supabase, status=status)

        with pytest.raises(ConflictError):
            await LifecycleService().cancel_order(row["id"], make_principal("alice@example.com"))

    @pytest.mark.asyncio
    async def test_missing_order(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        with pytest.raises(OrderNotFoundError):
            await LifecycleService().cancel_order(str(uuid4()), make_principal())

    @pytest.mark.asyncio
    async def test_concurrent_change_is_detected(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)
        service = LifecycleService()
        stale = await service.orders.get_order(row["id"])
        fake_supabase.find("orders", id=row["id"])["status"] = "completed"

        with patch.object(service.orders, "get_order", return_value=stale):
            with pytest.raises(ConflictError):
                await service.cancel_order(row["id"], make_principal("alice@example.com"))

        assert fake_supabase.find("orders", id=row["id"])["status"] == "completed"


class TestSetStatus:
    """Tests for LifecycleService.set_status."""

    @pytest.mark.asyncio
    async def test_admin_moves_forward(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)
        admin = make_principal("root@example.com", is_admin=True)
        service = LifecycleService()

        for status in ("confirmed", "preparing", "out_for_delivery", "completed"):
            order = await service.set_status(row["id"], status, admin)
            assert order.status.value == status

    @pytest.mark.asyncio
    async def test_skipping_ahead_is_allowed(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)

        order = await LifecycleService().set_status(row["id"], "preparing", make_principal(is_admin=True))

        assert order.status is OrderStatus.PREPARING

    @pytest.mark.asyncio
    async def test_backwards_move_is_rejected(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status="preparing")

        with pytest.raises(ConflictError):
            await LifecycleService().set_status(row["id"], "confirmed", make_principal(is_admin=True))

        assert fake_supabase.find("orders", id=row["id"])["status"] == "preparing"

    @pytest.mark.asyncio
    async def test_same_status_is_a_no_op(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status="confirmed")
        fake_supabase.queries.clear()

        order = await LifecycleService().set_status(row["id"], "confirmed", make_principal(is_admin=True))

        assert order.status is OrderStatus.CONFIRMED
        assert ("orders", "update") not in fake_supabase.queries

    @pytest.mark.asyncio
    async def test_completed_is_terminal(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status="completed")

        with pytest.raises(ConflictError):
            await LifecycleService().set_status(row["id"], "canceled", make_principal(is_admin=True))

    @pytest.mark.asyncio
    async def test_canceled_target_uses_cancel_semantics(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status="confirmed")

        order = await LifecycleService().set_status(row["id"], "canceled", make_principal(is_admin=True))

        assert order.status is OrderStatus.CANCELED
        assert order.payment_status is PaymentStatus.REFUND_INITIATED

    @pytest.mark.asyncio
    async def test_unplaced_order_cannot_advance(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase, status=None, payment_status="pending")

        with pytest.raises(ConflictError):
            await LifecycleService().set_status(row["id"], "confirmed", make_principal(is_admin=True))

    @pytest.mark.asyncio
    async def test_unknown_status_is_rejected(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)

        with pytest.raises(InvalidStatusError):
            await LifecycleService().set_status(row["id"], "teleported", make_principal(is_admin=True))

    @pytest.mark.asyncio
    async def test_non_admin_is_rejected(
        self, fake_supabase: FakeSupabaseClient, make_principal: Callable[..., Any]
    ) -> None:
        row = seed_order(fake_supabase)

        with pytest.raises(AuthorizationError):
            await LifecycleService().set_status(row["id"], "confirmed", make_principal("alice@example.com"))
