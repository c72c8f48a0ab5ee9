"""Coupon API routes: validation for shoppers, administration for admins."""

from uuid import UUID

from fastapi import APIRouter, status

from storefront.api.deps import AdminPrincipal, CurrentPrincipal
from storefront.schemas.common import SuccessResponse
from storefront.schemas.coupon import (
    CouponCreate,
    CouponResponse,
    CouponSummary,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidateResponse,
    UserCouponResponse,
)
from storefront.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post(
    "/validate",
    response_model=CouponValidateResponse,
    summary="Validate coupon",
    description="Checks a code against a subtotal for the caller. Invalid codes return valid=false.",
)
async def validate_coupon(data: CouponValidateRequest, principal: CurrentPrincipal) -> CouponValidateResponse:
    """Preview the discount a coupon would give.

    Args:
        data: Code and cart subtotal.
        principal: The authenticated user; usage limits are per user.

    Returns:
        CouponValidateResponse: Validity, message and discount.
    """
    result = await CouponService().evaluate(data.code, data.subtotal, principal.email)
    if not result.valid:
        return CouponValidateResponse(valid=False, message=result.message)

    coupon = result.coupon
    return CouponValidateResponse(
        valid=True,
        message=result.message,
        discount=result.discount,
        coupon=CouponSummary(
            id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            max_discount=coupon.max_discount,
        ),
    )


@router.get(
    "/mine",
    response_model=list[UserCouponResponse],
    summary="Coupons available to me",
)
async def list_my_coupons(principal: CurrentPrincipal) -> list[UserCouponResponse]:
    """Active coupons with the caller's own usage and remaining uses."""
    entries = await CouponService().list_for_user(principal.email)
    return [
        UserCouponResponse(
            **CouponResponse.from_record(coupon).model_dump(),
            user_usage_count=used,
            remaining_uses=remaining,
        )
        for coupon, used, remaining in entries
    ]


@router.get(
    "",
    response_model=list[CouponResponse],
    summary="List coupons (admin)",
)
async def list_coupons(principal: AdminPrincipal) -> list[CouponResponse]:
    coupons = await CouponService().list_coupons()
    return [CouponResponse.from_record(coupon) for coupon in coupons]


@router.post(
    "",
    response_model=CouponResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create coupon (admin)",
)
async def create_coupon(data: CouponCreate, principal: AdminPrincipal) -> CouponResponse:
    """Create a coupon.

    Raises:
        ConflictError: 400 if the code already exists.
    """
    coupon = await CouponService().create_coupon(data)
    return CouponResponse.from_record(coupon)


@router.patch(
    "/{coupon_id}",
    response_model=CouponResponse,
    summary="Update coupon (admin)",
)
async def update_coupon(coupon_id: UUID, data: CouponUpdate, principal: AdminPrincipal) -> CouponResponse:
    coupon = await CouponService().update_coupon(str(coupon_id), data)
    return CouponResponse.from_record(coupon)


@router.delete(
    "/{coupon_id}",
    response_model=SuccessResponse,
    summary="Delete coupon (admin)",
)
async def delete_coupon(coupon_id: UUID, principal: AdminPrincipal) -> SuccessResponse:
    await CouponService().delete_coupon(str(coupon_id))
    return SuccessResponse()
