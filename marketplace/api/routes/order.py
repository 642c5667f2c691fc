import uuid

from fastapi import APIRouter, status

from marketplace.core.config import settings
from marketplace.core.logging import get_logger
from marketplace.core.security import require_roles
from marketplace.deps import OrderServiceDep, PrincipalDep
from marketplace.models import ApiResponse, OrderCreate, OrderPublic

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[OrderPublic],
    response_model_by_alias=True,
)
async def create_order(
    *, principal: PrincipalDep, service: OrderServiceDep, order_in: OrderCreate
) -> ApiResponse[OrderPublic]:
    """Create a new order from (productId, quantity) pairs"""
    order = await service.create_order(principal, order_in.items)
    return ApiResponse[OrderPublic](
        success=True,
        message="Order created successfully",
        data=OrderPublic.model_validate(order),
    )


# Fixed paths are registered before /{order_id} so they are not parsed as ids
@router.get("/me", response_model=ApiResponse[list[OrderPublic]], response_model_by_alias=True)
async def read_my_orders(
    principal: PrincipalDep, service: OrderServiceDep
) -> ApiResponse[list[OrderPublic]]:
    require_roles(principal, settings.ADMIN_ROLE, settings.BUYER_ROLE)
    orders = service.list_my_orders(principal)
    return ApiResponse[list[OrderPublic]](
        success=True,
        message="Orders retrieved successfully",
        data=[OrderPublic.model_validate(order) for order in orders],
    )


@router.get(
    "/admin/all", response_model=ApiResponse[list[OrderPublic]], response_model_by_alias=True
)
async def read_all_orders(
    principal: PrincipalDep, service: OrderServiceDep
) -> ApiResponse[list[OrderPublic]]:
    require_roles(principal, settings.ADMIN_ROLE)
    orders = service.list_all_orders()
    return ApiResponse[list[OrderPublic]](
        success=True,
        message="Orders retrieved successfully",
        data=[OrderPublic.model_validate(order) for order in orders],
    )


@router.get("/{order_id}", response_model=ApiResponse[OrderPublic], response_model_by_alias=True)
async def read_order(
    order_id: uuid.UUID, principal: PrincipalDep, service: OrderServiceDep
) -> ApiResponse[OrderPublic]:
    require_roles(principal, settings.ADMIN_ROLE, settings.BUYER_ROLE)
    order = service.get_order(principal, order_id)
    logger.debug("order_retrieved", order_id=str(order_id))
    return ApiResponse[OrderPublic](
        success=True,
        message="Order retrieved successfully",
        data=OrderPublic.model_validate(order),
    )
