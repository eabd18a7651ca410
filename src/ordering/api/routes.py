"""FastAPI routes for the Ordering domain — orders and farmer order totals."""

from fastapi import APIRouter, Depends
from shared.auth import Caller, consumer_only, farmer_only, get_current_caller

from ordering.api.schemas import (
    OrderEnvelope,
    OrderListEnvelope,
    OrderResponse,
    PlaceOrderRequest,
    TotalOrdersResponse,
    UpdateOrderStatusRequest,
)
from ordering.order.service import OrderService, get_order_service


def _order_response(service: OrderService, order) -> OrderResponse:
    return OrderResponse.from_view(service.describe([order])[0])


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/api/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderEnvelope)
async def place_order(
    body: PlaceOrderRequest,
    caller: Caller = Depends(consumer_only),
    service: OrderService = Depends(get_order_service),
) -> OrderEnvelope:
    """Place an order for a farmer's product."""
    order = service.place_order(
        consumer_id=caller.id,
        farmer_id=body.farmer_id,
        product_id=body.product_id,
        quantity=body.quantity,
        total_price=body.total_price,
        consumer_details=body.consumer_details.model_dump(),
    )
    return OrderEnvelope(message="Order created successfully", order=_order_response(service, order))


@order_router.get("/consumer", response_model=OrderListEnvelope)
async def consumer_orders(
    caller: Caller = Depends(consumer_only),
    service: OrderService = Depends(get_order_service),
) -> OrderListEnvelope:
    """Orders placed by the calling consumer, newest first."""
    orders = service.orders_for_consumer(caller.id)
    return OrderListEnvelope(orders=[OrderResponse.from_view(view) for view in service.describe(orders)])


@order_router.get("/farmer", response_model=OrderListEnvelope)
async def farmer_orders(
    caller: Caller = Depends(farmer_only),
    service: OrderService = Depends(get_order_service),
) -> OrderListEnvelope:
    """Orders for the calling farmer's products, newest first."""
    orders = service.orders_for_farmer(caller.id)
    return OrderListEnvelope(orders=[OrderResponse.from_view(view) for view in service.describe(orders)])


@order_router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: str,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
) -> OrderEnvelope:
    order = service.get_order(order_id, caller.id)
    return OrderEnvelope(order=_order_response(service, order))


@order_router.api_route("/{order_id}/status", methods=["PUT", "PATCH"], response_model=OrderEnvelope)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    caller: Caller = Depends(farmer_only),
    service: OrderService = Depends(get_order_service),
) -> OrderEnvelope:
    """Accept, reject or complete an order."""
    order = service.update_fulfillment_status(
        order_id=order_id,
        farmer_id=caller.id,
        status=body.status,
        rejection_reason=body.rejection_reason,
    )
    return OrderEnvelope(message="Order status updated successfully", order=_order_response(service, order))


@order_router.post("/{order_id}/review", response_model=OrderEnvelope)
async def mark_order_reviewed(
    order_id: str,
    caller: Caller = Depends(consumer_only),
    service: OrderService = Depends(get_order_service),
) -> OrderEnvelope:
    order = service.mark_reviewed(order_id, caller.id)
    return OrderEnvelope(message="Order marked as reviewed", order=_order_response(service, order))


# ---------------------------------------------------------------------------
# Farmer Router
# ---------------------------------------------------------------------------
farmer_router = APIRouter(prefix="/api/farmers", tags=["farmers"])


@farmer_router.get("/me/total-orders", response_model=TotalOrdersResponse)
async def farmer_total_orders(
    caller: Caller = Depends(farmer_only),
    service: OrderService = Depends(get_order_service),
) -> TotalOrdersResponse:
    return TotalOrdersResponse(total_orders=service.farmer_total_orders(caller.id))
