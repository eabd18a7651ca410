"""FastAPI routes for payments — intents, gateway webhooks and payment status."""

import os

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from ordering.order.service import OrderService, get_order_service
from shared.auth import Caller, consumer_only, get_current_caller

from payments.api.schemas import (
    ClientSecretResponse,
    ConfigureGatewayRequest,
    CreatePaymentIntentRequest,
    GatewayConfigResponse,
    PaymentStatusResponse,
    WebhookAckResponse,
)
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakeGateway

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/api/payments", tags=["payments"])


@payment_router.post("/create-payment-intent", response_model=ClientSecretResponse)
async def create_payment_intent(
    body: CreatePaymentIntentRequest,
    caller: Caller = Depends(consumer_only),
    service: OrderService = Depends(get_order_service),
) -> ClientSecretResponse:
    """Create or reuse the payment intent for a pending order."""
    client_secret = service.create_payment_intent(body.order_id, caller.id)
    return ClientSecretResponse(client_secret=client_secret)


@payment_router.post("/webhook", response_model=WebhookAckResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
    service: OrderService = Depends(get_order_service),
) -> WebhookAckResponse:
    """Receive a gateway webhook. The raw body is needed for signature checks."""
    payload = await request.body()
    service.handle_webhook_event(payload, stripe_signature)
    return WebhookAckResponse(received=True)


@payment_router.get("/status/{order_id}", response_model=PaymentStatusResponse)
async def payment_status(
    order_id: str,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
) -> PaymentStatusResponse:
    status = service.get_payment_status(order_id, caller.id)
    return PaymentStatusResponse(payment_status=status["payment_status"], payment_id=status["payment_id"])


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    This endpoint is only available when PROTEAN_ENV is not 'production'.
    It allows toggling gateway outages for manual API testing.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
