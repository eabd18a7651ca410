"""Pydantic request/response schemas for the Orders API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Field names are snake_case in Python and camelCase
on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ConsumerDetailsSchema(CamelModel):
    full_name: str
    phone: str
    address: str
    delivery_instructions: str | None = None


class ProductSummary(CamelModel):
    id: str
    name: str
    price: float
    unit: str | None = None
    image_url: str | None = None


class FarmerSummary(CamelModel):
    id: str
    full_name: str
    farm_name: str | None = None
    phone: str | None = None
    location: str | None = None


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(CamelModel):
    farmer_id: str
    product_id: str
    quantity: int = Field(ge=1)
    total_price: float = Field(ge=0)
    consumer_details: ConsumerDetailsSchema

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "farmerId": "6f0c2a54-0d0e-4a8e-9d4f-2f3c1b7e9a10",
                    "productId": "c2b1e7a0-5a8d-4f43-b6d1-0c9e1f4a7b22",
                    "quantity": 3,
                    "totalPrice": 450.0,
                    "consumerDetails": {
                        "fullName": "Asha Rao",
                        "phone": "+91 98450 00000",
                        "address": "12 MG Road, Bengaluru",
                        "deliveryInstructions": "Leave at the gate",
                    },
                }
            ]
        },
    )


class UpdateOrderStatusRequest(CamelModel):
    status: str
    rejection_reason: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderResponse(CamelModel):
    id: str
    consumer_id: str
    farmer_id: str
    product_id: str
    quantity: int
    total_price: float
    consumer_details: ConsumerDetailsSchema
    status: str
    rejection_reason: str | None = None
    payment_status: str
    payment_id: str | None = None
    requires_reconciliation: bool = False
    has_reviewed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    product: ProductSummary | None = None
    farmer: FarmerSummary | None = None

    @classmethod
    def from_view(cls, view) -> "OrderResponse":
        """Order plus the product and farmer summaries shown next to it."""
        response = cls.from_order(view.order)
        if view.product is not None:
            response.product = ProductSummary(
                id=str(view.product.id),
                name=view.product.name,
                price=view.product.price,
                unit=view.product.unit,
                image_url=view.product.image_url,
            )
        if view.farmer is not None:
            response.farmer = FarmerSummary(
                id=str(view.farmer.id),
                full_name=view.farmer.full_name,
                farm_name=view.farmer.farm_name,
                phone=view.farmer.phone,
                location=view.farmer.location,
            )
        return response

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        details = order.consumer_details
        return cls(
            id=str(order.id),
            consumer_id=str(order.consumer_id),
            farmer_id=str(order.farmer_id),
            product_id=str(order.product_id),
            quantity=order.quantity,
            total_price=order.total_price,
            consumer_details=ConsumerDetailsSchema(
                full_name=details.full_name,
                phone=details.phone,
                address=details.address,
                delivery_instructions=details.delivery_instructions,
            ),
            status=order.status,
            rejection_reason=order.rejection_reason,
            payment_status=order.payment_status,
            payment_id=order.payment_id,
            requires_reconciliation=bool(order.requires_reconciliation),
            has_reviewed=bool(order.has_reviewed),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderEnvelope(CamelModel):
    success: bool = True
    message: str | None = None
    order: OrderResponse


class OrderListEnvelope(CamelModel):
    success: bool = True
    orders: list[OrderResponse]


class TotalOrdersResponse(CamelModel):
    success: bool = True
    total_orders: int
