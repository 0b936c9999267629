"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import AwareDatetime, BaseModel, Field

from domain.event import Batch, Event, EventStatus
from domain.order import BuyerContact, Order
from domain.ticket import Ticket
from domain.time import to_utc
from services.event_service import BatchDefinition, DeleteEventResult, EventStats, Participant


# ============================================================================
# Shared
# ============================================================================

class ErrorResponse(BaseModel):
    """Failure shape shared by every endpoint."""
    success: bool = False
    error: str
    error_code: str
    errors: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Tickets not available: Insufficient quantity for VIP (available: 0, requested: 2)",
                "error_code": "AVAILABILITY_ERROR",
                "errors": ["Insufficient quantity for VIP (available: 0, requested: 2)"]
            }
        }


class BuyerContactModel(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None

    def to_domain(self) -> BuyerContact:
        return BuyerContact(name=self.name.strip(), email=self.email.strip(), phone=self.phone)


# ============================================================================
# Order Models
# ============================================================================

class CreateOrderRequest(BaseModel):
    """Request to open a pending order for an event."""
    event_id: str
    ticket_quantities: Dict[str, int] = Field(
        ...,
        description="Requested quantity per batch id"
    )
    buyer_contact: Optional[BuyerContactModel] = None

    class Config:
        json_schema_extra = {
            "example": {
                "event_id": "5b1f0e56-4a51-4a53-9f4f-1b7ad5f6d0a1",
                "ticket_quantities": {
                    "0f8fad5b-d9cb-469f-a165-70867728950e": 2
                },
                "buyer_contact": {
                    "name": "Ana Souza",
                    "email": "ana@example.com"
                }
            }
        }


class CheckoutRequest(BaseModel):
    """Payment step for a pending order."""
    payment_method: str = Field(..., description="pix, credit_card, debit_card or boleto")
    buyer_contact: BuyerContactModel

    class Config:
        json_schema_extra = {
            "example": {
                "payment_method": "pix",
                "buyer_contact": {
                    "name": "Ana Souza",
                    "email": "ana@example.com",
                    "phone": "+55 11 99999-0000"
                }
            }
        }


class OrderItemResponse(BaseModel):
    batch_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderResponse(BaseModel):
    order_id: str
    buyer_id: str
    status: str
    subtotal: Decimal
    service_fee: Decimal
    total: Decimal
    currency: str
    buyer_name: str
    buyer_email: str
    buyer_phone: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None
    items: List[OrderItemResponse]

    @classmethod
    def from_domain(cls, order: Order, currency: str) -> "OrderResponse":
        return cls(
            order_id=order.order_id,
            buyer_id=order.buyer_id,
            status=order.status.value,
            subtotal=order.subtotal,
            service_fee=order.service_fee,
            total=order.total,
            currency=currency,
            buyer_name=order.contact.name,
            buyer_email=order.contact.email,
            buyer_phone=order.contact.phone,
            created_at=order.created_at,
            paid_at=order.paid_at,
            items=[
                OrderItemResponse(
                    batch_id=item.batch_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
                for item in order.items
            ],
        )


class TicketResponse(BaseModel):
    ticket_id: str
    ticket_number: str
    batch_id: str
    order_id: Optional[str] = None
    status: str
    holder_name: str
    holder_email: str
    qr_code: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            ticket_id=ticket.ticket_id,
            ticket_number=ticket.ticket_number,
            batch_id=ticket.batch_id,
            order_id=ticket.order_id,
            status=ticket.status.value,
            holder_name=ticket.holder_name,
            holder_email=ticket.holder_email,
            qr_code=ticket.qr_code,
            created_at=ticket.created_at,
        )


class CheckoutResultResponse(BaseModel):
    """Result of an order or checkout operation."""
    success: bool
    order: Optional[OrderResponse] = None
    tickets: List[TicketResponse] = []
    error: Optional[str] = None
    error_code: Optional[str] = None
    errors: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "order": {
                    "order_id": "9c5b94b1-35ad-49bb-b118-8e8fc24abf80",
                    "status": "paid",
                    "subtotal": "100.00",
                    "service_fee": "5.00",
                    "total": "105.00",
                    "currency": "BRL"
                },
                "tickets": [
                    {
                        "ticket_number": "TKT1735689600000K3J9Q2Z7X",
                        "status": "sold",
                        "qr_code": "QR_TKT1735689600000K3J9Q2Z7X_1735689600000"
                    }
                ],
                "errors": []
            }
        }


# ============================================================================
# Event Models
# ============================================================================

class BatchModel(BaseModel):
    """Ticket tier as sent by the producer."""
    title: str
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    description: Optional[str] = None
    is_active: bool = True
    sale_starts_at: Optional[AwareDatetime] = None
    sale_ends_at: Optional[AwareDatetime] = None

    def to_domain(self) -> BatchDefinition:
        return BatchDefinition(
            title=self.title,
            price=self.price,
            quantity=self.quantity,
            description=self.description,
            is_active=self.is_active,
            sale_starts_at=to_utc(self.sale_starts_at),
            sale_ends_at=to_utc(self.sale_ends_at),
        )


class EventCreateRequest(BaseModel):
    title: str
    starts_at: AwareDatetime
    ends_at: AwareDatetime
    location: str
    address: str
    description: str = ""
    url: Optional[str] = None
    image_url: Optional[str] = None
    status: EventStatus = EventStatus.DRAFT
    batches: List[BatchModel] = []

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Festival de Verão",
                "starts_at": "2026-01-10T20:00:00Z",
                "ends_at": "2026-01-11T04:00:00Z",
                "location": "Arena Central",
                "address": "Av. Paulista, 1000 - São Paulo",
                "status": "published",
                "batches": [
                    {"title": "Pista", "price": "80.00", "quantity": 500},
                    {"title": "VIP", "price": "200.00", "quantity": 100}
                ]
            }
        }


class EventUpdateRequest(BaseModel):
    """Partial edit. When `batches` is present, tiers are reconciled by title."""
    title: Optional[str] = None
    starts_at: Optional[AwareDatetime] = None
    ends_at: Optional[AwareDatetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[EventStatus] = None
    batches: Optional[List[BatchModel]] = None


class BatchResponse(BaseModel):
    batch_id: str
    title: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    is_active: bool
    sale_starts_at: Optional[datetime] = None
    sale_ends_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, batch: Batch) -> "BatchResponse":
        return cls(
            batch_id=batch.batch_id,
            title=batch.title,
            description=batch.description,
            price=batch.price,
            quantity=batch.quantity,
            is_active=batch.is_active,
            sale_starts_at=batch.sale_starts_at,
            sale_ends_at=batch.sale_ends_at,
        )


class EventResponse(BaseModel):
    event_id: str
    producer_id: str
    title: str
    description: str
    starts_at: datetime
    ends_at: datetime
    location: str
    address: str
    status: str
    url: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    capacity: int
    batches: List[BatchResponse]

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(
            event_id=event.event_id,
            producer_id=event.producer_id,
            title=event.title,
            description=event.description,
            starts_at=event.starts_at,
            ends_at=event.ends_at,
            location=event.location,
            address=event.address,
            status=event.status.value,
            url=event.url,
            image_url=event.image_url,
            created_at=event.created_at,
            capacity=event.capacity,
            batches=[BatchResponse.from_domain(batch) for batch in event.batches],
        )


class EventListResponse(BaseModel):
    events: List[EventResponse]
    total: int
    page: int
    limit: int
    has_more: bool


class DeleteEventResponse(BaseModel):
    success: bool = True
    action: str  # "deleted" or "archived"
    message: str
    has_sales: bool

    @classmethod
    def from_domain(cls, result: DeleteEventResult) -> "DeleteEventResponse":
        return cls(action=result.action, message=result.message, has_sales=result.has_sales)


class EventStatsResponse(BaseModel):
    event_id: str
    participants: int
    revenue: Decimal
    tickets_sold: int
    currency: str

    @classmethod
    def from_domain(cls, event_id: str, stats: EventStats, currency: str) -> "EventStatsResponse":
        return cls(
            event_id=event_id,
            participants=stats.participants,
            revenue=stats.revenue,
            tickets_sold=stats.tickets_sold,
            currency=currency,
        )


class ParticipantResponse(BaseModel):
    ticket_id: str
    ticket_number: str
    name: str
    email: str
    status: str
    batch_title: str
    order_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    order_total: Optional[Decimal] = None

    @classmethod
    def from_domain(cls, participant: Participant) -> "ParticipantResponse":
        return cls(
            ticket_id=participant.ticket_id,
            ticket_number=participant.ticket_number,
            name=participant.name,
            email=participant.email,
            status=participant.status.value,
            batch_title=participant.batch_title,
            order_id=participant.order_id,
            paid_at=participant.paid_at,
            order_total=participant.order_total,
        )


class ParticipantListResponse(BaseModel):
    event_id: str
    participants: List[ParticipantResponse]
    total: int


# ============================================================================
# Checkout Resumption Models
# ============================================================================

class ResumeTokenRequest(BaseModel):
    """Ticket selection to carry through sign-in."""
    event_id: str
    ticket_quantities: Dict[str, int]


class ResumeTokenResponse(BaseModel):
    token: str
    expires_in_minutes: int


class ResumeRequest(BaseModel):
    token: str


class ResumeResponse(BaseModel):
    event_id: str
    ticket_quantities: Dict[str, int]
    event: EventResponse
