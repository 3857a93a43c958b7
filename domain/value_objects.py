"""Domain Value Objects"""
import math
from pydantic import BaseModel, Field, validator
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4
from typing import Optional, List

from domain.enums import (
    ServiceType, AdditionalServiceStatus, FoodOrderType, FoodOrderStatus,
    ServiceRequestType, ServiceRequestStatus, Priority, BookingPaymentStatus,
    PaymentMethod,
)
from domain.exceptions import ValidationError

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Current time as naive UTC, the form every stored datetime takes"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize aware datetimes to naive UTC so they compare with utc_now()"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DateRange(BaseModel):
    """Value Object for a stay"""
    check_in: datetime
    check_out: datetime

    @validator('check_in', 'check_out')
    def normalize_timezone(cls, v):
        return to_naive_utc(v)

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out date must be after check-in date')
        return v

    def nights(self) -> int:
        """Number of nights, partial days round up"""
        seconds = (self.check_out - self.check_in).total_seconds()
        return math.ceil(seconds / SECONDS_PER_DAY)

    class Config:
        frozen = True


class GuestCount(BaseModel):
    """Value Object for guest count"""
    adults: int = Field(ge=1, le=10)
    children: int = Field(ge=0, le=10, default=0)

    @property
    def total(self) -> int:
        return self.adults + self.children

    class Config:
        frozen = True


class Pricing(BaseModel):
    """Pricing breakdown of a booking. Totals are written by the pricing engine."""
    room_rate: Decimal = Field(ge=0)
    package_price: Decimal = Field(ge=0, default=Decimal("0"))
    services_total: Decimal = Decimal("0")
    food_total: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Field(ge=0, default=Decimal("0"))
    total_amount: Decimal = Decimal("0")

    class Config:
        from_attributes = True


class Season(BaseModel):
    """Seasonal price multiplier window of a package"""
    name: str
    start_date: datetime
    end_date: datetime
    multiplier: Decimal = Field(gt=0, default=Decimal("1"))

    @validator('start_date', 'end_date')
    def normalize_timezone(cls, v):
        return to_naive_utc(v)

    @validator('end_date')
    def end_not_before_start(cls, v, values):
        if 'start_date' in values and v < values['start_date']:
            raise ValueError('Season end must not be before its start')
        return v

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date

    def overlaps(self, other: "Season") -> bool:
        return self.start_date <= other.end_date and other.start_date <= self.end_date

    class Config:
        frozen = True


class PackageSnapshot(BaseModel):
    """Copy of a package taken at booking time"""
    package_id: UUID
    name: str
    description: str
    price: Decimal
    includes: List[str] = []

    class Config:
        frozen = True


class AdditionalService(BaseModel):
    """Child Entity for a service booked on top of the stay"""
    line_id: UUID = Field(default_factory=uuid4)
    service_id: UUID
    service_name: str
    service_type: ServiceType
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    scheduled_date: Optional[datetime] = None
    scheduled_time: Optional[str] = None
    status: AdditionalServiceStatus = AdditionalServiceStatus.PENDING

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    class Config:
        from_attributes = True


class FoodOrderItem(BaseModel):
    menu_item_id: UUID
    menu_item_name: str
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    special_instructions: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class FoodOrder(BaseModel):
    """Child Entity for food charged to the room"""
    order_id: UUID = Field(default_factory=uuid4)
    items: List[FoodOrderItem]
    order_type: FoodOrderType = FoodOrderType.ROOM_SERVICE
    order_date: datetime = Field(default_factory=utc_now)
    delivery_date: Optional[datetime] = None
    delivery_time: Optional[str] = None
    status: FoodOrderStatus = FoodOrderStatus.ORDERED
    total_amount: Decimal = Decimal("0")

    @staticmethod
    def create(items: List[FoodOrderItem], order_type: FoodOrderType,
               delivery_date: Optional[datetime] = None,
               delivery_time: Optional[str] = None) -> "FoodOrder":
        if not items:
            raise ValidationError("Food order needs at least one item", fields=["items"])
        total = sum((item.subtotal for item in items), Decimal("0"))
        return FoodOrder(
            items=items,
            order_type=order_type,
            delivery_date=delivery_date,
            delivery_time=delivery_time,
            total_amount=total
        )

    class Config:
        from_attributes = True


class ServiceRequest(BaseModel):
    """Child Entity for an in-stay service ticket"""
    request_id: UUID = Field(default_factory=uuid4)
    request_type: ServiceRequestType
    priority: Priority = Priority.MEDIUM
    description: str
    request_date: datetime = Field(default_factory=utc_now)
    assigned_staff: Optional[UUID] = None
    status: ServiceRequestStatus = ServiceRequestStatus.OPEN
    resolution: Optional[str] = None
    resolved_date: Optional[datetime] = None
    rating: Optional[int] = Field(None, ge=1, le=5)

    class Config:
        from_attributes = True


class Review(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    review_date: datetime = Field(default_factory=utc_now)

    class Config:
        frozen = True


class BookingPayment(BaseModel):
    status: BookingPaymentStatus = BookingPaymentStatus.PENDING
    method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    paid_amount: Decimal = Decimal("0")
    payment_date: Optional[datetime] = None
    refund_amount: Decimal = Decimal("0")
    refund_date: Optional[datetime] = None


class SpecialRequests(BaseModel):
    dietary_restrictions: List[str] = []
    accessibility: List[str] = []
    preferences: List[str] = []
    additional_requests: Optional[str] = None


class OrderItem(BaseModel):
    """Line of a restaurant order, price snapshotted from the menu"""
    menu_item_id: UUID
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    category: Optional[str] = None
    subtotal: Decimal = Decimal("0")


class CustomerInfo(BaseModel):
    email: str
    name: str
    phone: Optional[str] = None
    room_number: Optional[str] = None

    class Config:
        frozen = True


class DeliveryAddress(BaseModel):
    room_number: Optional[str] = None
    floor: Optional[str] = None
    building: Optional[str] = None
    special_instructions: Optional[str] = None
