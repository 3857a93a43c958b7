"""Domain Entities - Aggregates"""
import math
import random
import string
import time
from pydantic import BaseModel, Field, validator
from pydantic import ValidationError as PydanticValidationError
from uuid import UUID, uuid4
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
from decimal import Decimal, InvalidOperation

from domain.enums import (
    BookingStatus, BookingPaymentStatus, MaintenanceStatus, PackageType, ServiceType,
    FoodOrderStatus, ServiceRequestType, ServiceRequestStatus, Priority, Role,
    OrderStatus, OrderPaymentStatus, PaymentMethod, DeliveryType,
)
from domain.exceptions import (
    ValidationError, NotFoundError, InvalidTransitionError, UnavailableError,
)
from domain.permissions import is_staff
from domain.pricing import compute_booking_total, compute_order_total
from domain.value_objects import (
    DateRange, GuestCount, Pricing, Season, PackageSnapshot, AdditionalService, FoodOrder,
    ServiceRequest, Review, BookingPayment, SpecialRequests, OrderItem, CustomerInfo,
    DeliveryAddress, SECONDS_PER_DAY, to_naive_utc, utc_now,
)


# ==================== CATALOG ====================

class Room(BaseModel):
    """Room Aggregate - carries the availability counter"""

    room_id: UUID = Field(default_factory=uuid4)
    category: str
    room_number: str
    name: str
    floor: int = 1
    price: Decimal = Field(ge=0)
    total: int = Field(ge=1, default=1)
    available: int = Field(ge=0, default=1)
    max_occupancy: int = Field(ge=1, le=10, default=2)
    maintenance_status: MaintenanceStatus = MaintenanceStatus.GOOD
    is_active: bool = True

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @validator('available')
    def available_within_capacity(cls, v, values):
        if 'total' in values and v > values['total']:
            raise ValueError('Available units cannot exceed total capacity')
        return v

    class Config:
        from_attributes = True

    @property
    def booking_status(self) -> str:
        if not self.is_active or self.available < 1:
            return "unavailable"
        if self.maintenance_status == MaintenanceStatus.OUT_OF_ORDER:
            return "out_of_order"
        if self.maintenance_status == MaintenanceStatus.MAINTENANCE_REQUIRED:
            return "maintenance"
        return "available"

    def reserve(self) -> None:
        """Take one unit. Callers must hold the ledger lock."""
        if self.booking_status in ("unavailable", "out_of_order"):
            raise UnavailableError(f"Room {self.room_number} is not available")
        self.available -= 1
        self.updated_at = utc_now()

    def release(self) -> bool:
        """Give one unit back; returns False when already at capacity"""
        if self.available >= self.total:
            return False
        self.available += 1
        self.updated_at = utc_now()
        return True


class Package(BaseModel):
    """Promotional Package Aggregate"""

    package_id: UUID = Field(default_factory=uuid4)
    name: str
    description: str
    package_type: PackageType
    price: Decimal = Field(ge=0)
    discount_percentage: Decimal = Field(ge=0, le=100, default=Decimal("0"))
    duration_nights: int = Field(ge=1, default=1)
    includes: List[str] = []
    seasons: List[Season] = []

    # Applicability window
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    blackout_dates: List[datetime] = []
    max_bookings: int = Field(ge=0, default=100)

    is_active: bool = True
    booking_count: int = 0
    created_at: datetime = Field(default_factory=utc_now)

    @validator('start_date', 'end_date')
    def normalize_window(cls, v):
        return to_naive_utc(v) if v is not None else v

    @validator('blackout_dates')
    def normalize_blackouts(cls, v):
        return [to_naive_utc(d) for d in v]

    @validator('seasons')
    def seasons_do_not_overlap(cls, v):
        ordered = sorted(v, key=lambda s: s.start_date)
        for earlier, later in zip(ordered, ordered[1:]):
            if earlier.overlaps(later):
                raise ValueError(f"Seasons '{earlier.name}' and '{later.name}' overlap")
        return v

    class Config:
        from_attributes = True

    @property
    def effective_price(self) -> Decimal:
        return self.price * (1 - self.discount_percentage / 100)

    @property
    def savings(self) -> Decimal:
        return self.price * (self.discount_percentage / 100)

    def is_available(self, moment: datetime) -> bool:
        """Check whether the package can be sold for a given date"""
        moment = to_naive_utc(moment)
        if not self.is_active:
            return False
        if self.start_date and moment < self.start_date:
            return False
        if self.end_date and moment > self.end_date:
            return False
        return not any(blackout.date() == moment.date() for blackout in self.blackout_dates)

    def season_for(self, moment: datetime) -> Optional[Season]:
        moment = to_naive_utc(moment)
        return next((season for season in self.seasons if season.contains(moment)), None)

    def seasonal_price(self, moment: datetime) -> Decimal:
        season = self.season_for(moment)
        if season is None:
            return self.effective_price
        return self.effective_price * season.multiplier

    def snapshot(self, moment: datetime) -> PackageSnapshot:
        """Freeze the package as priced for a stay starting at `moment`"""
        return PackageSnapshot(
            package_id=self.package_id,
            name=self.name,
            description=self.description,
            price=self.seasonal_price(moment),
            includes=list(self.includes)
        )


class Service(BaseModel):
    """Bookable hotel service (spa, laundry, ...)"""
    service_id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""
    category: ServiceType
    price: Decimal = Field(ge=0)
    is_active: bool = True

    class Config:
        from_attributes = True


class MenuItem(BaseModel):
    """Restaurant menu item"""
    menu_item_id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""
    category: str
    price: Decimal = Field(ge=0)
    is_available: bool = True

    class Config:
        from_attributes = True


# ==================== BOOKING ====================

_TERMINAL_BOOKING_STATES = {
    BookingStatus.CHECKED_OUT,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
}

_SERVICE_REQUEST_FLOW = [
    ServiceRequestStatus.OPEN,
    ServiceRequestStatus.ASSIGNED,
    ServiceRequestStatus.IN_PROGRESS,
    ServiceRequestStatus.RESOLVED,
    ServiceRequestStatus.CLOSED,
]

GUEST_EDITABLE_FIELDS = {"special_requests"}
STAFF_EDITABLE_FIELDS = {"status", "actual_check_in", "actual_check_out", "special_requests", "pricing"}
STAFF_PRICING_FIELDS = {"room_rate", "package_price", "discount_amount"}


class Booking(BaseModel):
    """Booking Aggregate Root Entity

    Owns its additional services, food orders and service requests; each is
    kept in an id-keyed map. Room and package are referenced, the package by
    snapshot so later edits do not reprice existing bookings.
    """

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)
    booking_number: str = Field(frozen=True)

    # References to other aggregates
    guest_id: UUID
    room_id: UUID

    # Stay
    date_range: DateRange
    number_of_nights: int = Field(ge=1)
    guest_count: GuestCount
    selected_package: Optional[PackageSnapshot] = None

    # Owned collections
    additional_services: Dict[UUID, AdditionalService] = {}
    food_orders: Dict[UUID, FoodOrder] = {}
    service_requests: Dict[UUID, ServiceRequest] = {}

    pricing: Pricing
    payment: BookingPayment = Field(default_factory=BookingPayment)
    special_requests: SpecialRequests = Field(default_factory=SpecialRequests)

    status: BookingStatus = BookingStatus.CONFIRMED
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    review: Optional[Review] = None

    # Metadata
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        booking_number: str,
        guest_id: UUID,
        room: Room,
        date_range: DateRange,
        guest_count: GuestCount,
        package: Optional[PackageSnapshot] = None,
        services: Optional[List[AdditionalService]] = None,
        special_requests: Optional[SpecialRequests] = None,
        now: Optional[datetime] = None
    ) -> "Booking":
        """Create new booking in the confirmed state with computed pricing"""
        now = now or utc_now()
        Booking._validate_date_range(date_range, now)

        if guest_count.total > room.max_occupancy:
            raise ValidationError(
                f"Room {room.room_number} holds at most {room.max_occupancy} guests",
                fields=["number_of_guests"]
            )

        booking = Booking(
            booking_number=booking_number,
            guest_id=guest_id,
            room_id=room.room_id,
            date_range=date_range,
            number_of_nights=date_range.nights(),
            guest_count=guest_count,
            selected_package=package,
            additional_services={s.line_id: s for s in services or []},
            special_requests=special_requests or SpecialRequests(),
            pricing=Pricing(
                room_rate=room.price,
                package_price=package.price if package else Decimal("0")
            ),
            created_at=now,
            updated_at=now
        )
        booking.recalculate_total()
        return booking

    # ==================== QUERY METHODS ====================
    @property
    def check_in_date(self) -> datetime:
        return self.date_range.check_in

    @property
    def check_out_date(self) -> datetime:
        return self.date_range.check_out

    def is_terminal(self) -> bool:
        return self.status in _TERMINAL_BOOKING_STATES

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.guest_id == user_id

    def days_until_check_in(self, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        seconds = (self.check_in_date - now).total_seconds()
        return math.ceil(seconds / SECONDS_PER_DAY)

    def current_status(self, now: Optional[datetime] = None) -> str:
        """Stay status as seen by the guest"""
        now = now or utc_now()
        if self.status == BookingStatus.CANCELLED:
            return "cancelled"
        if self.status == BookingStatus.CHECKED_OUT:
            return "completed"
        if now < self.check_in_date:
            return "upcoming"
        if self.check_in_date <= now <= self.check_out_date:
            return "current"
        if now > self.check_out_date and self.status == BookingStatus.CONFIRMED:
            return "overdue"
        return self.status.value

    # ==================== PRICING ====================
    def recalculate_total(self) -> Decimal:
        return compute_booking_total(self)

    # ==================== STATE TRANSITION METHODS ====================
    def check_in(self, now: Optional[datetime] = None) -> None:
        """Mark guest as checked in"""
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidTransitionError(
                f"Booking must be confirmed to check in (status is {self.status.value})"
            )
        self.status = BookingStatus.CHECKED_IN
        self.actual_check_in = now or utc_now()
        self._touch()

    def check_out(self, now: Optional[datetime] = None) -> None:
        """Mark guest as checked out. The caller releases the room."""
        if self.status != BookingStatus.CHECKED_IN:
            raise InvalidTransitionError(
                f"Guest must be checked in to check out (status is {self.status.value})"
            )
        self.status = BookingStatus.CHECKED_OUT
        self.actual_check_out = now or utc_now()
        self._touch()

    def cancel(self, now: Optional[datetime] = None) -> None:
        """Cancel booking and flag the payment for refund. The caller releases the room."""
        if self.status not in (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN):
            raise InvalidTransitionError(
                f"Booking cannot be cancelled in status {self.status.value}"
            )
        self.status = BookingStatus.CANCELLED
        self._flag_refund(now)
        self._touch()

    def mark_no_show(self) -> None:
        """Manual staff transition; the caller releases the room"""
        if self.status not in (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN):
            raise InvalidTransitionError(
                f"Cannot mark as no-show with status {self.status.value}"
            )
        self.status = BookingStatus.NO_SHOW
        self._touch()

    # ==================== MODIFICATION METHODS ====================
    def apply_update(self, role: Role, changes: Dict[str, Any], now: Optional[datetime] = None) -> List[str]:
        """Apply a partial update gated by actor role. Returns applied field names.

        Guests may only edit special requests, and only while confirmed. Staff
        may also set status, actual check-in/out times and pricing inputs;
        totals are recomputed afterwards. Every change is validated before any
        is applied, so a rejected update leaves the booking untouched.
        """
        if is_staff(role):
            allowed = STAFF_EDITABLE_FIELDS
        else:
            if self.status != BookingStatus.CONFIRMED:
                raise InvalidTransitionError("Cannot modify booking in current status")
            allowed = GUEST_EDITABLE_FIELDS

        validated = {
            key: self._validate_change(key, value)
            for key, value in changes.items()
            if key in allowed and value is not None
        }

        for key, value in validated.items():
            if key == "status":
                if value == BookingStatus.CANCELLED and self.status != BookingStatus.CANCELLED:
                    self._flag_refund(now)
                self.status = value
            elif key == "pricing":
                for field, amount in value.items():
                    setattr(self.pricing, field, amount)
                self.recalculate_total()
            else:
                setattr(self, key, value)

        if validated:
            self._touch()
        return list(validated)

    @staticmethod
    def _validate_change(key: str, value: Any) -> Any:
        if key == "special_requests":
            try:
                return SpecialRequests.model_validate(value)
            except PydanticValidationError:
                raise ValidationError("Invalid special requests", fields=["special_requests"])
        if key == "status":
            try:
                return BookingStatus(value)
            except ValueError:
                raise ValidationError(f"Unknown booking status {value}", fields=["status"])
        if key == "pricing":
            amounts = {}
            for field, amount in value.items():
                if field not in STAFF_PRICING_FIELDS or amount is None:
                    continue
                try:
                    amount = Decimal(amount)
                except (InvalidOperation, TypeError, ValueError):
                    raise ValidationError(f"{field} must be a number", fields=[field])
                if amount < 0:
                    raise ValidationError(f"{field} cannot be negative", fields=[field])
                amounts[field] = amount
            return amounts
        if not isinstance(value, datetime):
            raise ValidationError(f"{key} must be a datetime", fields=[key])
        return to_naive_utc(value)

    def add_service(self, service: AdditionalService) -> AdditionalService:
        self._ensure_open("add services to")
        self.additional_services[service.line_id] = service
        self.recalculate_total()
        self._touch()
        return service

    def add_food_order(self, food_order: FoodOrder) -> FoodOrder:
        self._ensure_open("add food orders to")
        self.food_orders[food_order.order_id] = food_order
        self.recalculate_total()
        self._touch()
        return food_order

    def update_food_order_status(self, order_id: UUID, status: FoodOrderStatus) -> FoodOrder:
        food_order = self.food_orders.get(order_id)
        if food_order is None:
            raise NotFoundError("Food order not found")
        food_order.status = status
        self.recalculate_total()
        self._touch()
        return food_order

    def create_service_request(
        self,
        request_type: ServiceRequestType,
        description: str,
        priority: Priority = Priority.MEDIUM
    ) -> ServiceRequest:
        self._ensure_open("raise service requests on")
        request = ServiceRequest(
            request_type=request_type,
            description=description,
            priority=priority
        )
        self.service_requests[request.request_id] = request
        self._touch()
        return request

    def update_service_request(
        self,
        request_id: UUID,
        role: Role,
        assigned_staff: Optional[UUID] = None,
        status: Optional[ServiceRequestStatus] = None,
        resolution: Optional[str] = None,
        rating: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> ServiceRequest:
        """Staff drive the ticket forward; the guest may rate it once resolved"""
        request = self.service_requests.get(request_id)
        if request is None:
            raise NotFoundError("Service request not found")

        if is_staff(role):
            if assigned_staff:
                request.assigned_staff = assigned_staff
            if status:
                if _SERVICE_REQUEST_FLOW.index(status) < _SERVICE_REQUEST_FLOW.index(request.status):
                    raise InvalidTransitionError(
                        f"Service request cannot move from {request.status.value} to {status.value}"
                    )
                request.status = status
            if resolution:
                request.resolution = resolution
                request.resolved_date = now or utc_now()
        elif rating is not None:
            if request.status != ServiceRequestStatus.RESOLVED:
                raise InvalidTransitionError("Only resolved requests can be rated")
            if not 1 <= rating <= 5:
                raise ValidationError("Rating must be between 1 and 5", fields=["rating"])
            request.rating = rating

        self._touch()
        return request

    def add_review(self, rating: int, comment: Optional[str] = None) -> Review:
        if self.status != BookingStatus.CHECKED_OUT:
            raise InvalidTransitionError("Can only review completed stays")
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", fields=["rating"])
        self.review = Review(rating=rating, comment=comment)
        self._touch()
        return self.review

    # ==================== PRIVATE METHODS ====================
    def _ensure_open(self, action: str) -> None:
        if self.is_terminal():
            raise InvalidTransitionError(
                f"Cannot {action} a booking in status {self.status.value}"
            )

    def _flag_refund(self, now: Optional[datetime] = None) -> None:
        self.payment.status = BookingPaymentStatus.REFUNDED
        self.payment.refund_amount = self.payment.paid_amount
        self.payment.refund_date = now or utc_now()

    def _touch(self) -> None:
        self.updated_at = utc_now()
        self.version += 1

    @staticmethod
    def _validate_date_range(date_range: DateRange, now: datetime) -> None:
        if date_range.check_in.date() < now.date():
            raise ValidationError("Check-in date cannot be in the past", fields=["check_in_date"])
        if date_range.nights() < 1:
            raise ValidationError("Minimum stay is 1 night", fields=["check_out_date"])


# ==================== RESTAURANT ORDER ====================

_ORDER_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]
_TERMINAL_ORDER_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
_CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


def generate_order_id() -> str:
    """ORD-<epoch millis>-<9 random base36 chars>"""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class Order(BaseModel):
    """Restaurant Order Aggregate Root Entity

    Fulfilment status and payment status are independent axes; a completed
    payment forces the order to confirmed.
    """

    order_id: str = Field(default_factory=generate_order_id)
    customer_id: UUID
    customer_info: CustomerInfo

    items: List[OrderItem]
    total_amount: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    final_amount: Decimal = Decimal("0")

    status: OrderStatus = OrderStatus.PENDING
    payment_status: OrderPaymentStatus = OrderPaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.STRIPE
    payment_intent_id: str
    stripe_payment_id: Optional[str] = None
    transaction_id: Optional[str] = None

    delivery_type: DeliveryType = DeliveryType.ROOM_SERVICE
    delivery_address: Optional[DeliveryAddress] = None
    preparation_time: int = 30
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None

    notes: Optional[str] = None
    staff_notes: Optional[str] = None
    assigned_staff: Optional[UUID] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        order_id: str,
        customer_id: UUID,
        customer_info: CustomerInfo,
        items: List[OrderItem],
        delivery_type: DeliveryType,
        payment_intent_id: str,
        client_total: Optional[Decimal] = None,
        delivery_address: Optional[DeliveryAddress] = None,
        notes: Optional[str] = None
    ) -> "Order":
        totals = compute_order_total(items, delivery_type, client_total)
        now = utc_now()
        order = Order(
            order_id=order_id,
            customer_id=customer_id,
            customer_info=customer_info,
            items=items,
            total_amount=totals.total_amount,
            tax=totals.tax,
            delivery_fee=totals.delivery_fee,
            final_amount=totals.final_amount,
            delivery_type=delivery_type,
            delivery_address=delivery_address,
            payment_intent_id=payment_intent_id,
            notes=notes,
            created_at=now,
            updated_at=now
        )
        order.estimated_delivery_time = now + timedelta(minutes=order.preparation_time)
        return order

    # ==================== PRICING ====================
    def recalculate(self) -> None:
        """Rebuild item subtotals, tax, fee and totals from the items; run before every save"""
        totals = compute_order_total(self.items, self.delivery_type)
        self.total_amount = totals.total_amount
        self.tax = totals.tax
        self.delivery_fee = totals.delivery_fee
        self.final_amount = totals.final_amount

    # ==================== PAYMENT ====================
    def begin_payment(self) -> None:
        if self.payment_status == OrderPaymentStatus.PENDING:
            self.payment_status = OrderPaymentStatus.PROCESSING
            self._touch()

    def complete_payment(self, stripe_payment_id: str, transaction_id: str) -> None:
        self.payment_status = OrderPaymentStatus.COMPLETED
        self.stripe_payment_id = stripe_payment_id
        self.transaction_id = transaction_id
        self.status = OrderStatus.CONFIRMED
        self._touch()

    def fail_payment(self) -> None:
        self.payment_status = OrderPaymentStatus.FAILED
        self._touch()

    # ==================== STATE TRANSITION METHODS ====================
    def update_status(
        self,
        new_status: str,
        staff_id: Optional[UUID] = None,
        staff_notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Advance fulfilment status; only the fixed status set is accepted"""
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError("Invalid status", fields=["status"])

        if target != self.status:
            if self.status in _TERMINAL_ORDER_STATES:
                raise InvalidTransitionError(
                    f"Order is already {self.status.value}"
                )
            if target != OrderStatus.CANCELLED and _ORDER_FLOW.index(target) < _ORDER_FLOW.index(self.status):
                raise InvalidTransitionError(
                    f"Order cannot move back from {self.status.value} to {target.value}"
                )

        changed = target != self.status
        self.status = target
        if changed and target == OrderStatus.DELIVERED:
            self.actual_delivery_time = now or utc_now()
        if staff_notes:
            self.staff_notes = staff_notes
        if staff_id:
            self.assigned_staff = staff_id
        self._touch()

    def is_customer_cancellable(self) -> bool:
        return self.status in _CUSTOMER_CANCELLABLE

    def cancel(self) -> None:
        """Cancel and flag the payment for refund"""
        if self.status in _TERMINAL_ORDER_STATES:
            raise InvalidTransitionError(f"Order is already {self.status.value}")
        self.status = OrderStatus.CANCELLED
        self.payment_status = OrderPaymentStatus.REFUNDED
        self._touch()

    def _touch(self) -> None:
        self.updated_at = utc_now()
