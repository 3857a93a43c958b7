"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import (
    BookingStatus, DeliveryType, FoodOrderStatus, FoodOrderType, MaintenanceStatus,
    OrderPaymentStatus, OrderStatus, PackageType, Priority, Role, ServiceRequestStatus,
    ServiceRequestType, ServiceType,
)
from domain.value_objects import (
    AdditionalService, BookingPayment, CustomerInfo, DeliveryAddress, FoodOrder, OrderItem,
    PackageSnapshot, Pricing, Review, Season, ServiceRequest, SpecialRequests,
)


# ============================================================================
# ERROR SCHEMAS
# ============================================================================

class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint"""
    error: str
    detail: str
    timestamp: datetime
    fields: List[str] = []


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class SpecialRequestsRequest(BaseModel):
    """Special requests request DTO"""
    dietary_restrictions: List[str] = []
    accessibility: List[str] = []
    preferences: List[str] = []
    additional_requests: Optional[str] = None


class ServiceLineRequest(BaseModel):
    """Additional service line request DTO"""
    service_id: UUID
    quantity: int = Field(ge=1, default=1)
    scheduled_date: Optional[datetime] = None
    scheduled_time: Optional[str] = None


class CreateBookingRequest(BaseModel):
    """Create booking request DTO"""
    room_id: UUID
    check_in_date: datetime
    check_out_date: datetime
    adults: int = Field(ge=1, le=10)
    children: int = Field(ge=0, le=10, default=0)
    package_id: Optional[UUID] = None
    additional_services: List[ServiceLineRequest] = []
    special_requests: Optional[SpecialRequestsRequest] = None


class PricingOverrideRequest(BaseModel):
    """Staff pricing override DTO"""
    room_rate: Optional[Decimal] = Field(None, ge=0)
    package_price: Optional[Decimal] = Field(None, ge=0)
    discount_amount: Optional[Decimal] = Field(None, ge=0)


class UpdateBookingRequest(BaseModel):
    """Update booking request DTO; non-staff callers may only send special_requests"""
    special_requests: Optional[SpecialRequestsRequest] = None
    status: Optional[str] = None
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    pricing: Optional[PricingOverrideRequest] = None


class FoodOrderItemRequest(BaseModel):
    """Food order item request DTO"""
    menu_item_id: UUID
    quantity: int = Field(ge=1, default=1)
    special_instructions: Optional[str] = None


class AddFoodOrderRequest(BaseModel):
    """Add food order request DTO"""
    items: List[FoodOrderItemRequest]
    order_type: FoodOrderType = FoodOrderType.ROOM_SERVICE
    delivery_date: Optional[datetime] = None
    delivery_time: Optional[str] = None


class UpdateFoodOrderRequest(BaseModel):
    status: FoodOrderStatus


class CreateServiceTicketRequest(BaseModel):
    """Create service request DTO"""
    request_type: ServiceRequestType
    description: str = Field(min_length=1)
    priority: Priority = Priority.MEDIUM


class UpdateServiceTicketRequest(BaseModel):
    """Update service request DTO"""
    assigned_staff: Optional[UUID] = None
    status: Optional[ServiceRequestStatus] = None
    resolution: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)


class ReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class BookingResponse(BaseModel):
    """Booking response DTO"""
    booking_id: UUID
    booking_number: str
    guest_id: UUID
    room_id: UUID
    check_in_date: datetime
    check_out_date: datetime
    number_of_nights: int
    adults: int
    children: int
    selected_package: Optional[PackageSnapshot] = None
    additional_services: List[AdditionalService]
    food_orders: List[FoodOrder]
    service_requests: List[ServiceRequest]
    pricing: Pricing
    payment: BookingPayment
    special_requests: SpecialRequests
    status: BookingStatus
    current_status: str
    days_until_check_in: int
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    review: Optional[Review] = None
    created_at: datetime
    updated_at: datetime
    version: int


class FoodOrderResponse(BaseModel):
    """Food order response DTO, with the booking total it produced"""
    booking_id: UUID
    food_order: FoodOrder
    booking_total: Decimal


class BookingStatsResponse(BaseModel):
    """Booking statistics response DTO"""
    period: str
    total_bookings: int
    total_revenue: Decimal
    average_booking_value: Decimal
    confirmed_bookings: int
    checked_in_bookings: int
    completed_bookings: int
    cancelled_bookings: int


# ============================================================================
# ORDER SCHEMAS
# ============================================================================

class OrderItemRequest(BaseModel):
    """Order item request DTO; prices are always taken from the menu"""
    menu_item_id: UUID
    quantity: int = Field(ge=1, default=1)
    name: Optional[str] = None


class CreatePaymentIntentRequest(BaseModel):
    """Create payment intent request DTO"""
    items: List[OrderItemRequest]
    total_amount: Decimal
    room_number: Optional[str] = None
    delivery_type: DeliveryType = DeliveryType.ROOM_SERVICE
    delivery_address: Optional[DeliveryAddress] = None
    notes: Optional[str] = None


class PaymentIntentResponse(BaseModel):
    """Payment intent response DTO"""
    client_secret: str
    payment_intent_id: str
    order_id: str
    total_amount: Decimal
    tax: Decimal
    delivery_fee: Decimal
    final_amount: Decimal


class ConfirmPaymentRequest(BaseModel):
    order_id: str
    payment_intent_id: str


class UpdateOrderStatusRequest(BaseModel):
    """Update order status request DTO; unknown statuses are rejected by the domain"""
    status: str
    staff_notes: Optional[str] = None


class OrderResponse(BaseModel):
    """Order response DTO"""
    order_id: str
    customer_id: UUID
    customer_info: CustomerInfo
    items: List[OrderItem]
    total_amount: Decimal
    tax: Decimal
    delivery_fee: Decimal
    final_amount: Decimal
    status: OrderStatus
    payment_status: OrderPaymentStatus
    payment_intent_id: str
    transaction_id: Optional[str] = None
    delivery_type: DeliveryType
    delivery_address: Optional[DeliveryAddress] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    notes: Optional[str] = None
    staff_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderStatsEntry(BaseModel):
    status: OrderStatus
    count: int
    total_revenue: Decimal


class AdminOrdersResponse(BaseModel):
    """All orders plus per-status statistics"""
    orders: List[OrderResponse]
    stats: List[OrderStatsEntry]


# ============================================================================
# CATALOG SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    category: str
    room_number: str
    name: str
    floor: int = 1
    price: Decimal = Field(ge=0)
    total: int = Field(ge=1, default=1)
    max_occupancy: int = Field(ge=1, le=10, default=2)
    maintenance_status: MaintenanceStatus = MaintenanceStatus.GOOD
    is_active: bool = True


class MaintenanceUpdateRequest(BaseModel):
    maintenance_status: MaintenanceStatus


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    category: str
    room_number: str
    name: str
    floor: int
    price: Decimal
    total: int
    available: int
    max_occupancy: int
    maintenance_status: MaintenanceStatus
    is_active: bool
    booking_status: str

    class Config:
        from_attributes = True


class CreatePackageRequest(BaseModel):
    """Create package request DTO"""
    name: str
    description: str
    package_type: PackageType
    price: Decimal = Field(ge=0)
    discount_percentage: Decimal = Field(ge=0, le=100, default=Decimal("0"))
    duration_nights: int = Field(ge=1, default=1)
    includes: List[str] = []
    seasons: List[Season] = []
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    blackout_dates: List[datetime] = []
    max_bookings: int = Field(ge=0, default=100)
    is_active: bool = True


class PackageResponse(BaseModel):
    """Package response DTO"""
    package_id: UUID
    name: str
    description: str
    package_type: PackageType
    price: Decimal
    discount_percentage: Decimal
    effective_price: Decimal
    savings: Decimal
    duration_nights: int
    includes: List[str]
    seasons: List[Season]
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    blackout_dates: List[datetime]
    is_active: bool

    class Config:
        from_attributes = True


class PackageQuoteResponse(BaseModel):
    """Package price for a given date"""
    package_id: UUID
    date: datetime
    available: bool
    price: Decimal
    effective_price: Decimal
    seasonal_price: Decimal
    savings: Decimal
    season: Optional[str] = None


class CreateHotelServiceRequest(BaseModel):
    """Create bookable service request DTO"""
    name: str
    description: str = ""
    category: ServiceType
    price: Decimal = Field(ge=0)
    is_active: bool = True


class HotelServiceResponse(BaseModel):
    service_id: UUID
    name: str
    description: str
    category: ServiceType
    price: Decimal
    is_active: bool

    class Config:
        from_attributes = True


class CreateMenuItemRequest(BaseModel):
    """Create menu item request DTO"""
    name: str
    description: str = ""
    category: str
    price: Decimal = Field(ge=0)
    is_available: bool = True


class MenuItemResponse(BaseModel):
    menu_item_id: UUID
    name: str
    description: str
    category: str
    price: Decimal
    is_available: bool

    class Config:
        from_attributes = True


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Role
    disabled: bool
