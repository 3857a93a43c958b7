import logging
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from uuid import UUID
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Booking
    CreateBookingRequest, UpdateBookingRequest, ServiceLineRequest, AddFoodOrderRequest,
    UpdateFoodOrderRequest, CreateServiceTicketRequest, UpdateServiceTicketRequest,
    ReviewRequest, BookingResponse, FoodOrderResponse, BookingStatsResponse,
    # Order
    CreatePaymentIntentRequest, PaymentIntentResponse, ConfirmPaymentRequest,
    UpdateOrderStatusRequest, OrderResponse, AdminOrdersResponse,
    # Catalog
    CreateRoomRequest, MaintenanceUpdateRequest, RoomResponse, CreatePackageRequest,
    PackageResponse, PackageQuoteResponse, CreateHotelServiceRequest, HotelServiceResponse,
    CreateMenuItemRequest, MenuItemResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, fake_users_db, get_user, require_permission
from infrastructure.security import verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.config import get_settings
from infrastructure.logging_config import setup_logging
from domain.auth import User
from domain.exceptions import HotelError, UpstreamError
from domain.permissions import Permission
from domain.payments import PaymentGateway
from domain.value_objects import FoodOrder, Review, ServiceRequest, utc_now

from application.services import BookingService, CatalogService, OrderService
from infrastructure.payment_gateways import InMemoryPaymentGateway, StripePaymentGateway
from infrastructure.repositories.in_memory_repositories import (
    InMemoryRoomRepository, InMemoryPackageRepository, InMemoryServiceRepository,
    InMemoryMenuItemRepository, InMemoryBookingRepository, InMemoryOrderRepository
)
from domain.enums import BookingStatus, OrderStatus

settings = get_settings()
setup_logging(settings.log_level)
api_logger = logging.getLogger("hotel.api")

app = FastAPI(
    title="Hotel Operations API",
    description="Bookings, room-service orders and catalog management for a single hotel",
    version="1.0.0"
)


def _build_payment_gateway() -> PaymentGateway:
    if settings.stripe_secret_key:
        return StripePaymentGateway(settings.stripe_secret_key, settings.payment_timeout_seconds)
    api_logger.warning("STRIPE_SECRET_KEY not set, using the in-memory payment gateway")
    return InMemoryPaymentGateway()


# Initialize repositories
room_repo = InMemoryRoomRepository()
package_repo = InMemoryPackageRepository()
service_repo = InMemoryServiceRepository()
menu_repo = InMemoryMenuItemRepository()
booking_repo = InMemoryBookingRepository()
order_repo = InMemoryOrderRepository()
payment_gateway = _build_payment_gateway()

# Dependency injection
def get_catalog_service() -> CatalogService:
    return CatalogService(room_repo, package_repo, service_repo, menu_repo)

def get_booking_service() -> BookingService:
    return BookingService(booking_repo, room_repo, package_repo, service_repo, menu_repo)

def get_order_service() -> OrderService:
    return OrderService(order_repo, menu_repo, payment_gateway, settings.payment_currency)

# ============================================================================
# ERROR HANDLERS
# ============================================================================

_HTTP_ERROR_KEYS = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}

def _error_response(status_code: int, error: str, detail: str, fields=None, headers=None) -> JSONResponse:
    content = {
        "error": error,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if fields:
        content["fields"] = fields
    return JSONResponse(status_code=status_code, content=content, headers=headers)

@app.exception_handler(HotelError)
async def hotel_error_handler(request: Request, exc: HotelError):
    detail = exc.message
    if isinstance(exc, UpstreamError):
        api_logger.error("%s %s failed upstream: %s", request.method, request.url.path, exc.message)
        if settings.is_production:
            detail = "Upstream service unavailable, please retry"
    elif exc.status_code >= 500:
        api_logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.error_key, detail, exc.fields)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [
        ".".join(str(part) for part in err["loc"] if part != "body")
        for err in exc.errors()
    ]
    return _error_response(400, "validation_error", f"Invalid request: {', '.join(fields)}", fields)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(
        exc.status_code,
        _HTTP_ERROR_KEYS.get(exc.status_code, "http_error"),
        str(exc.detail),
        headers=getattr(exc, "headers", None)
    )

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "message": "API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment
    }

@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Get all BookingStatus enum values"""
    return {
        "values": [item.value for item in BookingStatus],
        "description": "Booking status values: confirmed, checked-in, checked-out, cancelled, no-show"
    }

@app.get("/api/enums/order-status", tags=["Enum Reference"])
async def get_order_statuses():
    """Get all OrderStatus enum values"""
    return {
        "values": [item.value for item in OrderStatus],
        "description": "Order status values: pending, confirmed, preparing, ready, out_for_delivery, delivered, cancelled"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.post("/api/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    request: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.CREATE_BOOKING))
):
    """Create new booking and take one unit of the room"""
    booking = await service.create_booking(
        actor=current_user,
        room_id=request.room_id,
        check_in=request.check_in_date,
        check_out=request.check_out_date,
        adults=request.adults,
        children=request.children,
        package_id=request.package_id,
        services=[line.model_dump() for line in request.additional_services],
        special_requests=request.special_requests.model_dump() if request.special_requests else None
    )
    return _booking_to_response(booking)

@app.get("/api/bookings/my-bookings", response_model=List[BookingResponse], tags=["Bookings"])
async def get_my_bookings(
    status: Optional[BookingStatus] = None,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get bookings of the current user"""
    bookings = await service.get_user_bookings(current_user, status)
    return [_booking_to_response(b) for b in bookings]

@app.get("/api/bookings/stats", response_model=BookingStatsResponse, tags=["Bookings"])
async def get_booking_stats(
    period: str = "month",
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.VIEW_BOOKING_STATS))
):
    """Booking statistics for the last week, the current month or the current year"""
    return await service.get_booking_stats(period)

@app.get("/api/bookings", response_model=List[BookingResponse], tags=["Bookings"])
async def get_all_bookings(
    status: Optional[BookingStatus] = None,
    check_in_from: Optional[datetime] = None,
    check_out_to: Optional[datetime] = None,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.VIEW_ALL_BOOKINGS))
):
    """Get all bookings"""
    bookings = await service.get_all_bookings(status, check_in_from, check_out_to)
    return [_booking_to_response(b) for b in bookings]

@app.get("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get booking by ID"""
    return _booking_to_response(await service.get_booking(booking_id, current_user))

@app.put("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def update_booking(
    booking_id: UUID,
    request: UpdateBookingRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Update booking fields permitted for the caller's role"""
    booking = await service.update_booking(booking_id, current_user, request.model_dump(exclude_none=True))
    return _booking_to_response(booking)

@app.put("/api/bookings/{booking_id}/cancel", response_model=BookingResponse, tags=["Bookings"])
async def cancel_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel booking and release the room"""
    return _booking_to_response(await service.cancel_booking(booking_id, current_user))

@app.put("/api/bookings/{booking_id}/check-in", response_model=BookingResponse, tags=["Bookings"])
async def check_in_guest(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_STAY))
):
    """Check in guest"""
    return _booking_to_response(await service.check_in(booking_id, current_user))

@app.put("/api/bookings/{booking_id}/check-out", response_model=BookingResponse, tags=["Bookings"])
async def check_out_guest(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_STAY))
):
    """Check out guest and release the room"""
    return _booking_to_response(await service.check_out(booking_id, current_user))

@app.put("/api/bookings/{booking_id}/no-show", response_model=BookingResponse, tags=["Bookings"])
async def mark_no_show(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_STAY))
):
    """Mark booking as no-show and release the room"""
    return _booking_to_response(await service.mark_no_show(booking_id, current_user))

@app.post("/api/bookings/{booking_id}/services", response_model=BookingResponse, tags=["Bookings"])
async def add_booking_service(
    booking_id: UUID,
    request: ServiceLineRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Add an additional service to the booking"""
    booking = await service.add_service(
        booking_id, current_user,
        service_id=request.service_id,
        quantity=request.quantity,
        scheduled_date=request.scheduled_date,
        scheduled_time=request.scheduled_time
    )
    return _booking_to_response(booking)

@app.post("/api/bookings/{booking_id}/food-orders", response_model=FoodOrderResponse, status_code=201, tags=["Bookings"])
async def add_food_order(
    booking_id: UUID,
    request: AddFoodOrderRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Charge a food order to the booking"""
    booking, food_order = await service.add_food_order(
        booking_id, current_user,
        items=[item.model_dump() for item in request.items],
        order_type=request.order_type,
        delivery_date=request.delivery_date,
        delivery_time=request.delivery_time
    )
    return FoodOrderResponse(
        booking_id=booking.booking_id,
        food_order=food_order,
        booking_total=booking.pricing.total_amount
    )

@app.put("/api/bookings/{booking_id}/food-orders/{order_id}", response_model=FoodOrder, tags=["Bookings"])
async def update_food_order(
    booking_id: UUID,
    order_id: UUID,
    request: UpdateFoodOrderRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_FOOD_ORDERS))
):
    """Update food order status"""
    return await service.update_food_order(booking_id, order_id, current_user, request.status)

@app.post("/api/bookings/{booking_id}/service-requests", response_model=ServiceRequest, status_code=201, tags=["Bookings"])
async def create_service_request(
    booking_id: UUID,
    request: CreateServiceTicketRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Raise a service request on the booking"""
    return await service.create_service_request(
        booking_id, current_user,
        request_type=request.request_type,
        description=request.description,
        priority=request.priority
    )

@app.put("/api/bookings/{booking_id}/service-requests/{request_id}", response_model=ServiceRequest, tags=["Bookings"])
async def update_service_request(
    booking_id: UUID,
    request_id: UUID,
    request: UpdateServiceTicketRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Staff progress a service request; guests rate resolved ones"""
    return await service.update_service_request(
        booking_id, request_id, current_user,
        assigned_staff=request.assigned_staff,
        status=request.status,
        resolution=request.resolution,
        rating=request.rating
    )

@app.post("/api/bookings/{booking_id}/review", response_model=Review, status_code=201, tags=["Bookings"])
async def add_review(
    booking_id: UUID,
    request: ReviewRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_permission(Permission.REVIEW_STAY))
):
    """Review a completed stay"""
    return await service.add_review(booking_id, current_user, request.rating, request.comment)

# ============================================================================
# ORDER ENDPOINTS
# ============================================================================

@app.post("/api/orders/create-payment-intent", response_model=PaymentIntentResponse, tags=["Orders"])
async def create_payment_intent(
    request: CreatePaymentIntentRequest,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_permission(Permission.PLACE_ORDER))
):
    """Price the cart, open a payment intent and store a pending order"""
    order, intent = await service.create_payment_intent(
        current_user,
        items=[item.model_dump() for item in request.items],
        total_amount=request.total_amount,
        room_number=request.room_number,
        delivery_type=request.delivery_type,
        delivery_address=request.delivery_address.model_dump() if request.delivery_address else None,
        notes=request.notes
    )
    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
        order_id=order.order_id,
        total_amount=order.total_amount,
        tax=order.tax,
        delivery_fee=order.delivery_fee,
        final_amount=order.final_amount
    )

@app.post("/api/orders/confirm-payment", response_model=OrderResponse, tags=["Orders"])
async def confirm_payment(
    request: ConfirmPaymentRequest,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_permission(Permission.PLACE_ORDER))
):
    """Confirm the order once the payment provider reports success"""
    order = await service.confirm_payment(current_user, request.order_id, request.payment_intent_id)
    return OrderResponse.model_validate(order)

@app.get("/api/orders", response_model=List[OrderResponse], tags=["Orders"])
async def get_my_orders(
    status: Optional[OrderStatus] = None,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get orders of the current user"""
    orders = await service.get_user_orders(current_user, status)
    return [OrderResponse.model_validate(o) for o in orders]

@app.get("/api/orders/admin/all", response_model=AdminOrdersResponse, tags=["Orders"])
async def get_all_orders(
    status: Optional[OrderStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_ORDERS))
):
    """Get all orders with per-status statistics"""
    orders, stats = await service.get_all_orders(status, start_date, end_date)
    return AdminOrdersResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        stats=stats
    )

@app.get("/api/orders/{order_id}", response_model=OrderResponse, tags=["Orders"])
async def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get order by ID"""
    return OrderResponse.model_validate(await service.get_order(current_user, order_id))

@app.put("/api/orders/{order_id}/status", response_model=OrderResponse, tags=["Orders"])
async def update_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_ORDERS))
):
    """Update order fulfilment status"""
    order = await service.update_order_status(current_user, order_id, request.status, request.staff_notes)
    return OrderResponse.model_validate(order)

@app.delete("/api/orders/{order_id}", response_model=OrderResponse, tags=["Orders"])
async def cancel_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel a pending or confirmed order"""
    return OrderResponse.model_validate(await service.cancel_order(current_user, order_id))

# ============================================================================
# CATALOG ENDPOINTS
# ============================================================================

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Catalog"])
async def create_room(
    request: CreateRoomRequest,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_CATALOG))
):
    """Create room with all units available"""
    return RoomResponse.model_validate(await service.create_room(**request.model_dump()))

@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Catalog"])
async def get_room(
    room_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get room by ID"""
    return RoomResponse.model_validate(await service.get_room(room_id))

@app.put("/api/rooms/{room_id}/maintenance", response_model=RoomResponse, tags=["Catalog"])
async def set_room_maintenance(
    room_id: UUID,
    request: MaintenanceUpdateRequest,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_CATALOG))
):
    """Set room maintenance status"""
    room = await service.set_maintenance_status(room_id, request.maintenance_status)
    return RoomResponse.model_validate(room)

@app.post("/api/packages", response_model=PackageResponse, status_code=201, tags=["Catalog"])
async def create_package(
    request: CreatePackageRequest,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_CATALOG))
):
    """Create package"""
    return PackageResponse.model_validate(await service.create_package(**request.model_dump()))

@app.get("/api/packages/{package_id}", response_model=PackageResponse, tags=["Catalog"])
async def get_package(
    package_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get package by ID"""
    return PackageResponse.model_validate(await service.get_package(package_id))

@app.get("/api/packages/{package_id}/quote", response_model=PackageQuoteResponse, tags=["Catalog"])
async def quote_package(
    package_id: UUID,
    on: Optional[datetime] = None,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(get_current_active_user)
):
    """Package availability and seasonal price on a date (default now)"""
    return await service.quote_package(package_id, on or utc_now())

@app.post("/api/services", response_model=HotelServiceResponse, status_code=201, tags=["Catalog"])
async def create_hotel_service(
    request: CreateHotelServiceRequest,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_CATALOG))
):
    """Create bookable service"""
    return HotelServiceResponse.model_validate(await service.create_service(**request.model_dump()))

@app.post("/api/menu-items", response_model=MenuItemResponse, status_code=201, tags=["Catalog"])
async def create_menu_item(
    request: CreateMenuItemRequest,
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(require_permission(Permission.MANAGE_CATALOG))
):
    """Create menu item"""
    return MenuItemResponse.model_validate(await service.create_menu_item(**request.model_dump()))

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _booking_to_response(booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        booking_id=booking.booking_id,
        booking_number=booking.booking_number,
        guest_id=booking.guest_id,
        room_id=booking.room_id,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        number_of_nights=booking.number_of_nights,
        adults=booking.guest_count.adults,
        children=booking.guest_count.children,
        selected_package=booking.selected_package,
        additional_services=list(booking.additional_services.values()),
        food_orders=list(booking.food_orders.values()),
        service_requests=list(booking.service_requests.values()),
        pricing=booking.pricing,
        payment=booking.payment,
        special_requests=booking.special_requests,
        status=booking.status,
        current_status=booking.current_status(),
        days_until_check_in=booking.days_until_check_in(),
        actual_check_in=booking.actual_check_in,
        actual_check_out=booking.actual_check_out,
        review=booking.review,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        version=booking.version
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
