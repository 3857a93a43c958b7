"""Application Services - Business use cases"""
import logging
import time
from uuid import UUID
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from domain.auth import User
from domain.entities import Room, Package, Service, MenuItem, Booking, Order, generate_order_id
from domain.enums import (
    BookingStatus, DeliveryType, FoodOrderStatus, FoodOrderType, MaintenanceStatus,
    OrderStatus, Priority, ServiceRequestStatus, ServiceRequestType,
)
from domain.exceptions import (
    ConflictError, ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError,
)
from domain.payments import PaymentGateway, PaymentIntent
from domain.permissions import is_staff
from domain.repositories import (
    RoomRepository, PackageRepository, ServiceRepository, MenuItemRepository,
    BookingRepository, OrderRepository,
)
from domain.value_objects import (
    AdditionalService, CustomerInfo, DateRange, DeliveryAddress, FoodOrder, FoodOrderItem,
    GuestCount, OrderItem, PackageSnapshot, Review, ServiceRequest, SpecialRequests,
    to_naive_utc, utc_now,
)

booking_logger = logging.getLogger("hotel.bookings")
order_logger = logging.getLogger("hotel.orders")
catalog_logger = logging.getLogger("hotel.catalog")

BOOKING_NUMBER_ATTEMPTS = 3
STATS_PERIODS = ("week", "month", "year")


def build(model_cls, **data):
    """Construct a pydantic model, turning its validation errors into domain ones"""
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(messages, fields=fields) from e


def booking_number_prefix(moment: datetime) -> str:
    return f"GH{moment:%y%m%d}"


class CatalogService:
    """Service for rooms, packages, services and menu items"""

    def __init__(self,
                 room_repo: RoomRepository,
                 package_repo: PackageRepository,
                 service_repo: ServiceRepository,
                 menu_repo: MenuItemRepository):
        self.room_repo = room_repo
        self.package_repo = package_repo
        self.service_repo = service_repo
        self.menu_repo = menu_repo

    async def create_room(self, **fields) -> Room:
        fields.setdefault("available", fields.get("total", 1))
        room = build(Room, **fields)
        room = await self.room_repo.save(room)
        catalog_logger.info("Room %s created with %d units", room.room_number, room.total)
        return room

    async def get_room(self, room_id: UUID) -> Room:
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")
        return room

    async def set_maintenance_status(self, room_id: UUID, status: MaintenanceStatus) -> Room:
        room = await self.get_room(room_id)
        room.maintenance_status = status
        room.updated_at = utc_now()
        return await self.room_repo.update(room)

    async def create_package(self, **fields) -> Package:
        package = build(Package, **fields)
        return await self.package_repo.save(package)

    async def get_package(self, package_id: UUID) -> Package:
        package = await self.package_repo.find_by_id(package_id)
        if not package:
            raise NotFoundError("Package not found")
        return package

    async def quote_package(self, package_id: UUID, moment: datetime) -> Dict[str, Any]:
        """Availability and price of a package for a given date"""
        package = await self.get_package(package_id)
        moment = to_naive_utc(moment)
        season = package.season_for(moment)
        return {
            "package_id": package.package_id,
            "date": moment,
            "available": package.is_available(moment),
            "price": package.price,
            "effective_price": package.effective_price,
            "seasonal_price": package.seasonal_price(moment),
            "savings": package.savings,
            "season": season.name if season else None,
        }

    async def create_service(self, **fields) -> Service:
        return await self.service_repo.save(build(Service, **fields))

    async def create_menu_item(self, **fields) -> MenuItem:
        return await self.menu_repo.save(build(MenuItem, **fields))


class BookingService:
    """Service for Booking business use cases"""

    def __init__(self,
                 repository: BookingRepository,
                 room_repo: RoomRepository,
                 package_repo: PackageRepository,
                 service_repo: ServiceRepository,
                 menu_repo: MenuItemRepository):
        self.repository = repository
        self.room_repo = room_repo
        self.package_repo = package_repo
        self.service_repo = service_repo
        self.menu_repo = menu_repo

    # ==================== CREATION ====================
    async def create_booking(
        self,
        actor: User,
        room_id: UUID,
        check_in: datetime,
        check_out: datetime,
        adults: int,
        children: int = 0,
        package_id: Optional[UUID] = None,
        services: Optional[List[Dict[str, Any]]] = None,
        special_requests: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> Booking:
        """Price the stay, take a room unit and persist a confirmed booking"""
        now = now or utc_now()
        date_range = build(DateRange, check_in=check_in, check_out=check_out)
        guest_count = build(GuestCount, adults=adults, children=children)

        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")

        package = await self._package_snapshot(package_id, date_range.check_in) if package_id else None
        lines = [await self._service_line(**item) for item in services or []]
        requests = build(SpecialRequests, **special_requests) if special_requests else None

        booking = Booking.create(
            booking_number=await self._allocate_booking_number(now),
            guest_id=actor.user_id,
            room=room,
            date_range=date_range,
            guest_count=guest_count,
            package=package,
            services=lines,
            special_requests=requests,
            now=now
        )

        await self.room_repo.reserve(room.room_id)
        try:
            booking = await self._save_new(booking, now)
        except Exception:
            await self.room_repo.release(room.room_id)
            raise

        booking_logger.info(
            "Booking %s created for room %s, %d nights, total %s",
            booking.booking_number, room.room_number, booking.number_of_nights,
            booking.pricing.total_amount
        )
        return booking

    async def _allocate_booking_number(self, now: datetime) -> str:
        prefix = booking_number_prefix(now)
        sequence = await self.repository.next_booking_sequence(prefix)
        return f"{prefix}{sequence:03d}"

    async def _save_new(self, booking: Booking, now: datetime) -> Booking:
        """Persist, drawing a fresh booking number on a uniqueness conflict"""
        for attempt in range(1, BOOKING_NUMBER_ATTEMPTS + 1):
            try:
                return await self.repository.save(booking)
            except ConflictError:
                if attempt == BOOKING_NUMBER_ATTEMPTS:
                    raise
                booking_logger.warning(
                    "Booking number %s taken, retrying (%d/%d)",
                    booking.booking_number, attempt, BOOKING_NUMBER_ATTEMPTS
                )
                booking = booking.model_copy(
                    update={"booking_number": await self._allocate_booking_number(now)}
                )

    async def _package_snapshot(self, package_id: UUID, check_in: datetime) -> PackageSnapshot:
        package = await self.package_repo.find_by_id(package_id)
        if not package:
            raise NotFoundError("Package not found")
        if not package.is_available(check_in):
            raise ValidationError("Package is not available for the selected dates", fields=["package_id"])
        return package.snapshot(check_in)

    async def _service_line(
        self,
        service_id: UUID,
        quantity: int = 1,
        scheduled_date: Optional[datetime] = None,
        scheduled_time: Optional[str] = None
    ) -> AdditionalService:
        service = await self.service_repo.find_by_id(service_id)
        if not service or not service.is_active:
            raise NotFoundError("Service not found or not available")
        return build(
            AdditionalService,
            service_id=service.service_id,
            service_name=service.name,
            service_type=service.category,
            price=service.price,
            quantity=quantity,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time
        )

    # ==================== QUERIES ====================
    async def get_booking(self, booking_id: UUID, actor: User) -> Booking:
        """Get booking; guests only see their own"""
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if not is_staff(actor.role) and not booking.is_owned_by(actor.user_id):
            raise ForbiddenError("Access denied")
        return booking

    async def get_user_bookings(self, actor: User, status: Optional[BookingStatus] = None) -> List[Booking]:
        bookings = await self.repository.find_by_guest_id(actor.user_id)
        return [b for b in bookings if status is None or b.status == status]

    async def get_all_bookings(
        self,
        status: Optional[BookingStatus] = None,
        check_in_from: Optional[datetime] = None,
        check_out_to: Optional[datetime] = None
    ) -> List[Booking]:
        bookings = await self.repository.find_all()
        if status:
            bookings = [b for b in bookings if b.status == status]
        if check_in_from:
            check_in_from = to_naive_utc(check_in_from)
            bookings = [b for b in bookings if b.check_in_date >= check_in_from]
        if check_out_to:
            check_out_to = to_naive_utc(check_out_to)
            bookings = [b for b in bookings if b.check_out_date <= check_out_to]
        return bookings

    async def get_booking_stats(self, period: str = "month", now: Optional[datetime] = None) -> Dict[str, Any]:
        """Aggregate bookings created since the start of the period"""
        now = now or utc_now()
        if period == "week":
            start = datetime(now.year, now.month, now.day) - timedelta(days=7)
        elif period == "year":
            start = datetime(now.year, 1, 1)
        else:
            period = "month"
            start = datetime(now.year, now.month, 1)

        bookings = [b for b in await self.repository.find_all() if b.created_at >= start]
        revenue = sum((b.pricing.total_amount for b in bookings), Decimal("0"))

        def count(status: BookingStatus) -> int:
            return sum(1 for b in bookings if b.status == status)

        return {
            "period": period,
            "total_bookings": len(bookings),
            "total_revenue": revenue,
            "average_booking_value": revenue / len(bookings) if bookings else Decimal("0"),
            "confirmed_bookings": count(BookingStatus.CONFIRMED),
            "checked_in_bookings": count(BookingStatus.CHECKED_IN),
            "completed_bookings": count(BookingStatus.CHECKED_OUT),
            "cancelled_bookings": count(BookingStatus.CANCELLED),
        }

    # ==================== LIFECYCLE ====================
    async def update_booking(self, booking_id: UUID, actor: User, changes: Dict[str, Any]) -> Booking:
        """Apply a role-gated update; status overrides move the room ledger with them.

        Changes go onto a copy so the stored booking is untouched when the
        update or the room reservation is rejected.
        """
        stored = await self.get_booking(booking_id, actor)
        booking = stored.model_copy(deep=True)
        applied = booking.apply_update(actor.role, changes)

        reopened = stored.is_terminal() and not booking.is_terminal()
        if reopened:
            await self.room_repo.reserve(booking.room_id)
        try:
            booking = await self.repository.update(booking)
        except Exception:
            if reopened:
                await self.room_repo.release(booking.room_id)
            raise
        if not stored.is_terminal() and booking.is_terminal():
            await self.room_repo.release(booking.room_id)

        booking_logger.info("Booking %s updated by %s: %s", booking.booking_number, actor.username, applied)
        return booking

    async def cancel_booking(self, booking_id: UUID, actor: User) -> Booking:
        booking = await self.get_booking(booking_id, actor)
        booking.cancel()
        booking = await self.repository.update(booking)
        await self.room_repo.release(booking.room_id)
        booking_logger.info("Booking %s cancelled by %s", booking.booking_number, actor.username)
        return booking

    async def check_in(self, booking_id: UUID, actor: User) -> Booking:
        booking = await self.get_booking(booking_id, actor)
        booking.check_in()
        booking_logger.info("Booking %s checked in", booking.booking_number)
        return await self.repository.update(booking)

    async def check_out(self, booking_id: UUID, actor: User) -> Booking:
        booking = await self.get_booking(booking_id, actor)
        booking.check_out()
        booking = await self.repository.update(booking)
        await self.room_repo.release(booking.room_id)
        booking_logger.info("Booking %s checked out", booking.booking_number)
        return booking

    async def mark_no_show(self, booking_id: UUID, actor: User) -> Booking:
        booking = await self.get_booking(booking_id, actor)
        booking.mark_no_show()
        booking = await self.repository.update(booking)
        await self.room_repo.release(booking.room_id)
        booking_logger.info("Booking %s marked as no-show", booking.booking_number)
        return booking

    # ==================== LINE ITEMS ====================
    async def add_service(
        self,
        booking_id: UUID,
        actor: User,
        service_id: UUID,
        quantity: int = 1,
        scheduled_date: Optional[datetime] = None,
        scheduled_time: Optional[str] = None
    ) -> Booking:
        booking = await self.get_booking(booking_id, actor)
        line = await self._service_line(service_id, quantity, scheduled_date, scheduled_time)
        booking.add_service(line)
        return await self.repository.update(booking)

    async def add_food_order(
        self,
        booking_id: UUID,
        actor: User,
        items: List[Dict[str, Any]],
        order_type: FoodOrderType = FoodOrderType.ROOM_SERVICE,
        delivery_date: Optional[datetime] = None,
        delivery_time: Optional[str] = None
    ) -> Tuple[Booking, FoodOrder]:
        """Charge food to the room; prices come from the menu, not the caller"""
        booking = await self.get_booking(booking_id, actor)
        order_items = []
        for item in items:
            menu_item = await self.menu_repo.find_by_id(item["menu_item_id"])
            if not menu_item or not menu_item.is_available:
                raise NotFoundError("Menu item not found or not available")
            order_items.append(build(
                FoodOrderItem,
                menu_item_id=menu_item.menu_item_id,
                menu_item_name=menu_item.name,
                quantity=item.get("quantity", 1),
                price=menu_item.price,
                special_instructions=item.get("special_instructions")
            ))

        food_order = booking.add_food_order(
            FoodOrder.create(order_items, order_type, delivery_date, delivery_time)
        )
        return await self.repository.update(booking), food_order

    async def update_food_order(
        self,
        booking_id: UUID,
        order_id: UUID,
        actor: User,
        status: FoodOrderStatus
    ) -> FoodOrder:
        booking = await self.get_booking(booking_id, actor)
        food_order = booking.update_food_order_status(order_id, status)
        await self.repository.update(booking)
        return food_order

    # ==================== SERVICE REQUESTS & REVIEWS ====================
    async def create_service_request(
        self,
        booking_id: UUID,
        actor: User,
        request_type: ServiceRequestType,
        description: str,
        priority: Priority = Priority.MEDIUM
    ) -> ServiceRequest:
        booking = await self.get_booking(booking_id, actor)
        request = booking.create_service_request(request_type, description, priority)
        await self.repository.update(booking)
        return request

    async def update_service_request(
        self,
        booking_id: UUID,
        request_id: UUID,
        actor: User,
        assigned_staff: Optional[UUID] = None,
        status: Optional[ServiceRequestStatus] = None,
        resolution: Optional[str] = None,
        rating: Optional[int] = None
    ) -> ServiceRequest:
        booking = await self.get_booking(booking_id, actor)
        request = booking.update_service_request(
            request_id, actor.role,
            assigned_staff=assigned_staff,
            status=status,
            resolution=resolution,
            rating=rating
        )
        await self.repository.update(booking)
        return request

    async def add_review(self, booking_id: UUID, actor: User, rating: int, comment: Optional[str] = None) -> Review:
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if not booking.is_owned_by(actor.user_id):
            raise ForbiddenError("Access denied")
        review = booking.add_review(rating, comment)
        await self.repository.update(booking)
        return review


class OrderService:
    """Service for restaurant Order business use cases"""

    def __init__(self,
                 repository: OrderRepository,
                 menu_repo: MenuItemRepository,
                 payment_gateway: PaymentGateway,
                 currency: str = "inr"):
        self.repository = repository
        self.menu_repo = menu_repo
        self.payment_gateway = payment_gateway
        self.currency = currency

    async def create_payment_intent(
        self,
        actor: User,
        items: List[Dict[str, Any]],
        total_amount: Decimal,
        room_number: Optional[str] = None,
        delivery_type: DeliveryType = DeliveryType.ROOM_SERVICE,
        delivery_address: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None
    ) -> Tuple[Order, PaymentIntent]:
        """Validate the cart against the menu, open a payment and store a pending order"""
        if not items:
            raise ValidationError("Invalid items data", fields=["items"])
        if total_amount is None or Decimal(total_amount) <= 0:
            raise ValidationError("Invalid total amount", fields=["total_amount"])

        order_items = []
        for item in items:
            menu_item = await self.menu_repo.find_by_id(item["menu_item_id"])
            if not menu_item or not menu_item.is_available:
                raise ValidationError(
                    f"Menu item {item.get('name') or item['menu_item_id']} not found",
                    fields=["items"]
                )
            order_items.append(build(
                OrderItem,
                menu_item_id=menu_item.menu_item_id,
                name=menu_item.name,
                price=menu_item.price,
                quantity=item.get("quantity", 1),
                category=menu_item.category
            ))

        order = Order.create(
            order_id=generate_order_id(),
            customer_id=actor.user_id,
            customer_info=CustomerInfo(
                email=actor.email or f"{actor.username}@guest.local",
                name=actor.full_name or actor.username,
                phone=actor.phone,
                room_number=room_number
            ),
            items=order_items,
            delivery_type=delivery_type,
            payment_intent_id="",
            client_total=Decimal(total_amount),
            delivery_address=build(DeliveryAddress, **delivery_address) if delivery_address else None,
            notes=notes
        )

        intent = await self.payment_gateway.create_intent(
            order.final_amount,
            self.currency,
            {
                "orderId": order.order_id,
                "customerEmail": order.customer_info.email,
                "customerId": str(actor.user_id),
                "orderType": "restaurant",
            }
        )
        order.payment_intent_id = intent.id
        order = await self.repository.save(order)
        order_logger.info("Order %s created, final amount %s", order.order_id, order.final_amount)
        return order, intent

    async def confirm_payment(self, actor: User, order_id: str, payment_intent_id: str) -> Order:
        """Ask the gateway about the payment and move the order accordingly"""
        order = await self.repository.find_by_order_id(order_id)
        if not order or order.customer_id != actor.user_id:
            raise NotFoundError("Order not found or access denied")
        if order.payment_intent_id != payment_intent_id:
            raise ValidationError("Payment intent does not belong to this order", fields=["payment_intent_id"])

        order.begin_payment()
        await self.repository.update(order)

        succeeded = await self.payment_gateway.confirm_intent(payment_intent_id)
        if not succeeded:
            order.fail_payment()
            await self.repository.update(order)
            order_logger.warning("Payment for order %s failed verification", order.order_id)
            raise ValidationError("Payment verification failed", fields=["payment_intent_id"])

        order.complete_payment(payment_intent_id, f"txn_{int(time.time() * 1000)}")
        order_logger.info("Payment for order %s completed", order.order_id)
        return await self.repository.update(order)

    async def get_order(self, actor: User, order_id: str) -> Order:
        order = await self.repository.find_by_order_id(order_id)
        if not order or (order.customer_id != actor.user_id and not is_staff(actor.role)):
            raise NotFoundError("Order not found")
        return order

    async def get_user_orders(self, actor: User, status: Optional[OrderStatus] = None) -> List[Order]:
        orders = await self.repository.find_by_customer_id(actor.user_id)
        return [o for o in orders if status is None or o.status == status]

    async def get_all_orders(
        self,
        status: Optional[OrderStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Tuple[List[Order], List[Dict[str, Any]]]:
        """All orders plus per-status count and revenue"""
        orders = await self.repository.find_all()
        if status:
            orders = [o for o in orders if o.status == status]
        if start_date and end_date:
            start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
            orders = [o for o in orders if start_date <= o.created_at <= end_date]

        stats: Dict[OrderStatus, Dict[str, Any]] = {}
        for order in orders:
            entry = stats.setdefault(order.status, {"status": order.status, "count": 0, "total_revenue": Decimal("0")})
            entry["count"] += 1
            entry["total_revenue"] += order.final_amount
        return orders, list(stats.values())

    async def update_order_status(
        self,
        actor: User,
        order_id: str,
        status: str,
        staff_notes: Optional[str] = None
    ) -> Order:
        order = await self.repository.find_by_order_id(order_id)
        if not order:
            raise NotFoundError("Order not found")
        order.update_status(status, staff_id=actor.user_id, staff_notes=staff_notes)
        order_logger.info("Order %s moved to %s by %s", order.order_id, order.status.value, actor.username)
        return await self.repository.update(order)

    async def cancel_order(self, actor: User, order_id: str) -> Order:
        """Customers may cancel their own orders while pending or confirmed"""
        order = await self.repository.find_by_order_id(order_id)
        if not order or order.customer_id != actor.user_id:
            raise NotFoundError("Order not found")
        if not order.is_customer_cancellable():
            raise InvalidTransitionError("Cannot cancel order in current status")
        order.cancel()
        order_logger.info("Order %s cancelled by customer", order.order_id)
        return await self.repository.update(order)
