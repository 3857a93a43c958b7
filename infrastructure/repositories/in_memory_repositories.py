"""In-Memory Repository Implementations"""
import asyncio
import logging
from collections import defaultdict
from typing import Optional, List, Dict
from uuid import UUID

from domain.repositories import (
    RoomRepository, PackageRepository, ServiceRepository, MenuItemRepository,
    BookingRepository, OrderRepository,
)
from domain.entities import Room, Package, Service, MenuItem, Booking, Order
from domain.exceptions import ConflictError, NotFoundError

logger = logging.getLogger("hotel.ledger")


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository.

    The availability counter is only changed under the repository lock, so a
    check-then-decrement cannot interleave with another one.
    """

    def __init__(self):
        self._storage: Dict[UUID, Room] = {}
        self._lock = asyncio.Lock()

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        async with self._lock:
            for existing in self._storage.values():
                if existing.room_number == room.room_number and existing.room_id != room.room_id:
                    raise ConflictError(f"Room number {room.room_number} already exists")
            self._storage[room.room_id] = room
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        return self._storage.get(room_id)

    async def find_all(self) -> List[Room]:
        """Find all rooms"""
        return sorted(self._storage.values(), key=lambda r: r.room_number)

    async def update(self, room: Room) -> Room:
        """Update room"""
        if room.room_id in self._storage:
            self._storage[room.room_id] = room
            return room
        raise NotFoundError("Room not found")

    async def reserve(self, room_id: UUID) -> Room:
        """Take one unit if any is left"""
        async with self._lock:
            room = self._storage.get(room_id)
            if room is None:
                raise NotFoundError("Room not found")
            room.reserve()
            logger.info("Reserved room %s, %d left", room.room_number, room.available)
            return room

    async def release(self, room_id: UUID) -> Optional[Room]:
        """Give one unit back"""
        async with self._lock:
            room = self._storage.get(room_id)
            if room is None:
                logger.warning("Release for unknown room %s ignored", room_id)
                return None
            if not room.release():
                logger.warning(
                    "Release for room %s ignored, already at capacity %d",
                    room.room_number, room.total
                )
            return room


class InMemoryPackageRepository(PackageRepository):
    """In-memory implementation of PackageRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Package] = {}

    async def save(self, package: Package) -> Package:
        self._storage[package.package_id] = package
        return package

    async def find_by_id(self, package_id: UUID) -> Optional[Package]:
        return self._storage.get(package_id)

    async def find_all(self) -> List[Package]:
        return list(self._storage.values())


class InMemoryServiceRepository(ServiceRepository):
    """In-memory implementation of ServiceRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Service] = {}

    async def save(self, service: Service) -> Service:
        self._storage[service.service_id] = service
        return service

    async def find_by_id(self, service_id: UUID) -> Optional[Service]:
        return self._storage.get(service_id)


class InMemoryMenuItemRepository(MenuItemRepository):
    """In-memory implementation of MenuItemRepository"""

    def __init__(self):
        self._storage: Dict[UUID, MenuItem] = {}

    async def save(self, menu_item: MenuItem) -> MenuItem:
        self._storage[menu_item.menu_item_id] = menu_item
        return menu_item

    async def find_by_id(self, menu_item_id: UUID) -> Optional[MenuItem]:
        return self._storage.get(menu_item_id)


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of BookingRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Booking] = {}
        self._sequences: Dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    async def save(self, booking: Booking) -> Booking:
        """Save booking to memory"""
        async with self._lock:
            for existing in self._storage.values():
                if existing.booking_number == booking.booking_number and existing.booking_id != booking.booking_id:
                    raise ConflictError(f"Booking number {booking.booking_number} already exists")
            self._storage[booking.booking_id] = booking
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        return self._storage.get(booking_id)

    async def find_by_booking_number(self, booking_number: str) -> Optional[Booking]:
        """Find booking by booking number"""
        for booking in self._storage.values():
            if booking.booking_number == booking_number:
                return booking
        return None

    async def find_by_guest_id(self, guest_id: UUID) -> List[Booking]:
        """Find bookings by guest ID"""
        bookings = [b for b in self._storage.values() if b.guest_id == guest_id]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    async def find_all(self) -> List[Booking]:
        """Find all bookings"""
        return sorted(self._storage.values(), key=lambda b: b.created_at, reverse=True)

    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        if booking.booking_id in self._storage:
            self._storage[booking.booking_id] = booking
            return booking
        raise NotFoundError("Booking not found")

    async def next_booking_sequence(self, day_prefix: str) -> int:
        """Per-day counter; each call hands out a fresh number"""
        async with self._lock:
            self._sequences[day_prefix] += 1
            return self._sequences[day_prefix]


class InMemoryOrderRepository(OrderRepository):
    """In-memory implementation of OrderRepository"""

    def __init__(self):
        self._storage: Dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def save(self, order: Order) -> Order:
        """Save order to memory, recomputing totals from its items"""
        async with self._lock:
            if order.order_id in self._storage:
                raise ConflictError(f"Order {order.order_id} already exists")
            for existing in self._storage.values():
                if existing.payment_intent_id == order.payment_intent_id:
                    raise ConflictError("Payment intent is already attached to another order")
            order.recalculate()
            self._storage[order.order_id] = order
        return order

    async def find_by_order_id(self, order_id: str) -> Optional[Order]:
        return self._storage.get(order_id)

    async def find_by_customer_id(self, customer_id: UUID) -> List[Order]:
        orders = [o for o in self._storage.values() if o.customer_id == customer_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def find_all(self) -> List[Order]:
        return sorted(self._storage.values(), key=lambda o: o.created_at, reverse=True)

    async def update(self, order: Order) -> Order:
        if order.order_id not in self._storage:
            raise NotFoundError("Order not found")
        order.recalculate()
        self._storage[order.order_id] = order
        return order
