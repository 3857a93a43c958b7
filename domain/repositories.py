"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID

from domain.entities import Room, Package, Service, MenuItem, Booking, Order


class RoomRepository(ABC):
    """Repository interface for Room Aggregate.

    `reserve` and `release` are the only operations that change the
    availability counter and must each be atomic.
    """

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save new room; duplicate room numbers raise ConflictError"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        """Find all rooms"""
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        """Update room"""
        pass

    @abstractmethod
    async def reserve(self, room_id: UUID) -> Room:
        """Atomically take one unit; raises UnavailableError when none left"""
        pass

    @abstractmethod
    async def release(self, room_id: UUID) -> Optional[Room]:
        """Atomically return one unit, capped at capacity"""
        pass


class PackageRepository(ABC):
    """Repository interface for Package Aggregate"""

    @abstractmethod
    async def save(self, package: Package) -> Package:
        pass

    @abstractmethod
    async def find_by_id(self, package_id: UUID) -> Optional[Package]:
        pass

    @abstractmethod
    async def find_all(self) -> List[Package]:
        pass


class ServiceRepository(ABC):
    """Repository interface for bookable hotel services"""

    @abstractmethod
    async def save(self, service: Service) -> Service:
        pass

    @abstractmethod
    async def find_by_id(self, service_id: UUID) -> Optional[Service]:
        pass


class MenuItemRepository(ABC):
    """Repository interface for restaurant menu items"""

    @abstractmethod
    async def save(self, menu_item: MenuItem) -> MenuItem:
        pass

    @abstractmethod
    async def find_by_id(self, menu_item_id: UUID) -> Optional[MenuItem]:
        pass


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate"""

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Save new booking; duplicate booking numbers raise ConflictError"""
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_by_booking_number(self, booking_number: str) -> Optional[Booking]:
        """Find booking by booking number"""
        pass

    @abstractmethod
    async def find_by_guest_id(self, guest_id: UUID) -> List[Booking]:
        """Find bookings of a guest, newest first"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Booking]:
        """Find all bookings, newest first"""
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        pass

    @abstractmethod
    async def next_booking_sequence(self, day_prefix: str) -> int:
        """Atomically allocate the next sequence number for a booking-number day prefix"""
        pass


class OrderRepository(ABC):
    """Repository interface for Order Aggregate.

    Implementations recompute order totals from items on every write.
    """

    @abstractmethod
    async def save(self, order: Order) -> Order:
        """Save new order; duplicate order or payment intent IDs raise ConflictError"""
        pass

    @abstractmethod
    async def find_by_order_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def find_by_customer_id(self, customer_id: UUID) -> List[Order]:
        pass

    @abstractmethod
    async def find_all(self) -> List[Order]:
        pass

    @abstractmethod
    async def update(self, order: Order) -> Order:
        pass
