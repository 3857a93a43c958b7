"""Domain Enums"""
from enum import Enum


class Role(str, Enum):
    USER = "user"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"
    CEO = "ceo"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class BookingPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially-paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CARD = "card"
    UPI = "upi"
    NET_BANKING = "net-banking"
    WALLET = "wallet"
    CASH = "cash"
    STRIPE = "stripe"


class ServiceType(str, Enum):
    SPA = "spa"
    GYM = "gym"
    LAUNDRY = "laundry"
    TRANSPORT = "transport"
    TOUR = "tour"
    DINING = "dining"
    OTHER = "other"


class AdditionalServiceStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FoodOrderType(str, Enum):
    ROOM_SERVICE = "room-service"
    RESTAURANT = "restaurant"
    TAKEAWAY = "takeaway"


class FoodOrderStatus(str, Enum):
    ORDERED = "ordered"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ServiceRequestType(str, Enum):
    HOUSEKEEPING = "housekeeping"
    MAINTENANCE = "maintenance"
    BUTLER = "butler"
    CONCIERGE = "concierge"
    COMPLAINT = "complaint"
    EMERGENCY = "emergency"


class ServiceRequestStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MaintenanceStatus(str, Enum):
    GOOD = "good"
    NEEDS_CLEANING = "needs_cleaning"
    MAINTENANCE_REQUIRED = "maintenance_required"
    OUT_OF_ORDER = "out_of_order"


class PackageType(str, Enum):
    HONEYMOON = "honeymoon"
    FAMILY = "family"
    BUSINESS = "business"
    WEEKEND = "weekend"
    LUXURY = "luxury"
    BUDGET = "budget"
    ADVENTURE = "adventure"
    WELLNESS = "wellness"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class DeliveryType(str, Enum):
    ROOM_SERVICE = "room_service"
    PICKUP = "pickup"
    DINE_IN = "dine_in"
