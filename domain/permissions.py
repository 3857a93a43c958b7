"""Domain Permissions - explicit capability set per role"""
from enum import Enum
from typing import Dict, FrozenSet

from domain.enums import Role


class Permission(str, Enum):
    CREATE_BOOKING = "create_booking"
    VIEW_ALL_BOOKINGS = "view_all_bookings"
    VIEW_BOOKING_STATS = "view_booking_stats"
    MANAGE_STAY = "manage_stay"
    MANAGE_FOOD_ORDERS = "manage_food_orders"
    REVIEW_STAY = "review_stay"
    PLACE_ORDER = "place_order"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_CATALOG = "manage_catalog"


_GUEST = frozenset({
    Permission.CREATE_BOOKING,
    Permission.REVIEW_STAY,
    Permission.PLACE_ORDER,
})

_STAFF = frozenset({
    Permission.VIEW_ALL_BOOKINGS,
    Permission.VIEW_BOOKING_STATS,
    Permission.MANAGE_STAY,
    Permission.MANAGE_FOOD_ORDERS,
    Permission.MANAGE_ORDERS,
    Permission.PLACE_ORDER,
})

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.USER: _GUEST,
    Role.STAFF: _STAFF,
    Role.MANAGER: _STAFF | {Permission.CREATE_BOOKING},
    Role.ADMIN: _STAFF | {Permission.CREATE_BOOKING, Permission.MANAGE_CATALOG},
    Role.CEO: _STAFF | {Permission.CREATE_BOOKING, Permission.MANAGE_CATALOG},
}


def has_permission(role: Role, permission: Permission) -> bool:
    """Check whether a role carries a capability"""
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def is_staff(role: Role) -> bool:
    """Staff-side roles may override locked booking fields"""
    return role != Role.USER
