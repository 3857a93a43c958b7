"""Pricing engine for bookings and restaurant orders"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, NamedTuple, Optional, TYPE_CHECKING

from domain.enums import DeliveryType
from domain.exceptions import ValidationError
from domain.value_objects import OrderItem

if TYPE_CHECKING:
    from domain.entities import Booking

BOOKING_TAX_RATE = Decimal("0.18")
ORDER_TAX_RATE = Decimal("0.10")
ROOM_SERVICE_DELIVERY_FEE = Decimal("50")
CLIENT_TOTAL_TOLERANCE = Decimal("0.01")

_ZERO = Decimal("0")


class OrderTotals(NamedTuple):
    total_amount: Decimal
    tax: Decimal
    delivery_fee: Decimal
    final_amount: Decimal


def compute_booking_total(booking: "Booking") -> Decimal:
    """Recompute the booking's pricing record in place and return the total.

    room rate x nights + package + services + food, plus 18% tax, minus
    discount. Does not persist anything.
    """
    pricing = booking.pricing
    room_total = pricing.room_rate * booking.number_of_nights
    services_total = sum(
        (service.line_total for service in booking.additional_services.values()), _ZERO
    )
    food_total = sum(
        (order.total_amount for order in booking.food_orders.values()), _ZERO
    )

    subtotal = room_total + pricing.package_price + services_total + food_total
    tax_amount = subtotal * BOOKING_TAX_RATE

    pricing.services_total = services_total
    pricing.food_total = food_total
    pricing.tax_amount = tax_amount
    pricing.total_amount = subtotal + tax_amount - pricing.discount_amount
    return pricing.total_amount


def sum_order_items(items: List[OrderItem]) -> Decimal:
    """Rewrite each item's subtotal from price and quantity and return the sum"""
    for item in items:
        item.subtotal = item.price * item.quantity
    return sum((item.subtotal for item in items), _ZERO)


def delivery_fee_for(delivery_type: DeliveryType) -> Decimal:
    if delivery_type == DeliveryType.ROOM_SERVICE:
        return ROOM_SERVICE_DELIVERY_FEE
    return _ZERO


def compute_order_total(
    items: List[OrderItem],
    delivery_type: DeliveryType,
    client_total: Optional[Decimal] = None
) -> OrderTotals:
    """Price a restaurant order from its items.

    A client-supplied total that disagrees with the server total by more than
    0.01 is rejected, never corrected.
    """
    if not items:
        raise ValidationError("Order must contain at least one item", fields=["items"])

    total_amount = sum_order_items(items)
    if client_total is not None and abs(total_amount - Decimal(client_total)) > CLIENT_TOTAL_TOLERANCE:
        raise ValidationError("Total amount mismatch", fields=["total_amount"])

    tax = (total_amount * ORDER_TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    delivery_fee = delivery_fee_for(delivery_type)
    return OrderTotals(
        total_amount=total_amount,
        tax=tax,
        delivery_fee=delivery_fee,
        final_amount=total_amount + tax + delivery_fee
    )
