"""
Price Breakdown Calculator

Composes every pricing layer into one itemized total. Pure and deterministic:
the same PriceComponents always produce an equal ItemizedTotal.

Order of operations (changing it changes results):
1. room_subtotal = base_price * nights * rooms
2. extra_guests = max(0, guests - free_guest_limit)
   extra_guest_total = extra_guests * extra_guest_charge * nights
3. meal_total = sum(price_per_guest_per_night * guests * nights) over meals
4. subtotal = room_subtotal + extra_guest_total + meal_total
5. dynamic_adjustment = subtotal * (dynamic_multiplier - 1)
   subtotal_after_dynamic = subtotal + dynamic_adjustment
6. discount = subtotal_after_dynamic * discount_percent / 100
7. taxes = explicit_taxes, else (subtotal_after_dynamic - discount) * tax_rate
8. service_fee = explicit_service_fee, else (subtotal_after_dynamic - discount) * service_fee_rate
9. total = subtotal_after_dynamic - discount + taxes + service_fee

Amounts keep full Decimal precision; round only for display.
"""

from decimal import Decimal
from typing import Optional

from .errors import InvalidInputError
from .records import ItemizedTotal, PriceComponents

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

DEFAULT_TAX_RATE = Decimal("0.12")
DEFAULT_SERVICE_FEE_RATE = Decimal("0.05")


def _as_decimal(value, name: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{name} must be numeric")
    try:
        # str() keeps floats like 1.2 from dragging binary noise along
        return Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidInputError(f"{name} must be numeric") from exc


def _validate(components: PriceComponents) -> None:
    if components.nights <= 0:
        raise InvalidInputError("nights must be positive")
    if components.rooms <= 0:
        raise InvalidInputError("rooms must be positive")
    if components.guests <= 0:
        raise InvalidInputError("guests must be positive")
    if components.free_guest_limit < 0:
        raise InvalidInputError("free_guest_limit cannot be negative")
    if _as_decimal(components.base_price, "base_price") < 0:
        raise InvalidInputError("base_price cannot be negative")
    if _as_decimal(components.extra_guest_charge, "extra_guest_charge") < 0:
        raise InvalidInputError("extra_guest_charge cannot be negative")
    if _as_decimal(components.dynamic_multiplier, "dynamic_multiplier") < 0:
        raise InvalidInputError("dynamic_multiplier cannot be negative")

    discount = _as_decimal(components.discount_percent, "discount_percent")
    if discount < 0 or discount > HUNDRED:
        raise InvalidInputError("discount_percent must be between 0 and 100")

    for meal, price in components.meal_addons.items():
        if _as_decimal(price, f"meal price for {meal}") < 0:
            raise InvalidInputError(f"meal price for {meal} cannot be negative")

    for name in ("tax_rate", "service_fee_rate", "explicit_taxes", "explicit_service_fee"):
        value = getattr(components, name)
        if value is not None and _as_decimal(value, name) < 0:
            raise InvalidInputError(f"{name} cannot be negative")


def compute_breakdown(
    components: PriceComponents,
    default_tax_rate: Optional[Decimal] = None,
    default_service_fee_rate: Optional[Decimal] = None
) -> ItemizedTotal:
    """Itemize a price; see module docstring for the formula"""
    _validate(components)

    base_price = _as_decimal(components.base_price, "base_price")
    nights = components.nights
    rooms = components.rooms
    guests = components.guests

    # Step 1
    room_subtotal = base_price * nights * rooms

    # Step 2
    extra_guests = max(0, guests - components.free_guest_limit)
    extra_guest_charge = _as_decimal(components.extra_guest_charge, "extra_guest_charge")
    extra_guest_total = extra_guests * extra_guest_charge * nights

    # Step 3
    meal_lines = tuple(
        (meal, _as_decimal(price, meal) * guests * nights)
        for meal, price in sorted(components.meal_addons.items())
    )
    meal_total = sum((amount for _, amount in meal_lines), ZERO)

    # Step 4
    subtotal = room_subtotal + extra_guest_total + meal_total

    # Step 5
    dynamic_multiplier = _as_decimal(components.dynamic_multiplier, "dynamic_multiplier")
    dynamic_adjustment = subtotal * (dynamic_multiplier - ONE)
    subtotal_after_dynamic = subtotal + dynamic_adjustment

    # Step 6
    discount_percent = _as_decimal(components.discount_percent, "discount_percent")
    discount = subtotal_after_dynamic * discount_percent / HUNDRED

    taxable = subtotal_after_dynamic - discount

    # Step 7
    tax_rate = components.tax_rate
    if tax_rate is None:
        tax_rate = default_tax_rate if default_tax_rate is not None else DEFAULT_TAX_RATE
    tax_rate = _as_decimal(tax_rate, "tax_rate")
    if components.explicit_taxes is not None:
        taxes = _as_decimal(components.explicit_taxes, "explicit_taxes")
    else:
        taxes = taxable * tax_rate

    # Step 8
    service_fee_rate = components.service_fee_rate
    if service_fee_rate is None:
        service_fee_rate = (
            default_service_fee_rate if default_service_fee_rate is not None
            else DEFAULT_SERVICE_FEE_RATE
        )
    service_fee_rate = _as_decimal(service_fee_rate, "service_fee_rate")
    if components.explicit_service_fee is not None:
        service_fee = _as_decimal(components.explicit_service_fee, "explicit_service_fee")
    else:
        service_fee = taxable * service_fee_rate

    # Step 9
    total = subtotal_after_dynamic - discount + taxes + service_fee

    return ItemizedTotal(
        base_price=base_price,
        nights=nights,
        rooms=rooms,
        guests=guests,
        room_subtotal=room_subtotal,
        extra_guests=extra_guests,
        extra_guest_charge=extra_guest_charge,
        extra_guest_total=extra_guest_total,
        meal_lines=meal_lines,
        meal_total=meal_total,
        subtotal=subtotal,
        dynamic_multiplier=dynamic_multiplier,
        dynamic_adjustment=dynamic_adjustment,
        subtotal_after_dynamic=subtotal_after_dynamic,
        discount_percent=discount_percent,
        discount=discount,
        tax_rate=tax_rate,
        taxes=taxes,
        service_fee_rate=service_fee_rate,
        service_fee=service_fee,
        total=total,
    )
