"""
Booking price and settlement calculator.

Pure functions only: no ORM, no clock, no I/O. Every surface that shows a price
(quote endpoint, booking creation, admin views) goes through compute_booking_charge,
so all of them reconstruct identical numbers from the same inputs.

Money model:
- Customer pays: subtotal + platform fee (10%)
- Platform keeps: platform fee + commission (by talent level)
- Talent receives: subtotal - commission
Fee and commission are each rounded half-up from the same subtotal, never from each other.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from billing import config

IN_PERSON_SERVICE_TYPES = frozenset({"offline_date", "party_buddy", "rent_lover"})


class ValidationError(Exception):
    """Raised when a selection cannot be priced; message is safe to show to user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class ServiceOffering:
    service_type: str
    name: str
    base_rate: int
    unit: str
    transport_percentage: int = 0

    def __post_init__(self):
        if self.service_type not in config.SERVICE_OFFERINGS:
            raise ValidationError(f"Unknown service type '{self.service_type}'.")
        if isinstance(self.base_rate, bool) or not isinstance(self.base_rate, int) or self.base_rate <= 0:
            raise ValidationError(f"Base rate for {self.service_type} must be a positive whole amount.")
        if not 0 <= self.transport_percentage <= 100:
            raise ValidationError(f"Transport percentage for {self.service_type} must be between 0 and 100.")
        if self.transport_percentage and self.service_type not in IN_PERSON_SERVICE_TYPES:
            raise ValidationError(f"{self.name} is a remote service and cannot carry a transport surcharge.")


@dataclass(frozen=True)
class ServiceSelection:
    service_type: str
    duration: object


@dataclass(frozen=True)
class LineCharge:
    service_type: str
    service_name: str
    unit: str
    duration: Decimal
    base_amount: int
    transport_amount: int

    @property
    def subtotal(self) -> int:
        return self.base_amount + self.transport_amount


@dataclass(frozen=True)
class BookingCharge:
    subtotal: int
    platform_fee: int
    total_charged: int
    commission_rate: int
    commission_amount: int
    talent_earnings: int
    platform_revenue: int
    lines: tuple = field(default_factory=tuple)

    @property
    def service_name(self) -> str:
        return " + ".join(line.service_name for line in self.lines)

    @property
    def duration(self):
        """Duration of a single-service booking; None when lines use different units."""
        return self.lines[0].duration if len(self.lines) == 1 else None

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "platform_fee": self.platform_fee,
            "total_charged": self.total_charged,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "talent_earnings": self.talent_earnings,
            "platform_revenue": self.platform_revenue,
            "lines": [
                {
                    "service_type": line.service_type,
                    "service_name": line.service_name,
                    "unit": line.unit,
                    "duration": str(line.duration),
                    "base_amount": line.base_amount,
                    "transport_amount": line.transport_amount,
                    "subtotal": line.subtotal,
                }
                for line in self.lines
            ],
        }


def round_half_up(value) -> int:
    """Round to the nearest whole rupiah, halves away from zero."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(amount, percent) -> int:
    return round_half_up(Decimal(amount) * Decimal(percent) / Decimal(100))


def commission_rate_for(talent_level) -> int:
    """Commission percentage for a talent level ('fresh', 'elite', 'vip'; case-insensitive)."""
    level = talent_level.strip().lower() if isinstance(talent_level, str) else None
    if level not in config.TALENT_COMMISSION_PERCENT:
        raise ValidationError(f"Unknown talent level '{talent_level}'.")
    return config.TALENT_COMMISSION_PERCENT[level]


def catalog_offering(service_type: str, base_rate: int = None) -> ServiceOffering:
    entry = config.SERVICE_OFFERINGS.get(service_type)
    if entry is None:
        raise ValidationError(f"Unknown service type '{service_type}'.")
    return ServiceOffering(
        service_type=service_type,
        name=entry["name"],
        base_rate=base_rate if base_rate is not None else entry["base_rate"],
        unit=entry["unit"],
        transport_percentage=entry["transport_percentage"],
    )


def default_offerings() -> dict:
    return {service_type: catalog_offering(service_type) for service_type in config.SERVICE_OFFERINGS}


def get_service_offerings(talent) -> dict:
    """
    Offerings a talent sells, keyed by service type.

    Only types in talent.available_services are offered (remote defaults when empty);
    party_buddy requires talent.party_buddy_eligible. party_buddy_rate / rent_lover_rate
    on the talent override the catalog rate when positive.
    """
    available = list(getattr(talent, "available_services", None) or config.DEFAULT_SERVICE_TYPES)
    overrides = {
        "party_buddy": getattr(talent, "party_buddy_rate", None),
        "rent_lover": getattr(talent, "rent_lover_rate", None),
    }
    offerings = {}
    for service_type in config.SERVICE_OFFERINGS:
        if service_type not in available:
            continue
        if service_type == "party_buddy" and not getattr(talent, "party_buddy_eligible", False):
            continue
        rate = overrides.get(service_type)
        offerings[service_type] = catalog_offering(service_type, base_rate=int(rate) if rate and int(rate) > 0 else None)
    return offerings


def _normalize_duration(duration, offering: ServiceOffering) -> Decimal:
    if isinstance(duration, bool):
        raise ValidationError("Duration must be a number.")
    try:
        value = Decimal(str(duration))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Duration must be a number.")
    if not value.is_finite():
        raise ValidationError("Duration must be a number.")
    if value <= 0:
        raise ValidationError(f"Duration for {offering.name} must be greater than zero.")
    if value > config.MAX_DURATION:
        raise ValidationError(f"Duration for {offering.name} cannot exceed {config.MAX_DURATION} {offering.unit}s.")
    if value != value.quantize(Decimal(1).scaleb(-config.MAX_DURATION_DECIMAL_PLACES)):
        raise ValidationError(
            f"Duration supports at most {config.MAX_DURATION_DECIMAL_PLACES} decimal places."
        )
    if offering.unit == config.UNIT_DAY and value != value.to_integral_value():
        raise ValidationError(f"{offering.name} is booked in whole days.")
    if offering.unit == config.UNIT_EVENT and value != 1:
        raise ValidationError(f"{offering.name} is booked for exactly one event.")
    return value


def price_line(selection: ServiceSelection, offering: ServiceOffering) -> LineCharge:
    if selection.service_type != offering.service_type:
        raise ValidationError(
            f"Selection for '{selection.service_type}' does not match offering '{offering.service_type}'."
        )
    duration = _normalize_duration(selection.duration, offering)
    # Hours stay fractional; rounding happens on money only.
    exact_base = Decimal(offering.base_rate) * duration
    transport_amount = percent_of(exact_base, offering.transport_percentage) if offering.transport_percentage > 0 else 0
    return LineCharge(
        service_type=offering.service_type,
        service_name=offering.name,
        unit=offering.unit,
        duration=duration,
        base_amount=round_half_up(exact_base),
        transport_amount=transport_amount,
    )


def compute_line_subtotal(selection: ServiceSelection, offering: ServiceOffering) -> int:
    """Base amount plus transport surcharge for one selection."""
    return price_line(selection, offering).subtotal


def compute_booking_charge(selections, talent_level, offerings: dict = None) -> BookingCharge:
    """
    Price one booking for one talent.

    Line subtotals are summed first; fee and commission are applied once to the
    combined subtotal. Raises ValidationError before computing anything if any
    selection, offering or the level is invalid.
    """
    selections = list(selections or [])
    if not selections:
        raise ValidationError("Select at least one service.")
    commission_rate = commission_rate_for(talent_level)
    offerings = default_offerings() if offerings is None else offerings

    lines = []
    for selection in selections:
        offering = offerings.get(selection.service_type)
        if offering is None:
            raise ValidationError(f"Service '{selection.service_type}' is not available for this talent.")
        lines.append(price_line(selection, offering))

    subtotal = sum(line.subtotal for line in lines)
    platform_fee = percent_of(subtotal, config.PLATFORM_FEE_PERCENT)
    commission_amount = percent_of(subtotal, commission_rate)
    return BookingCharge(
        subtotal=subtotal,
        platform_fee=platform_fee,
        total_charged=subtotal + platform_fee,
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        talent_earnings=subtotal - commission_amount,
        platform_revenue=platform_fee + commission_amount,
        lines=tuple(lines),
    )
