"""
Billing configuration — single source of truth for platform fees, commission tiers and service prices.

All monetary amounts are whole Indonesian Rupiah (integer, no subunit).
Safe to import from views, services, and (read-only) expose to templates when needed.
"""

CURRENCY = "idr"

# Flat app fee charged to the customer on top of the service subtotal (10%)
PLATFORM_FEE_PERCENT = 10

# Commission kept by the platform from the talent's side, by talent level
TALENT_COMMISSION_PERCENT = {
    "fresh": 20,
    "elite": 18,
    "vip": 15,
}

# Billing units
UNIT_DAY = "day"
UNIT_HOUR = "hour"
UNIT_EVENT = "event"

# Service catalog: type -> default rate per unit, transport surcharge for in-person types.
# party_buddy and rent_lover rates can be overridden per talent.
SERVICE_OFFERINGS = {
    "chat": {"name": "Chat", "base_rate": 25000, "unit": UNIT_DAY, "transport_percentage": 0},
    "call": {"name": "Call", "base_rate": 40000, "unit": UNIT_HOUR, "transport_percentage": 0},
    "video_call": {"name": "Video Call", "base_rate": 60000, "unit": UNIT_HOUR, "transport_percentage": 0},
    "offline_date": {"name": "Offline Date", "base_rate": 150000, "unit": UNIT_HOUR, "transport_percentage": 20},
    "party_buddy": {"name": "Party Buddy", "base_rate": 1000000, "unit": UNIT_EVENT, "transport_percentage": 30},
    "rent_lover": {"name": "Rent a Lover", "base_rate": 500000, "unit": UNIT_DAY, "transport_percentage": 25},
}

# Duration limits per selection; Transaction.duration stores up to 6 decimal places
MAX_DURATION = 10000
MAX_DURATION_DECIMAL_PLACES = 6

# Offered when a talent has not picked any services yet
DEFAULT_SERVICE_TYPES = ["chat", "call", "video_call", "offline_date"]

# Payout requests below this amount are rejected
MINIMUM_PAYOUT_AMOUNT = 50000

PAYOUT_METHODS = ["bank_transfer", "e_wallet"]

# Stripe treats IDR as a two-decimal currency: amounts are sent in sen
STRIPE_AMOUNT_MULTIPLIER = 100
