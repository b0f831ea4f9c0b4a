"""Static per-message cost estimation in USD."""

from notify_shared.enums import Channel

UNIT_COSTS: dict[Channel, dict[str, float]] = {
    Channel.EMAIL: {
        "sendgrid": 0.0006,
        "resend": 0.001,
        "mailgun": 0.0008,
        "ses": 0.0001,
    },
    Channel.SMS: {
        "twilio": 0.0075,
        "vonage": 0.008,
        "aws-sns": 0.0075,
    },
    Channel.WHATSAPP: {
        "meta": 0.005,
        "twilio": 0.005,
        "360dialog": 0.004,
        "greenapi": 0.0,
        "callmebot": 0.0,
    },
    Channel.PUSH: {"fcm": 0.0},
    Channel.IN_APP: {"inbox": 0.0},
}

# SMS pricing varies by destination country
COUNTRY_MULTIPLIERS: dict[str, float] = {
    "US": 1.0,
    "MX": 0.8,
    "BR": 1.2,
    "AR": 1.1,
    "CO": 1.0,
    "PE": 1.0,
    "CL": 1.1,
}
DEFAULT_COUNTRY_MULTIPLIER = 1.2

CURRENCY = "USD"


def is_priced(channel: str, vendor: str) -> bool:
    return vendor in UNIT_COSTS.get(Channel(channel), {})


def unit_cost(channel: str, vendor: str) -> float:
    """Base price of one message.

    Raises ValueError for a vendor with no price entry on *channel*.
    """
    prices = UNIT_COSTS.get(Channel(channel), {})
    if vendor not in prices:
        raise ValueError(f"No price for vendor {vendor!r} on channel {channel}")
    return prices[vendor]


def estimate_cost(
    channel: str,
    vendor: str,
    recipient_count: int = 1,
    country: str | None = None,
) -> float:
    """Estimated cost of sending to *recipient_count* recipients.

    *vendor* may also be a provider id (``twilio-sms``).  The country
    multiplier applies to SMS only.  Raises ValueError for an unknown
    channel or vendor, or a negative count.
    """
    channel = Channel(channel)
    if recipient_count < 0:
        raise ValueError("recipient_count must not be negative")
    vendor = vendor.removesuffix(f"-{channel}")

    cost = unit_cost(channel, vendor) * recipient_count
    if channel == Channel.SMS and country is not None:
        cost *= COUNTRY_MULTIPLIERS.get(country.upper(), DEFAULT_COUNTRY_MULTIPLIER)
    return round(cost, 6)
