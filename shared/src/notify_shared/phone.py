"""Phone number normalization to the canonical international mobile format.

The canonical form is ``+<country code><mobile marker><subscriber digits>``,
e.g. ``+5491112345678`` for a Buenos Aires mobile.  ``normalize`` is pure:
no I/O, no randomness, so it runs as a pre-flight gate before any paid
provider call.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from notify_shared.errors import DeliveryValidationError

_NON_DIGIT_OR_PLUS = re.compile(r"[^0-9+]")
_DIGITS = re.compile(r"[0-9]+")
_CANDIDATE = re.compile(r"\+?[0-9][0-9\s\-().]{8,20}[0-9]")


@dataclass(frozen=True, slots=True)
class PhoneFormat:
    """Country-specific parameters of the canonical format."""

    country_code: str = "54"
    mobile_marker: str = "9"
    iso_country: str = "AR"
    min_subscriber_digits: int = 10
    max_subscriber_digits: int = 12

    @property
    def prefix(self) -> str:
        return f"{self.country_code}{self.mobile_marker}"


DEFAULT_FORMAT = PhoneFormat()


@dataclass(frozen=True, slots=True)
class NormalizedPhone:
    """Outcome of a single normalization call."""

    original: str
    canonical: str | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


def _clean(raw: str) -> str:
    return _NON_DIGIT_OR_PLUS.sub("", raw)


def _subscriber_digits(digits: str, fmt: PhoneFormat) -> str | None:
    """Strip the recognized prefix shape and return the subscriber digits.

    Returns None when the digit string matches none of the known shapes.
    """
    cc = fmt.country_code
    marker = fmt.mobile_marker

    if digits.startswith(fmt.prefix):
        return digits[len(fmt.prefix):]
    if digits.startswith(cc):
        rest = digits[len(cc):]
        # 54 011 ... carries the national trunk zero after the country code
        return rest[1:] if rest.startswith("0") else rest
    if digits.startswith(marker):
        return digits[len(marker):]
    if digits.startswith("00"):
        rest = digits[2:]
        if rest.startswith(cc):
            return _subscriber_digits(rest, fmt)
        return None
    if digits.startswith("0"):
        return digits[1:]
    # A partial country code is ambiguous: neither local nor international
    if digits.startswith(cc[0]):
        return None
    return digits


def normalize(raw: str | None, fmt: PhoneFormat = DEFAULT_FORMAT) -> NormalizedPhone:
    """Parse heterogeneous phone input into the canonical mobile format.

    Accepted shapes: already canonical, country code without the mobile
    marker, mobile marker without country code, national leading zero
    (``00`` + country code as international dial prefix), and a bare
    subscriber number.  A 10-digit bare number is taken to already include
    its area code.
    """
    original = raw or ""
    if not original.strip():
        return NormalizedPhone(original, error="Phone number is required")

    cleaned = _clean(original)
    body = cleaned[1:] if cleaned.startswith("+") else cleaned
    if not body:
        return NormalizedPhone(original, error="Phone number contains no digits")
    if not _DIGITS.fullmatch(body):
        return NormalizedPhone(
            original,
            error="Phone number may only contain digits after a leading '+'",
        )

    subscriber = _subscriber_digits(body, fmt)
    if subscriber is None:
        return NormalizedPhone(
            original,
            error=f"Unrecognized phone format. Example: +{fmt.prefix}1112345678",
        )

    count = len(subscriber)
    if not fmt.min_subscriber_digits <= count <= fmt.max_subscriber_digits:
        return NormalizedPhone(
            original,
            error=(
                f"Phone number must have between {fmt.min_subscriber_digits} and "
                f"{fmt.max_subscriber_digits} subscriber digits, got {count}"
            ),
        )

    return NormalizedPhone(original, canonical=f"+{fmt.prefix}{subscriber}")


def require_phone(raw: str | None, fmt: PhoneFormat = DEFAULT_FORMAT) -> str:
    """Return the canonical phone or raise DeliveryValidationError."""
    result = normalize(raw, fmt)
    if result.canonical is None:
        raise DeliveryValidationError(result.error or "Invalid phone number")
    return result.canonical


def normalize_many(
    phones: Iterable[str], fmt: PhoneFormat = DEFAULT_FORMAT
) -> list[NormalizedPhone]:
    return [normalize(phone, fmt) for phone in phones]


def is_canonical(phone: str, fmt: PhoneFormat = DEFAULT_FORMAT) -> bool:
    return canonical_pattern(fmt).fullmatch(phone) is not None


def canonical_pattern(fmt: PhoneFormat = DEFAULT_FORMAT) -> re.Pattern[str]:
    """Regex matching canonical numbers, for form-level validation."""
    return re.compile(
        rf"\+{fmt.prefix}[0-9]{{{fmt.min_subscriber_digits},{fmt.max_subscriber_digits}}}"
    )


def is_domestic_phone(phone: str, fmt: PhoneFormat = DEFAULT_FORMAT) -> bool:
    """True if the number carries this format's country code."""
    cleaned = _clean(phone or "")
    return cleaned.lstrip("+").startswith(fmt.country_code)


def format_for_display(phone: str, fmt: PhoneFormat = DEFAULT_FORMAT) -> str:
    """Human-readable rendering, e.g. ``+54 9 11 1234-5678``.

    Best effort only: inputs that are not canonical are returned as-is,
    and the area-code split is a heuristic that never feeds validation.
    """
    if not phone:
        return ""
    cleaned = _clean(phone)
    lead = f"+{fmt.prefix}"
    if not cleaned.startswith(lead):
        return phone

    rest = cleaned[len(lead):]
    if len(rest) < fmt.min_subscriber_digits:
        return phone

    if rest.startswith("11"):
        area, number = rest[:2], rest[2:]
    elif len(rest) == 10:
        area, number = rest[:3], rest[3:]
    else:
        split = min(4, len(rest) - 6)
        area, number = rest[:split], rest[split:]

    number = f"{number[:-4]}-{number[-4:]}"
    return f"+{fmt.country_code} {fmt.mobile_marker} {area} {number}"


def extract_phone_from_text(
    text: str, fmt: PhoneFormat = DEFAULT_FORMAT
) -> str | None:
    """Return the first phone-like token in *text* that normalizes cleanly."""
    if not text:
        return None
    for match in _CANDIDATE.finditer(text):
        result = normalize(match.group(0), fmt)
        if result.canonical is not None:
            return result.canonical
    return None
