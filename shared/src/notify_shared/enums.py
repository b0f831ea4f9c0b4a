from enum import StrEnum


class Channel(StrEnum):
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    PUSH = "push"
    IN_APP = "in_app"


PHONE_CHANNELS: frozenset[Channel] = frozenset({Channel.SMS, Channel.WHATSAPP})


class DeliveryStatus(StrEnum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class CostTier(StrEnum):
    FREE = "free"
    PAID = "paid"
