"""Error taxonomy shared by the delivery core and its callers."""

from notify_shared.enums import ErrorKind


class NotificationError(Exception):
    """Base class for every delivery-related error."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DeliveryValidationError(NotificationError):
    """Recipient or payload rejected before any provider is contacted."""

    kind = ErrorKind.VALIDATION


class ProviderError(NotificationError):
    """A provider adapter failed to deliver a payload.

    Adapters raise one of the two subclasses; the orchestrator decides
    whether to retry, fall back or stop.
    """

    def __init__(
        self,
        message: str,
        *,
        provider_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider_id = provider_id
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Timeout, 5xx or rate-limit signal: the same provider may be retried."""

    kind = ErrorKind.TRANSIENT


class PermanentProviderError(ProviderError):
    """Recipient, credentials or payload rejected by this vendor."""

    kind = ErrorKind.PERMANENT


class ExhaustionError(NotificationError):
    """Every candidate provider for a channel was tried and failed."""

    kind = ErrorKind.EXHAUSTED

    def __init__(self, message: str, attempts: tuple = ()) -> None:
        super().__init__(message)
        self.attempts = attempts


class DeliveryCancelledError(NotificationError):
    """The batch cancellation token was set before delivery finished."""

    kind = ErrorKind.CANCELLED


class InternalDeliveryError(NotificationError):
    """Unexpected failure in the orchestration logic itself."""

    kind = ErrorKind.INTERNAL


_ERRORS_BY_KIND: dict[str, type[NotificationError]] = {
    ErrorKind.VALIDATION: DeliveryValidationError,
    ErrorKind.TRANSIENT: TransientProviderError,
    ErrorKind.PERMANENT: PermanentProviderError,
    ErrorKind.EXHAUSTED: ExhaustionError,
    ErrorKind.CANCELLED: DeliveryCancelledError,
    ErrorKind.INTERNAL: InternalDeliveryError,
}


def error_for_kind(kind: str) -> type[NotificationError]:
    """Return the exception class matching a serialized error kind.

    Raises ValueError for unknown kinds.
    """
    error_cls = _ERRORS_BY_KIND.get(kind)
    if error_cls is None:
        raise ValueError(f"Unknown error kind: {kind!r}")
    return error_cls
