"""Error taxonomy shared by the services and translated to HTTP in main."""


class SwiftBitesError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(SwiftBitesError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(SwiftBitesError):
    status_code = 404
    default_message = "Not found"


class UpstreamError(SwiftBitesError):
    """A third-party service (payments, SMS, object store) failed."""

    status_code = 502
    default_message = "Upstream service failed"


class PaymentError(UpstreamError):
    """Payment declined, failed or cancelled by the customer; safe to retry."""

    status_code = 402
    default_message = "Payment failed. Please try again."


class PaymentGatewayUnavailable(UpstreamError):
    status_code = 503
    default_message = "Payment service is unavailable. No order was placed."


class PersistenceError(SwiftBitesError):
    status_code = 500
    default_message = "Failed to save order"


class DuplicateRecordError(PersistenceError):
    """A unique constraint rejected the write (pickup token, menu item name)."""

    status_code = 409
    default_message = "Record already exists"
