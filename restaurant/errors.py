"""Error kinds raised by the order and reservation operations.

The HTTP layer maps each kind to a status code; nothing below it catches them.
"""


class RestaurantError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RestaurantError):
    """Malformed or out-of-range input."""
    kind = "validation_error"


class InvalidArgument(ValidationError):
    """A core operation was called with a missing or out-of-range argument."""
    kind = "invalid_argument"


class InvalidTransition(RestaurantError):
    kind = "invalid_transition"


class ProductUnavailable(RestaurantError):
    kind = "product_unavailable"


class NotFound(RestaurantError):
    kind = "not_found"
