"""
Service-layer error kinds and their HTTP rendering.

Services raise these; the DRF exception handler below turns them into
``{"error": ..., "detail": ...}`` responses.
"""
import logging

from django.conf import settings
from django.db import InterfaceError, OperationalError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for recoverable, user-facing failures."""
    status_code = status.HTTP_400_BAD_REQUEST
    error = 'Service Error'

    def to_payload(self) -> dict:
        return {'error': self.error, 'detail': str(self)}


class NotFound(ServiceError):
    """A referenced entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    error = 'Not Found'

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class InsufficientStock(ServiceError):
    """Raised when there's not enough stock for an order item."""
    status_code = status.HTTP_409_CONFLICT
    error = 'Insufficient Stock'

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload.update({
            'product_id': self.product_id,
            'requested': self.requested,
            'available': self.available,
        })
        return payload


class OrderValidationError(ServiceError):
    """Raised when order input fails validation."""
    error = 'Validation Error'


class EmptyOrder(OrderValidationError):
    error = 'Empty Order'

    def __init__(self, message="Order must contain at least one item"):
        super().__init__(message)


class IllegalTransition(ServiceError):
    """Requested order status change is not an edge of the state machine."""
    status_code = status.HTTP_409_CONFLICT
    error = 'Illegal Transition'

    def __init__(self, current: str, target: str, subject: str = 'order'):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {subject} from '{current}' to '{target}'")


class PaymentError(ServiceError):
    error = 'Payment Error'


class AmountMismatch(PaymentError):
    error = 'Amount Mismatch'

    def __init__(self, order_id: int, expected, received):
        self.order_id = order_id
        self.expected = expected
        self.received = received
        super().__init__(
            f"Payment amount {received} does not match order "
            f"#{order_id} total {expected}"
        )


class PaymentNotAllowed(PaymentError):
    status_code = status.HTTP_409_CONFLICT
    error = 'Payment Not Allowed'


class CourierUnavailable(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    error = 'Courier Unavailable'


class StoreUnavailable(ServiceError):
    """Transient backend failure; callers may retry with backoff."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = 'Store Unavailable'

    def __init__(self, message="The data store is temporarily unavailable"):
        super().__init__(message)


def service_exception_handler(exc, context):
    """
    DRF exception handler.

    Order of resolution:
        1. ServiceError subclasses -> their own status and payload
        2. Database connectivity errors -> StoreUnavailable (503)
        3. DRF's own exceptions -> DRF default handling
        4. Anything else -> logged, recorded as system_error, generic 500
    """
    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.error(f"Data store unavailable: {exc}")
        exc = StoreUnavailable()

    if isinstance(exc, ServiceError):
        headers = {}
        if isinstance(exc, StoreUnavailable):
            headers['Retry-After'] = str(settings.STORE_RETRY_AFTER_SECONDS)
        else:
            logger.warning(f"{exc.error}: {exc}")
        return Response(exc.to_payload(), status=exc.status_code, headers=headers)

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    view_name = view.__class__.__name__ if view is not None else 'unknown view'
    logger.exception(f"Unexpected error in {view_name}: {exc}")

    from core.models import ErrorLog
    ErrorLog.record(
        ErrorLog.ErrorType.SYSTEM_ERROR,
        f"{view_name}: {exc.__class__.__name__}: {exc}",
    )
    return Response(
        {'error': 'Server Error', 'detail': 'An unexpected error occurred'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
