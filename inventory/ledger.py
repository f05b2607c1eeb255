"""
Inventory Ledger - the only code path that changes Product.stock_quantity.

Every move is a single conditional UPDATE evaluated by the database, so
concurrent reservations against the same product serialize on the row and
can never drive stock below zero.
"""
import logging

from django.db.models import F
from django.utils import timezone

from core.exceptions import InsufficientStock, NotFound
from .models import Product

logger = logging.getLogger(__name__)


def _check_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"quantity must be a positive integer, got {quantity!r}")


def reserve(product_id: int, quantity: int) -> None:
    """
    Take ``quantity`` units of a product out of stock.

    Raises:
        InsufficientStock: If fewer than ``quantity`` units are in stock.
            Nothing is decremented.
        NotFound: If the product does not exist.
    """
    _check_quantity(quantity)

    updated = Product.objects.filter(
        pk=product_id,
        stock_quantity__gte=quantity
    ).update(
        stock_quantity=F('stock_quantity') - quantity,
        updated_at=timezone.now()
    )
    if updated:
        logger.debug(f"Reserved {quantity} of product {product_id}")
        return

    available = Product.objects.filter(pk=product_id).values_list(
        'stock_quantity', flat=True
    ).first()
    if available is None:
        raise NotFound('Product', product_id)

    logger.warning(
        f"Reservation of {quantity} for product {product_id} refused, "
        f"{available} available"
    )
    raise InsufficientStock(product_id, quantity, available)


def release(product_id: int, quantity: int) -> None:
    """
    Return ``quantity`` previously reserved units to stock.

    Callers release a reservation at most once; the order state machine
    guarantees this for cancellations.
    """
    _check_quantity(quantity)

    updated = Product.objects.filter(pk=product_id).update(
        stock_quantity=F('stock_quantity') + quantity,
        updated_at=timezone.now()
    )
    if not updated:
        raise NotFound('Product', product_id)
    logger.debug(f"Released {quantity} of product {product_id}")


def restock(product_id: int, quantity: int) -> Product:
    """
    Add newly received units to stock and return the refreshed product.
    """
    _check_quantity(quantity)

    updated = Product.objects.filter(pk=product_id).update(
        stock_quantity=F('stock_quantity') + quantity,
        updated_at=timezone.now()
    )
    if not updated:
        raise NotFound('Product', product_id)

    product = Product.objects.select_related('vendor').get(pk=product_id)
    logger.info(f"Restocked {quantity} of {product.name}, now {product.stock_quantity}")
    return product
