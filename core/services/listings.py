"""
Listing operations that go beyond plain CRUD: privileged historical lookups,
search filters, soft deletion and the sold-product lifecycle job.
"""

import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Exists, OuterRef, Q
from django.utils import timezone

from core import lifecycle
from core.exceptions import AuthorizationError, NotFoundError, PreconditionError
from core.models import Product, RehearsalRoom, Sale

logger = logging.getLogger(__name__)

User = get_user_model()

ITEM_PRODUCT = 'product'
ITEM_ROOM = 'room'

PRODUCT_SEARCH_FIELDS = ('brand', 'model', 'type', 'description', 'category')


def get_listing(item_type, item_id):
    """A visible product or a room, by item type and id."""
    if item_type == ITEM_PRODUCT:
        item = Product.objects.filter(pk=item_id).first()
    elif item_type == ITEM_ROOM:
        item = RehearsalRoom.objects.filter(pk=item_id).first()
    else:
        raise PreconditionError("item_type must be 'product' or 'room'.", code='invalid_item_type')

    if item is None:
        raise NotFoundError('Listing not found.')
    return item


def _number_param(params, name):
    value = (params.get(name) or '').strip()
    if not value:
        return None

    try:
        number = Decimal(value)
    except InvalidOperation:
        number = None

    if number is None or not number.is_finite():
        raise PreconditionError(
            f'Invalid value for "{name}". Must be a valid number.',
            code='invalid_filter'
        )
    if number < 0:
        raise PreconditionError(f'"{name}" cannot be negative.', code='invalid_filter')
    return number


def _range_params(params, name):
    low = _number_param(params, f'min_{name}')
    high = _number_param(params, f'max_{name}')

    if low is not None and high is not None and low > high:
        raise PreconditionError(
            f'"min_{name}" cannot be greater than "max_{name}".',
            code='invalid_filter'
        )
    return low, high


def filter_products(queryset, params):
    """
    Narrow a product queryset by listing query parameters.

    - q: free text matched against brand, model, type, description and
      category, case insensitive
    - category: exact category slug
    - owner: owner id
    - type, brand, location, condition: exact match ignoring case
    - min_price / max_price, min_year / max_year: inclusive bounds; products
      without a price or year drop out once a bound is given

    Raises:
        PreconditionError: If a bound is not a non-negative number or the
            lower bound exceeds the upper one
    """
    search = (params.get('q') or '').strip()
    if search:
        matches = Q()
        for field in PRODUCT_SEARCH_FIELDS:
            matches |= Q(**{f'{field}__icontains': search})
        queryset = queryset.filter(matches)

    category = params.get('category')
    if category:
        queryset = queryset.filter(category=category)

    owner = params.get('owner')
    if owner and owner.isdigit():
        queryset = queryset.filter(owner_id=int(owner))

    for field in ('type', 'brand', 'location', 'condition'):
        value = (params.get(field) or '').strip()
        if value:
            queryset = queryset.filter(**{f'{field}__iexact': value})

    min_price, max_price = _range_params(params, 'price')
    if min_price is not None:
        queryset = queryset.filter(price__gte=min_price)
    if max_price is not None:
        queryset = queryset.filter(price__lte=max_price)

    min_year, max_year = _range_params(params, 'year')
    if min_year is not None:
        queryset = queryset.filter(year__gte=int(min_year))
    if max_year is not None:
        queryset = queryset.filter(year__lte=int(max_year))

    return queryset


def get_product_for_transaction(*, product_id, caller):
    """
    Fetch a product for sale and review pages, soft-deleted or not.

    Allowed for the owner and for any user who has been the buyer in a sale
    of the product. Everyone else gets 403, so historical listings do not
    leak through this path.
    """
    product = Product.all_objects.select_related('owner').filter(pk=product_id).first()
    if product is None:
        raise NotFoundError('Product not found.')

    if product.owner_id == caller.pk:
        return product

    if Sale.objects.filter(product=product, buyer=caller).exists():
        return product

    raise AuthorizationError('You do not have access to this product.')


def sold_products_for(user):
    completed_sale = Sale.objects.filter(
        product=OuterRef('pk'), status=lifecycle.STATUS_COMPLETED
    )
    return (
        Product.all_objects.filter(owner=user, sold=True)
        .filter(Exists(completed_sale))
        .order_by('-sold_at')
    )


def get_user_sold_products(*, user_id):
    """Products ``user_id`` has sold, including soft-deleted ones, newest first."""
    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None:
        raise NotFoundError('User not found.')

    return list(sold_products_for(user))


def soft_delete_product(*, product_id, caller, now=None):
    """
    Owner removes a listing. The row stays for sale history.

    A product with a pending sale cannot be deleted until the buyer has
    answered or the seller has withdrawn the proposal.
    """
    now = now or timezone.now()

    with transaction.atomic():
        product = Product.objects.select_for_update().filter(pk=product_id).first()
        if product is None:
            raise NotFoundError('Product not found.')

        if product.owner_id != caller.pk:
            raise AuthorizationError('Only the owner can delete this product.')

        if Sale.objects.filter(product=product, status=lifecycle.STATUS_PENDING).exists():
            raise PreconditionError(
                'This product has a pending sale. Withdraw it before deleting the product.',
                code='pending_sale'
            )

        product.soft_delete(now)

    logger.info(f"Product soft-deleted - Product ID: {product.pk}, Owner: {caller.pk}")
    return product


def mark_room_rented(*, room_id, caller, now=None):
    room = RehearsalRoom.objects.filter(pk=room_id).first()
    if room is None:
        raise NotFoundError('Room not found.')

    if room.owner_id != caller.pk:
        raise AuthorizationError('Only the owner can mark this room as rented.')

    if room.rented:
        raise PreconditionError('This room is already rented.', code='already_rented')

    room.mark_as_rented(now)
    logger.info(f"Room marked rented - Room ID: {room.pk}, Owner: {caller.pk}")
    return room


def products_due_for_soft_delete(now=None):
    """
    Sold products whose retention period has passed.

    Products with a pending sale are skipped: the buyer may still decline,
    which puts the product back on the market.
    """
    now = now or timezone.now()
    retention = timedelta(days=lifecycle.marketplace_setting('SOLD_PRODUCT_RETENTION_DAYS'))

    pending_sale = Sale.objects.filter(product=OuterRef('pk'), status=lifecycle.STATUS_PENDING)

    return (
        Product.objects.filter(sold=True, sold_at__isnull=False, sold_at__lt=now - retention)
        .filter(~Exists(pending_sale))
        .order_by('sold_at')
    )


def handle_product_lifecycle(*, now=None, dry_run=False):
    """
    Soft-delete every product that has been sold for longer than the
    retention period.

    Returns:
        list of affected product ids (the would-be affected ids on dry run)
    """
    now = now or timezone.now()

    due = products_due_for_soft_delete(now)
    product_ids = list(due.values_list('pk', flat=True))

    if product_ids and not dry_run:
        # Products relisted since the read drop out of the filter.
        updated = due.filter(pk__in=product_ids).order_by().update(
            is_soft_deleted=True,
            deleted_at=now,
            updated_at=now,
        )
        logger.info(f"Soft-deleted {updated} sold products: {product_ids}")

    return product_ids
