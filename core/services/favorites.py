"""
Saved listings ("favorites") for products and rehearsal rooms.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from core.exceptions import PreconditionError
from core.models import Favorite
from core.services.listings import get_listing

logger = logging.getLogger(__name__)


def favorite_count(item_type, item):
    return Favorite.objects.filter(**{item_type: item}).count()


def toggle_favorite(*, item_type, item_id, caller):
    """
    Save the listing for the caller, or remove it if it is already saved.

    Owners cannot save their own listings.

    Returns:
        tuple (favorited, favorites_count)
    """
    item = get_listing(item_type, item_id)

    if item.owner_id == caller.pk:
        raise PreconditionError('You cannot favorite your own listing.', code='own_listing')

    lookup = {'user': caller, item_type: item}

    with transaction.atomic():
        removed, _ = Favorite.objects.filter(**lookup).delete()

        if removed:
            favorited = False
        else:
            favorited = True
            try:
                with transaction.atomic():
                    Favorite.objects.create(**lookup)
            except IntegrityError:
                logger.info(
                    f"Favorite already saved by a concurrent request - "
                    f"{item_type.title()} ID: {item.pk}, User: {caller.pk}"
                )

    logger.info(
        f"Favorite toggled - {item_type.title()} ID: {item.pk}, User: {caller.pk}, "
        f"Favorited: {favorited}"
    )
    return favorited, favorite_count(item_type, item)


def favorite_status(*, item_type, item_id, caller=None):
    """How many users saved the listing and whether ``caller`` is one of them."""
    item = get_listing(item_type, item_id)

    favorited = False
    if caller is not None and caller.is_authenticated:
        favorited = Favorite.objects.filter(user=caller, **{item_type: item}).exists()

    return {
        'favorited': favorited,
        'favorites_count': favorite_count(item_type, item),
    }


def list_favorites(*, caller):
    """The caller's saved listings, newest first. Deleted products drop out."""
    return (
        Favorite.objects.filter(user=caller)
        .filter(Q(product__isnull=True) | Q(product__is_soft_deleted=False))
        .select_related('product', 'room')
        .order_by('-created_at', '-pk')
    )
