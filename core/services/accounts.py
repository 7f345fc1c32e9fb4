"""
Closing a user account.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken

from core import lifecycle
from core.exceptions import PreconditionError
from core.models import Chat, Favorite, Product, RehearsalRoom, Sale

logger = logging.getLogger(__name__)

User = get_user_model()


def delete_account(*, caller, now=None):
    """
    Close the caller's account.

    Sales and reviews point at the user and must survive, so the user row is
    deactivated and anonymised instead of deleted:
    - products are soft-deleted and rehearsal rooms removed
    - chats are hidden on the user's side and favorites removed
    - username and email are replaced, the password and avatar dropped
    - every outstanding refresh token is blacklisted

    Raises:
        PreconditionError: While the user is buyer or seller in a pending sale
    """
    now = now or timezone.now()

    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=caller.pk)

        pending = Sale.objects.filter(
            Q(buyer=user) | Q(seller=user), status=lifecycle.STATUS_PENDING
        )
        if pending.exists():
            raise PreconditionError(
                'You have a pending sale. Confirm, decline or withdraw it before deleting your account.',
                code='pending_sale'
            )

        product_count = Product.objects.filter(owner=user).update(
            is_soft_deleted=True,
            deleted_at=now,
            updated_at=now,
        )
        rooms = RehearsalRoom.objects.filter(owner=user)
        room_count = rooms.count()
        rooms.delete()

        Chat.objects.filter(buyer=user).update(deleted_by_buyer=True)
        Chat.objects.filter(seller=user).update(deleted_by_seller=True)
        Favorite.objects.filter(user=user).delete()

        for token in OutstandingToken.objects.filter(user=user):
            BlacklistedToken.objects.get_or_create(token=token)

        if user.avatar:
            user.avatar.delete(save=False)
        user.avatar = None
        user.username = f'deleted-user-{user.pk}'
        user.email = f'deleted-user-{user.pk}@deleted.invalid'
        user.first_name = ''
        user.last_name = ''
        user.is_active = False
        user.set_unusable_password()
        user.save()

    logger.info(
        f"Account deleted - User ID: {user.pk}, Products soft-deleted: {product_count}, "
        f"Rooms removed: {room_count}"
    )
    return user
