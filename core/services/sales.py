"""
Sale state machine: propose, confirm, decline, withdraw.

Writers lock the product row (propose) or the sale row (confirm, decline,
withdraw) with SELECT ... FOR UPDATE, so concurrent requests on the same
object serialize. The partial unique constraint on active sales is the
last line of defence and surfaces as a ConflictError.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from core import lifecycle
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, PreconditionError
from core.models import Chat, Product, Sale

logger = logging.getLogger(__name__)

User = get_user_model()

ROLE_SELLER = 'seller'
ROLE_BUYER = 'buyer'


def _lock_sale(sale_id):
    sale = Sale.objects.select_for_update().filter(pk=sale_id).first()
    if sale is None:
        raise NotFoundError('Sale not found.')
    return sale


def _lock_product_for_sale(sale):
    return Product.all_objects.select_for_update().get(pk=sale.product_id)


def get_product_buyers(*, product_id, caller):
    """
    Users the owner can sell ``product_id`` to: everyone with a chat about
    the product that the buyer has not deleted.

    Returns:
        list of dicts with user_id, username and avatar_url
    """
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise NotFoundError('Product not found.')

    if product.owner_id != caller.pk:
        raise AuthorizationError('Only the owner can see potential buyers.')

    chats = (
        Chat.objects.filter(product=product, deleted_by_buyer=False)
        .exclude(buyer_id=caller.pk)
        .select_related('buyer')
        .order_by('-updated_at')
    )

    return [
        {
            'user_id': chat.buyer_id,
            'username': chat.buyer.username,
            'avatar_url': chat.buyer.avatar_url,
        }
        for chat in chats
    ]


def create_sale_request(*, product_id, buyer_id, caller, now=None):
    """
    Propose a sale of ``product_id`` to ``buyer_id``.

    Preconditions, checked under a row lock on the product:
    - product exists and is not soft-deleted (404)
    - caller owns the product (403)
    - buyer exists (404) and is not the caller (400)
    - buyer has a chat about the product they have not deleted (400)
    - product has no pending or completed sale (409)

    Effect: a pending sale; the product is marked sold so it leaves the
    public listings while the buyer decides.
    """
    now = now or timezone.now()

    try:
        with transaction.atomic():
            product = Product.objects.select_for_update().filter(pk=product_id).first()
            if product is None:
                raise NotFoundError('Product not found.')

            if product.owner_id != caller.pk:
                raise AuthorizationError('Only the owner can mark this product as sold.')

            buyer = User.objects.filter(pk=buyer_id).first()
            if buyer is None:
                raise NotFoundError('Buyer not found.')

            if buyer.pk == caller.pk:
                raise PreconditionError('You cannot sell a product to yourself.', code='self_sale')

            has_chat = Chat.objects.filter(
                product=product, buyer=buyer, deleted_by_buyer=False
            ).exists()
            if not has_chat:
                raise PreconditionError(
                    'The selected buyer has no conversation with you about this product.',
                    code='no_chat'
                )

            active_exists = Sale.objects.filter(
                product=product, status__in=lifecycle.ACTIVE_STATUSES
            ).exists()
            if product.sold or active_exists:
                raise ConflictError('This product is already sold.', code='already_sold')

            sale = Sale.objects.create(
                product=product,
                buyer=buyer,
                seller=caller,
                status=lifecycle.STATUS_PENDING,
            )
            product.mark_as_sold(now)

    except IntegrityError:
        logger.warning(
            f"Concurrent sale proposal rejected - Product ID: {product_id}, "
            f"Seller: {caller.pk}, Buyer: {buyer_id}"
        )
        raise ConflictError('This product is already sold.', code='already_sold')

    logger.info(
        f"Sale proposed - Sale ID: {sale.pk}, Product ID: {product.pk}, "
        f"Seller: {caller.pk}, Buyer: {buyer.pk}"
    )
    return sale


def confirm_sale(*, sale_id, caller, now=None):
    """
    Buyer confirms a pending sale.

    The review window starts now, and the product's sold_at is reset so the
    soft-delete retention counts from completion.
    """
    now = now or timezone.now()

    with transaction.atomic():
        sale = _lock_sale(sale_id)

        if sale.buyer_id != caller.pk:
            raise AuthorizationError('Only the buyer can confirm this sale.')

        lifecycle.validate_transition(sale, lifecycle.STATUS_COMPLETED)

        sale.status = lifecycle.STATUS_COMPLETED
        sale.completed_at = now
        sale.save(update_fields=['status', 'completed_at', 'updated_at'])

        product = _lock_product_for_sale(sale)
        product.mark_as_sold(now)

    logger.info(
        f"Sale confirmed - Sale ID: {sale.pk}, Product ID: {sale.product_id}, "
        f"Buyer: {caller.pk}"
    )
    return sale


def _cancel_pending_sale(sale, reason, now):
    lifecycle.validate_transition(sale, lifecycle.STATUS_CANCELLED)

    sale.status = lifecycle.STATUS_CANCELLED
    sale.cancelled_at = now
    sale.cancel_reason = reason
    sale.save(update_fields=['status', 'cancelled_at', 'cancel_reason', 'updated_at'])

    product = _lock_product_for_sale(sale)
    product.relist()


def decline_sale(*, sale_id, caller, now=None):
    """Buyer declines a pending sale; the product goes back on the market."""
    now = now or timezone.now()

    with transaction.atomic():
        sale = _lock_sale(sale_id)

        if sale.buyer_id != caller.pk:
            raise AuthorizationError('Only the buyer can decline this sale.')

        _cancel_pending_sale(sale, 'declined', now)

    logger.info(
        f"Sale declined - Sale ID: {sale.pk}, Product ID: {sale.product_id}, "
        f"Buyer: {caller.pk}"
    )
    return sale


def withdraw_sale(*, sale_id, caller, now=None):
    """Seller takes back a proposal the buyer has not answered yet."""
    now = now or timezone.now()

    with transaction.atomic():
        sale = _lock_sale(sale_id)

        if sale.seller_id != caller.pk:
            raise AuthorizationError('Only the seller can withdraw this sale.')

        _cancel_pending_sale(sale, 'withdrawn', now)

    logger.info(
        f"Sale withdrawn - Sale ID: {sale.pk}, Product ID: {sale.product_id}, "
        f"Seller: {caller.pk}"
    )
    return sale


def get_active_sale(*, product_id, caller):
    """
    Return the pending or completed sale of a product, or None.

    Only the buyer and seller of that sale may see it.
    """
    if not Product.all_objects.filter(pk=product_id).exists():
        raise NotFoundError('Product not found.')

    sale = (
        Sale.objects.filter(product_id=product_id, status__in=lifecycle.ACTIVE_STATUSES)
        .select_related('product', 'buyer', 'seller')
        .first()
    )
    if sale is None:
        return None

    if not sale.is_participant(caller):
        raise AuthorizationError('You are not a participant in this sale.')

    return sale


def list_user_sales(*, caller, role, now=None):
    """
    The caller's sales as seller ("my sales") or purchases as buyer ("my
    purchases").

    Sellers see every sale including cancelled ones; buyers do not see
    cancelled proposals. Each row carries the counterpart and the caller's
    review state.
    """
    if role == ROLE_SELLER:
        sales = Sale.objects.filter(seller=caller)
    elif role == ROLE_BUYER:
        sales = Sale.objects.filter(buyer=caller).exclude(status=lifecycle.STATUS_CANCELLED)
    else:
        raise PreconditionError("Role must be 'seller' or 'buyer'.", code='invalid_role')

    sales = (
        sales.select_related('product', 'buyer', 'seller')
        .prefetch_related('reviews')
        .order_by('-created_at')
    )

    rows = []
    for sale in sales:
        has_reviewed = any(review.reviewer_id == caller.pk for review in sale.reviews.all())
        can_review = (
            sale.status == lifecycle.STATUS_COMPLETED
            and not has_reviewed
            and lifecycle.review_window_open(sale.completed_at, now)
        )
        rows.append({
            'sale': sale,
            'counterpart': sale.buyer if role == ROLE_SELLER else sale.seller,
            'has_reviewed': has_reviewed,
            'can_review': can_review,
        })
    return rows
