"""
Review submission and the read-side visibility rule.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count, IntegerField, OuterRef, Q, Subquery
from django.utils import timezone

from core import lifecycle
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, PreconditionError
from core.models import Product, Review, Sale
from core.services.listings import sold_products_for

logger = logging.getLogger(__name__)

User = get_user_model()


def create_review(*, sale_id, rating, content, caller, now=None):
    """
    Submit the caller's review of the other participant in a sale.

    Rejections, in order:
    - sale does not exist (404)
    - caller is neither buyer nor seller (403)
    - sale is not completed (400)
    - review window has closed (400)
    - caller already reviewed this sale (409)

    The sale row is locked so two reviews of the same sale are written one
    after the other; the unique (sale, reviewer) constraint backs up the
    duplicate check.
    """
    now = now or timezone.now()
    content = (content or '').strip()

    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise PreconditionError('Rating must be between 1 and 5.', code='invalid_rating')

    max_length = lifecycle.marketplace_setting('REVIEW_MAX_LENGTH')
    if len(content) > max_length:
        raise PreconditionError(
            f'Review text must be at most {max_length} characters.',
            code='content_too_long'
        )

    try:
        with transaction.atomic():
            sale = Sale.objects.select_for_update().filter(pk=sale_id).first()
            if sale is None:
                raise NotFoundError('Sale not found.')

            if not sale.is_participant(caller):
                raise AuthorizationError('You were not part of this sale.')

            if sale.status != lifecycle.STATUS_COMPLETED:
                raise PreconditionError(
                    'Only completed sales can be reviewed.',
                    code='sale_not_completed'
                )

            if not lifecycle.review_window_open(sale.completed_at, now):
                raise PreconditionError(
                    'The review period has expired.',
                    code='review_period_expired'
                )

            if Review.objects.filter(sale=sale, reviewer=caller).exists():
                raise ConflictError('You have already reviewed this sale.', code='already_reviewed')

            review = Review.objects.create(
                sale=sale,
                reviewer=caller,
                reviewee_id=sale.counterpart_id(caller),
                rating=rating,
                content=content,
            )

    except IntegrityError:
        logger.warning(f"Duplicate review rejected - Sale ID: {sale_id}, Reviewer: {caller.pk}")
        raise ConflictError('You have already reviewed this sale.', code='already_reviewed')

    logger.info(
        f"Review created - Review ID: {review.pk}, Sale ID: {sale.pk}, "
        f"Reviewer: {caller.pk}, Reviewee: {review.reviewee_id}, Rating: {rating}"
    )
    return review


def get_sale_reviews(*, sale_id, caller, now=None):
    """
    Reviews of one sale for its participants.

    Returns:
        dict with 'visible', 'reviews' (empty while withheld) and 'message'
        (the placeholder text while withheld, else None)
    """
    sale = Sale.objects.filter(pk=sale_id).first()
    if sale is None:
        raise NotFoundError('Sale not found.')

    if not sale.is_participant(caller):
        raise AuthorizationError('You were not part of this sale.')

    reviews = list(sale.reviews.select_related('reviewer', 'reviewee').order_by('created_at'))
    visible = lifecycle.reviews_visible(len(reviews), sale.completed_at, now)

    if not visible:
        return {'visible': False, 'reviews': [], 'message': lifecycle.REVIEWS_WITHHELD_MESSAGE}

    return {'visible': True, 'reviews': reviews, 'message': None}


def _get_user(user_id):
    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None:
        raise NotFoundError('User not found.')
    return user


def visible_reviews_for(user, now=None):
    """
    Reviews received by ``user`` that pass the visibility rule.

    Same rule as ``lifecycle.reviews_visible``: two reviews on the sale, or
    the sale completed more than the review window ago.
    """
    sale_review_count = (
        Review.objects.filter(sale=OuterRef('sale'))
        .order_by()
        .values('sale')
        .annotate(total=Count('pk'))
        .values('total')
    )

    return (
        Review.objects.filter(reviewee=user, sale__status=lifecycle.STATUS_COMPLETED)
        .annotate(sale_review_count=Subquery(sale_review_count, output_field=IntegerField()))
        .filter(
            Q(sale_review_count__gte=2)
            | Q(sale__completed_at__lt=lifecycle.public_review_cutoff(now))
        )
        .select_related('reviewer', 'sale')
        .order_by('-created_at')
    )


def review_statistics(reviews):
    ratings = [review.rating for review in reviews]
    distribution = {str(stars): 0 for stars in range(1, 6)}
    for rating in ratings:
        distribution[str(rating)] += 1

    average = round(sum(ratings) / len(ratings), 2) if ratings else None

    return {
        'average_rating': average,
        'total_reviews': len(ratings),
        'rating_distribution': distribution,
    }


def get_valid_public_reviews(*, user_id, now=None):
    """
    Public reviews of a user plus statistics computed over those reviews only.

    Hidden one-sided reviews are excluded from the average as well as from
    the list.
    """
    user = _get_user(user_id)
    reviews = list(visible_reviews_for(user, now))

    return {
        'user': user,
        'reviews': reviews,
        'statistics': review_statistics(reviews),
    }


def get_user_public_profile(*, user_id, now=None):
    """Everything the public profile page shows about a user."""
    user = _get_user(user_id)
    reviews = list(visible_reviews_for(user, now))

    return {
        'user': user,
        'statistics': review_statistics(reviews),
        'reviews': reviews,
        'sold_products': list(sold_products_for(user)),
        'active_products': list(
            Product.objects.available().filter(owner=user).order_by('-created_at')
        ),
    }
