"""
Sale and review lifecycle rules.

Pure functions only: no database access and no side effects. The services
module applies these rules inside transactions; views and serializers reuse
them for read-side flags such as ``can_review``.
"""

from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .exceptions import InvalidTransitionError


STATUS_PENDING = 'pending'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'

# Statuses that occupy a product; at most one such sale may exist per product.
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_COMPLETED)

TERMINAL_STATES = {STATUS_COMPLETED, STATUS_CANCELLED}

ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: set(),
    STATUS_CANCELLED: set(),
}

REVIEWS_WITHHELD_MESSAGE = (
    'Reviews become visible once both buyer and seller have submitted '
    'their review, or when the review period has ended.'
)


def marketplace_setting(name):
    return settings.MARKETPLACE[name]


def review_window():
    return timedelta(days=marketplace_setting('REVIEW_WINDOW_DAYS'))


def can_transition(from_status, to_status):
    if from_status in TERMINAL_STATES:
        return False
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(sale, target_status):
    """
    Raise InvalidTransitionError unless ``sale`` may move to ``target_status``.

    The message is user-facing and names the current state, so a second
    confirm on a completed sale reads "This sale is already completed."
    """
    if can_transition(sale.status, target_status):
        return
    if sale.status in TERMINAL_STATES:
        raise InvalidTransitionError(f'This sale is already {sale.status}.')
    raise InvalidTransitionError(
        f'Sale cannot transition from {sale.status} to {target_status}.'
    )


def review_window_open(completed_at, now=None):
    """A participant may review while no more than the window has elapsed."""
    if completed_at is None:
        return False
    now = now or timezone.now()
    return now - completed_at <= review_window()


def review_window_closes_at(completed_at):
    if completed_at is None:
        return None
    return completed_at + review_window()


def reviews_visible(review_count, completed_at, now=None):
    """
    Decide whether the reviews of one sale are publicly readable.

    Visible when both parties have reviewed, or once the review window has
    fully elapsed since completion. Evaluated on every read.
    """
    if review_count >= 2:
        return True
    if completed_at is None:
        return False
    now = now or timezone.now()
    return now - completed_at > review_window()


def public_review_cutoff(now=None):
    """Sales completed before this instant have public reviews regardless of count."""
    now = now or timezone.now()
    return now - review_window()
