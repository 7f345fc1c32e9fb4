"""
Email notifications for sale, review and chat events.

Two halves:

* enqueue: ``enqueue_for_sale`` / ``enqueue_for_review`` /
  ``enqueue_for_message`` write NotificationEvent rows. They are called from
  signal handlers inside the transaction that made the change, so an event
  exists exactly when the change committed.
* dispatch: ``process_due_events`` renders and sends pending events. It is
  run by the ``process_notifications`` management command and never raises
  on a delivery failure; failures are retried with exponential backoff.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone

from . import lifecycle
from .models import NotificationEvent, Review

logger = logging.getLogger(__name__)


EMAIL_SUBJECTS = {
    NotificationEvent.KIND_SALE_PROPOSED: 'Confirm your purchase of {product_name}',
    NotificationEvent.KIND_SALE_CONFIRMED: '{buyer_username} confirmed the purchase of {product_name}',
    NotificationEvent.KIND_SALE_DECLINED: '{buyer_username} declined the purchase of {product_name}',
    NotificationEvent.KIND_SALE_WITHDRAWN: '{seller_username} withdrew the sale of {product_name}',
    NotificationEvent.KIND_REVIEW_RECEIVED: '{reviewer_username} reviewed you - leave your review too',
    NotificationEvent.KIND_MESSAGE_RECEIVED: 'New message from {sender_username} about {item_name}',
}

MESSAGE_PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class DispatchResult:
    sent: int = 0
    skipped: int = 0
    retried: int = 0
    failed: int = 0

    @property
    def processed(self):
        return self.sent + self.skipped + self.retried + self.failed


# ============================================================================
# Enqueue
# ============================================================================

def sale_notification_for(sale, created, previous_status):
    """
    Decide which email a sale change triggers.

    Returns:
        tuple (kind, recipient_id) or None
    """
    if created:
        if sale.status == lifecycle.STATUS_PENDING:
            return NotificationEvent.KIND_SALE_PROPOSED, sale.buyer_id
        return None

    if previous_status == sale.status:
        return None

    if sale.status == lifecycle.STATUS_COMPLETED:
        return NotificationEvent.KIND_SALE_CONFIRMED, sale.seller_id

    if sale.status == lifecycle.STATUS_CANCELLED and previous_status == lifecycle.STATUS_PENDING:
        if sale.cancel_reason == 'withdrawn':
            return NotificationEvent.KIND_SALE_WITHDRAWN, sale.buyer_id
        return NotificationEvent.KIND_SALE_DECLINED, sale.seller_id

    return None


def _sale_payload(sale):
    product = sale.product
    return {
        'sale_id': sale.pk,
        'product_id': product.pk,
        'product_name': product.display_name,
        'buyer_id': sale.buyer_id,
        'buyer_username': sale.buyer.username,
        'seller_id': sale.seller_id,
        'seller_username': sale.seller.username,
    }


def message_preview(content):
    if len(content) > MESSAGE_PREVIEW_LENGTH:
        return content[:MESSAGE_PREVIEW_LENGTH] + '...'
    return content


def _create_event(**fields):
    """
    Write one outbox row inside a savepoint.

    A failure is logged and swallowed: the change it belongs to must still
    commit.
    """
    try:
        with transaction.atomic():
            event = NotificationEvent.objects.create(**fields)
    except Exception:
        logger.exception(
            f"Failed to enqueue notification - Kind: {fields.get('kind')}, "
            f"Recipient: {fields.get('recipient_id')}"
        )
        return None

    logger.info(
        f"Notification enqueued - Event ID: {event.pk}, Kind: {event.kind}, "
        f"Recipient: {event.recipient_id}"
    )
    return event


def enqueue_for_sale(sale, created, previous_status):
    decision = sale_notification_for(sale, created, previous_status)
    if decision is None:
        return None

    kind, recipient_id = decision
    return _create_event(
        kind=kind,
        recipient_id=recipient_id,
        sale=sale,
        payload=_sale_payload(sale),
    )


def enqueue_for_review(review):
    """
    The first review of a sale asks the reviewee to leave theirs. The second
    review triggers nothing.
    """
    if Review.objects.filter(sale_id=review.sale_id).count() != 1:
        return None

    payload = _sale_payload(review.sale)
    payload.update({
        'review_id': review.pk,
        'reviewer_username': review.reviewer.username,
        'rating': review.rating,
    })

    return _create_event(
        kind=NotificationEvent.KIND_REVIEW_RECEIVED,
        recipient_id=review.reviewee_id,
        sale_id=review.sale_id,
        review=review,
        payload=payload,
    )


def enqueue_for_message(message):
    """Tell the other participant of the chat about a new message."""
    chat = message.chat

    return _create_event(
        kind=NotificationEvent.KIND_MESSAGE_RECEIVED,
        recipient_id=chat.other_participant_id(message.sender_id),
        chat=chat,
        payload={
            'chat_id': chat.pk,
            'message_id': message.pk,
            'sender_id': message.sender_id,
            'sender_username': message.sender.username,
            'item_name': chat.item_name,
            'message_preview': message_preview(message.content),
        },
    )


# ============================================================================
# Dispatch
# ============================================================================

def render_event(event):
    """
    Render subject, plain text and HTML bodies for an event.

    Returns:
        tuple (subject, text_body, html_body)
    """
    site_url = lifecycle.marketplace_setting('SITE_BASE_URL').rstrip('/')
    context = {
        **event.payload,
        'recipient_username': event.recipient.username,
        'site_url': site_url,
        'sales_url': f'{site_url}/mine-salg',
        'purchases_url': f'{site_url}/mine-koeb',
    }
    recipient_is_seller = event.payload.get('seller_id') == event.recipient_id
    context['review_url'] = context['sales_url'] if recipient_is_seller else context['purchases_url']

    if 'chat_id' in event.payload:
        context['chat_url'] = f"{site_url}/chat/{event.payload['chat_id']}"

    subject = EMAIL_SUBJECTS[event.kind].format(**context)
    text_body = render_to_string(f'emails/{event.kind}.txt', context)
    html_body = render_to_string(f'emails/{event.kind}.html', context)
    return subject, text_body, html_body


def send_event(event):
    subject, text_body, html_body = render_event(event)

    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[event.recipient.email],
    )
    message.attach_alternative(html_body, 'text/html')
    message.send(fail_silently=False)


def skip_reason(event):
    """Why an event must not be delivered, or None if it should be sent."""
    recipient = event.recipient

    if not recipient.is_active:
        return 'Recipient account is closed.'

    if not recipient.email:
        return 'Recipient has no email address.'

    if event.chat is not None and event.chat.is_hidden_for(recipient.pk):
        return 'Recipient has deleted the chat.'

    return None


def retry_delay(attempts):
    base = lifecycle.marketplace_setting('NOTIFICATION_RETRY_BASE_SECONDS')
    return timedelta(seconds=base * 2 ** max(attempts - 1, 0))


def _record_failure(event, error, now):
    max_attempts = lifecycle.marketplace_setting('NOTIFICATION_MAX_ATTEMPTS')

    event.attempts += 1
    event.last_error = repr(error)[:2000]

    if event.attempts >= max_attempts:
        event.status = NotificationEvent.STATUS_FAILED
        event.processed_at = now
    else:
        event.next_attempt_at = now + retry_delay(event.attempts)

    event.save(update_fields=['attempts', 'last_error', 'status', 'next_attempt_at', 'processed_at'])


def process_event(event, now=None):
    """
    Deliver one event and record the outcome on it.

    Returns:
        the event's resulting status ('sent', 'skipped', 'pending' for a
        scheduled retry, or 'failed')
    """
    now = now or timezone.now()

    reason = skip_reason(event)
    if reason is not None:
        event.status = NotificationEvent.STATUS_SKIPPED
        event.processed_at = now
        event.last_error = reason
        event.save(update_fields=['status', 'processed_at', 'last_error'])
        logger.warning(f"Notification skipped - Event ID: {event.pk}, Reason: {reason}")
        return event.status

    try:
        send_event(event)
    except Exception as e:
        _record_failure(event, e, now)
        logger.error(
            f"Notification delivery failed - Event ID: {event.pk}, Kind: {event.kind}, "
            f"Attempt: {event.attempts}, Status: {event.status}",
            exc_info=True
        )
        return event.status

    event.attempts += 1
    event.status = NotificationEvent.STATUS_SENT
    event.processed_at = now
    event.last_error = ''
    event.save(update_fields=['attempts', 'status', 'processed_at', 'last_error'])
    logger.info(f"Notification sent - Event ID: {event.pk}, Kind: {event.kind}")
    return event.status


def claim_next_due_event(now):
    """
    The oldest pending event whose next attempt is due, locked for the
    current transaction.

    On databases that support it the row is locked with SKIP LOCKED so two
    workers never send the same email.
    """
    return (
        NotificationEvent.objects.select_for_update(skip_locked=True, of=('self',))
        .select_related('recipient', 'chat')
        .filter(status=NotificationEvent.STATUS_PENDING, next_attempt_at__lte=now)
        .order_by('next_attempt_at', 'pk')
        .first()
    )


def process_due_events(batch_size=None, now=None):
    """
    Process up to ``batch_size`` due events and return the counts per outcome.

    Every event is claimed, sent and recorded in its own transaction, so an
    event that was delivered stays ``sent`` even if the worker dies on a
    later event of the same batch.
    """
    now = now or timezone.now()
    batch_size = batch_size or lifecycle.marketplace_setting('NOTIFICATION_BATCH_SIZE')

    outcomes = Counter()

    for _ in range(batch_size):
        with transaction.atomic():
            event = claim_next_due_event(now)
            if event is None:
                break
            outcomes[process_event(event, now)] += 1

    return DispatchResult(
        sent=outcomes[NotificationEvent.STATUS_SENT],
        skipped=outcomes[NotificationEvent.STATUS_SKIPPED],
        retried=outcomes[NotificationEvent.STATUS_PENDING],
        failed=outcomes[NotificationEvent.STATUS_FAILED],
    )
