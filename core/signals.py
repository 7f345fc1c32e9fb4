"""
Django signals that turn sale, review and chat message changes into
notification events.

Receivers run inside the transaction of the change. They write outbox rows
only; the ``process_notifications`` command sends them.
"""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from . import notifications
from .models import Message, Review, Sale


@receiver(pre_save, sender=Sale)
def remember_previous_sale_status(sender, instance, raw=False, **kwargs):
    """
    Stash the stored status on the instance before it is overwritten, so
    the post_save receiver can tell which transition happened.
    """
    if raw or instance.pk is None:
        instance._previous_status = None
        return

    instance._previous_status = (
        Sale.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    )


@receiver(post_save, sender=Sale)
def enqueue_sale_notification(sender, instance, created, raw=False, **kwargs):
    """
    Sale inserted as pending      -> buyer is asked to confirm
    pending -> completed          -> seller is told the buyer confirmed
    pending -> cancelled          -> seller (declined) or buyer (withdrawn)
    """
    if raw:
        return

    previous_status = getattr(instance, '_previous_status', None)
    notifications.enqueue_for_sale(instance, created, previous_status)


@receiver(post_save, sender=Review)
def enqueue_review_notification(sender, instance, created, raw=False, **kwargs):
    if raw or not created:
        return

    notifications.enqueue_for_review(instance)


@receiver(post_save, sender=Message)
def enqueue_message_notification(sender, instance, created, raw=False, **kwargs):
    if raw or not created:
        return

    notifications.enqueue_for_message(instance)
