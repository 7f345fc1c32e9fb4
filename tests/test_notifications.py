"""
Tests for the notification outbox and the email dispatcher.

Sale, review and chat message changes write NotificationEvent rows; the
process_notifications command sends them with retries.
"""

from datetime import timedelta
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from core import notifications
from core.models import Chat, Message, NotificationEvent, Product, RehearsalRoom, Review, Sale
from core.services.chats import delete_chat, send_message
from core.services.sales import confirm_sale, create_sale_request, withdraw_sale


User = get_user_model()


class NotificationTestBase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.seller = User.objects.create_user(
            username='seller', email='seller@test.com', password='testpass123'
        )
        self.buyer = User.objects.create_user(
            username='buyer', email='buyer@test.com', password='testpass123'
        )
        self.product = Product.objects.create(
            owner=self.seller,
            category='drums',
            type='Drum kit',
            brand='Tama',
            model='Starclassic',
            image_urls=['https://cdn.test/tama.jpg'],
        )
        self.chat = Chat.objects.create(buyer=self.buyer, seller=self.seller, product=self.product)


class DispatchTests(NotificationTestBase):

    def test_proposal_email_is_sent_to_buyer(self):
        create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)

        result = notifications.process_due_events()

        self.assertEqual(result.sent, 1)
        self.assertEqual(len(mail.outbox), 1)
        email = mail.outbox[0]
        self.assertEqual(email.to, ['buyer@test.com'])
        self.assertIn('Tama Starclassic', email.subject)
        self.assertIn('/mine-koeb', email.body)
        self.assertEqual(email.alternatives[0][1], 'text/html')

        event = NotificationEvent.objects.get()
        self.assertEqual(event.status, NotificationEvent.STATUS_SENT)
        self.assertEqual(event.attempts, 1)
        self.assertIsNotNone(event.processed_at)

    def test_sent_events_are_not_sent_again(self):
        create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)

        notifications.process_due_events()
        result = notifications.process_due_events()

        self.assertEqual(result.processed, 0)
        self.assertEqual(len(mail.outbox), 1)

    def test_failed_delivery_is_retried_later(self):
        create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        now = timezone.now()

        with mock.patch('core.notifications.send_event', side_effect=ConnectionError('smtp down')):
            result = notifications.process_due_events(now=now)

        self.assertEqual(result.retried, 1)
        event = NotificationEvent.objects.get()
        self.assertEqual(event.status, NotificationEvent.STATUS_PENDING)
        self.assertEqual(event.attempts, 1)
        self.assertGreater(event.next_attempt_at, now)
        self.assertIn('smtp down', event.last_error)

        # Not due yet.
        self.assertEqual(notifications.process_due_events(now=now).processed, 0)

        result = notifications.process_due_events(now=event.next_attempt_at)
        self.assertEqual(result.sent, 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_backoff_doubles(self):
        self.assertEqual(notifications.retry_delay(1), timedelta(seconds=60))
        self.assertEqual(notifications.retry_delay(2), timedelta(seconds=120))
        self.assertEqual(notifications.retry_delay(3), timedelta(seconds=240))

    @override_settings(MARKETPLACE={**settings.MARKETPLACE, 'NOTIFICATION_MAX_ATTEMPTS': 2})
    def test_event_fails_after_max_attempts(self):
        create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        event = NotificationEvent.objects.get()

        with mock.patch('core.notifications.send_event', side_effect=ConnectionError('smtp down')):
            notifications.process_event(event)
            notifications.process_event(event)

        event.refresh_from_db()
        self.assertEqual(event.status, NotificationEvent.STATUS_FAILED)
        self.assertEqual(event.attempts, 2)

    def test_recipient_without_email_is_skipped(self):
        create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        User.objects.filter(pk=self.buyer.pk).update(email='')

        result = notifications.process_due_events()

        self.assertEqual(result.skipped, 1)
        self.assertEqual(len(mail.outbox), 0)

    def test_failing_email_does_not_break_confirm(self):
        sale = create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        notifications.process_due_events()

        self.client.force_authenticate(user=self.buyer)
        response = self.client.post(f'/api/sales/{sale.id}/confirm/', format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        with mock.patch('core.notifications.send_event', side_effect=ConnectionError('smtp down')):
            notifications.process_due_events()

        event = NotificationEvent.objects.get(kind=NotificationEvent.KIND_SALE_CONFIRMED)
        self.assertEqual(event.attempts, 1)
        self.assertEqual(event.status, NotificationEvent.STATUS_PENDING)
        self.assertGreater(event.next_attempt_at, timezone.now())

        sale.refresh_from_db()
        self.assertEqual(sale.status, 'completed')

    def test_outbox_write_failure_does_not_break_sale(self):
        with mock.patch.object(
            NotificationEvent.objects, 'create', side_effect=DatabaseError('outbox unavailable')
        ):
            sale = create_sale_request(
                product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller
            )

        self.assertEqual(Sale.objects.get().pk, sale.pk)
        self.assertEqual(NotificationEvent.objects.count(), 0)

    def test_worker_crash_does_not_resend_delivered_events(self):
        sale = create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        withdraw_sale(sale_id=sale.id, caller=self.seller)
        real_send = notifications.send_event

        def deliver_proposal_only(event):
            if event.kind == NotificationEvent.KIND_SALE_WITHDRAWN:
                raise ConnectionError('smtp down')
            real_send(event)

        with mock.patch('core.notifications.send_event', side_effect=deliver_proposal_only), \
                mock.patch('core.notifications._record_failure', side_effect=DatabaseError('connection lost')):
            with self.assertRaises(DatabaseError):
                notifications.process_due_events()

        self.assertEqual(len(mail.outbox), 1)
        proposal = NotificationEvent.objects.get(kind=NotificationEvent.KIND_SALE_PROPOSED)
        withdrawal = NotificationEvent.objects.get(kind=NotificationEvent.KIND_SALE_WITHDRAWN)
        self.assertEqual(proposal.status, NotificationEvent.STATUS_SENT)
        self.assertEqual(withdrawal.status, NotificationEvent.STATUS_PENDING)
        self.assertEqual(withdrawal.attempts, 0)

        result = notifications.process_due_events()

        self.assertEqual(result.sent, 1)
        self.assertEqual(len(mail.outbox), 2)
        self.assertIn('withdrew', mail.outbox[1].subject)

    @override_settings(MARKETPLACE={**settings.MARKETPLACE, 'NOTIFICATION_MAX_ATTEMPTS': 1})
    def test_batch_counts_every_outcome(self):
        sale = create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        withdraw_sale(sale_id=sale.id, caller=self.seller)
        send_message(chat_id=self.chat.id, caller=self.buyer, content='Still interested')
        delete_chat(chat_id=self.chat.id, caller=self.seller)
        real_send = notifications.send_event

        def fail_proposal(event):
            if event.kind == NotificationEvent.KIND_SALE_PROPOSED:
                raise ConnectionError('smtp down')
            real_send(event)

        with mock.patch('core.notifications.send_event', side_effect=fail_proposal):
            result = notifications.process_due_events()

        self.assertEqual(result.sent, 1)
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.retried, 0)
        self.assertEqual(result.processed, 3)


class ReviewNotificationTests(NotificationTestBase):

    def setUp(self):
        super().setUp()
        sale = create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        self.sale = confirm_sale(sale_id=sale.id, caller=self.buyer)
        NotificationEvent.objects.all().delete()

    def test_first_review_notifies_reviewee(self):
        Review.objects.create(sale=self.sale, reviewer=self.buyer, reviewee=self.seller, rating=5)

        event = NotificationEvent.objects.get()
        self.assertEqual(event.kind, NotificationEvent.KIND_REVIEW_RECEIVED)
        self.assertEqual(event.recipient, self.seller)

        notifications.process_due_events()
        self.assertEqual(mail.outbox[0].to, ['seller@test.com'])
        self.assertIn('buyer', mail.outbox[0].subject)
        self.assertIn('/mine-salg', mail.outbox[0].body)

    def test_second_review_does_not_notify(self):
        Review.objects.create(sale=self.sale, reviewer=self.buyer, reviewee=self.seller, rating=5)
        Review.objects.create(sale=self.sale, reviewer=self.seller, reviewee=self.buyer, rating=5)

        self.assertEqual(NotificationEvent.objects.count(), 1)

    def test_review_link_follows_user_ids_after_renames(self):
        Review.objects.create(sale=self.sale, reviewer=self.seller, reviewee=self.buyer, rating=4)

        # The buyer takes over the seller's old username before the email goes out.
        User.objects.filter(pk=self.seller.pk).update(username='seller-renamed')
        User.objects.filter(pk=self.buyer.pk).update(username='seller')

        notifications.process_due_events()

        self.assertEqual(mail.outbox[0].to, ['buyer@test.com'])
        self.assertIn('/mine-koeb', mail.outbox[0].body)
        self.assertNotIn('/mine-salg', mail.outbox[0].body)


class MessageNotificationTests(NotificationTestBase):

    def test_message_notifies_other_participant(self):
        send_message(chat_id=self.chat.id, caller=self.buyer, content='Is the kit still available?')

        event = NotificationEvent.objects.get()
        self.assertEqual(event.kind, NotificationEvent.KIND_MESSAGE_RECEIVED)
        self.assertEqual(event.recipient, self.seller)
        self.assertEqual(event.chat, self.chat)
        self.assertEqual(event.payload['item_name'], 'Tama Starclassic')
        self.assertEqual(event.payload['sender_username'], 'buyer')

        result = notifications.process_due_events()

        self.assertEqual(result.sent, 1)
        email = mail.outbox[0]
        self.assertEqual(email.to, ['seller@test.com'])
        self.assertIn('buyer', email.subject)
        self.assertIn('Tama Starclassic', email.subject)
        self.assertIn(f'/chat/{self.chat.id}', email.body)
        self.assertIn('Is the kit still available?', email.body)

    def test_long_message_is_shortened_in_email(self):
        send_message(chat_id=self.chat.id, caller=self.seller, content='x' * 150)

        event = NotificationEvent.objects.get()
        self.assertEqual(event.recipient, self.buyer)
        self.assertEqual(event.payload['message_preview'], 'x' * 100 + '...')

    def test_recipient_who_deleted_chat_is_skipped(self):
        send_message(chat_id=self.chat.id, caller=self.buyer, content='Hello?')
        delete_chat(chat_id=self.chat.id, caller=self.seller)

        result = notifications.process_due_events()

        self.assertEqual(result.skipped, 1)
        self.assertEqual(len(mail.outbox), 0)
        event = NotificationEvent.objects.get()
        self.assertEqual(event.status, NotificationEvent.STATUS_SKIPPED)
        self.assertEqual(event.last_error, 'Recipient has deleted the chat.')

    def test_room_chat_is_named_after_room(self):
        room = RehearsalRoom.objects.create(
            owner=self.seller,
            name='Studio B',
            type='studio',
            image_urls=['https://cdn.test/studio-b.jpg'],
        )
        chat = Chat.objects.create(buyer=self.buyer, seller=self.seller, room=room)

        Message.objects.create(chat=chat, sender=self.seller, content='Free on Friday')

        event = NotificationEvent.objects.get()
        self.assertEqual(event.recipient, self.buyer)
        self.assertEqual(event.payload['item_name'], 'Studio B')


class ProcessNotificationsCommandTests(NotificationTestBase):

    def test_command_drains_outbox(self):
        create_sale_request(product_id=self.product.id, buyer_id=self.buyer.id, caller=self.seller)
        out = StringIO()

        call_command('process_notifications', stdout=out)

        self.assertIn('Processed 1 notification events.', out.getvalue())
        self.assertEqual(len(mail.outbox), 1)

    def test_command_rejects_invalid_batch_size(self):
        with self.assertRaises(CommandError):
            call_command('process_notifications', '--batch-size', '0', stdout=StringIO())
