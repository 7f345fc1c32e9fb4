"""
Test suite for chats and messages.

Covers opening chats about products and rooms, per-side deletion,
read receipts and the message rate limit.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.models import Chat, Message, Product, RehearsalRoom


User = get_user_model()


class ChatTestBase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()

        self.seller = User.objects.create_user(
            username='seller', email='seller@test.com', password='testpass123'
        )
        self.buyer = User.objects.create_user(
            username='buyer', email='buyer@test.com', password='testpass123'
        )
        self.stranger = User.objects.create_user(
            username='stranger', email='stranger@test.com', password='testpass123'
        )
        self.product = Product.objects.create(
            owner=self.seller,
            category='guitar',
            type='Electric guitar',
            brand='Gibson',
            model='Les Paul',
            price=Decimal('12000.00'),
            image_urls=['https://cdn.test/lespaul.jpg'],
        )
        self.room = RehearsalRoom.objects.create(
            owner=self.seller,
            name='Basement room',
            type='rehearsal',
            room_size=Decimal('20.00'),
            price=Decimal('1500.00'),
            payment_type='per_month',
            image_urls=['https://cdn.test/room.jpg'],
        )

    def tearDown(self):
        cache.clear()

    def open_chat(self, user, item_type='product', item_id=None):
        self.client.force_authenticate(user=user)
        if item_id is None:
            item_id = self.product.id if item_type == 'product' else self.room.id
        return self.client.post('/api/chats/', {
            'item_type': item_type, 'item_id': item_id,
        }, format='json')


class OpenChatTests(ChatTestBase):

    def test_buyer_opens_chat_about_product(self):
        response = self.open_chat(self.buyer)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['chat']['item_type'], 'product')
        self.assertEqual(response.data['chat']['seller']['id'], self.seller.id)
        self.assertEqual(response.data['chat']['buyer']['id'], self.buyer.id)

    def test_opening_twice_returns_same_chat(self):
        first = self.open_chat(self.buyer)
        second = self.open_chat(self.buyer)

        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data['chat']['id'], second.data['chat']['id'])
        self.assertEqual(Chat.objects.count(), 1)

    def test_buyer_opens_chat_about_room(self):
        response = self.open_chat(self.buyer, item_type='room')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['chat']['item_type'], 'room')

    def test_owner_cannot_chat_about_own_listing(self):
        response = self.open_chat(self.seller)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'own_listing')

    def test_missing_listing_returns_404(self):
        response = self.open_chat(self.buyer, item_id=999999)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_new_chat_about_sold_product_is_rejected(self):
        self.product.mark_as_sold()

        response = self.open_chat(self.buyer)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'already_sold')

    def test_reopening_restores_deleted_chat(self):
        chat = Chat.objects.create(
            buyer=self.buyer, seller=self.seller, product=self.product, deleted_by_buyer=True
        )

        response = self.open_chat(self.buyer)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        chat.refresh_from_db()
        self.assertFalse(chat.deleted_by_buyer)


class ChatListAndDeleteTests(ChatTestBase):

    def setUp(self):
        super().setUp()
        self.chat = Chat.objects.create(buyer=self.buyer, seller=self.seller, product=self.product)

    def list_chats(self, user):
        self.client.force_authenticate(user=user)
        return self.client.get('/api/chats/')

    def test_both_participants_see_chat(self):
        for user in (self.buyer, self.seller):
            response = self.list_chats(user)
            self.assertEqual([chat['id'] for chat in response.data], [self.chat.id])

    def test_stranger_sees_nothing(self):
        response = self.list_chats(self.stranger)
        self.assertEqual(response.data, [])

    def test_delete_hides_chat_for_caller_only(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.delete(f'/api/chats/{self.chat.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.list_chats(self.buyer).data, [])
        self.assertEqual(len(self.list_chats(self.seller).data), 1)

    def test_stranger_cannot_delete(self):
        self.client.force_authenticate(user=self.stranger)
        response = self.client.delete(f'/api/chats/{self.chat.id}/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_new_message_restores_chat_for_both_sides(self):
        Chat.objects.filter(pk=self.chat.pk).update(deleted_by_buyer=True, deleted_by_seller=True)

        self.client.force_authenticate(user=self.seller)
        self.client.post(f'/api/chats/{self.chat.id}/messages/', {'content': 'Still there?'}, format='json')

        self.chat.refresh_from_db()
        self.assertFalse(self.chat.deleted_by_buyer)
        self.assertFalse(self.chat.deleted_by_seller)


class MessageTests(ChatTestBase):

    def setUp(self):
        super().setUp()
        self.chat = Chat.objects.create(buyer=self.buyer, seller=self.seller, product=self.product)

    def send(self, user, content):
        self.client.force_authenticate(user=user)
        return self.client.post(f'/api/chats/{self.chat.id}/messages/', {'content': content}, format='json')

    def test_participant_sends_message(self):
        response = self.send(self.buyer, 'Is it still available?')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message']['content'], 'Is it still available?')
        self.assertEqual(response.data['message']['sender_username'], 'buyer')

    def test_stranger_cannot_send(self):
        response = self.send(self.stranger, 'Hello')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Message.objects.count(), 0)

    def test_blank_message_is_rejected(self):
        response = self.send(self.buyer, '   ')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_message_too_long_is_rejected(self):
        response = self.send(self.buyer, 'x' * 1001)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reading_marks_counterpart_messages_read(self):
        self.send(self.buyer, 'Hi')
        self.send(self.seller, 'Hello')

        self.client.force_authenticate(user=self.seller)
        response = self.client.get(f'/api/chats/{self.chat.id}/messages/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['content'] for m in response.data], ['Hi', 'Hello'])
        self.assertTrue(Message.objects.get(sender=self.buyer).is_read)
        self.assertFalse(Message.objects.get(sender=self.seller).is_read)

    def test_unread_count_in_chat_list(self):
        self.send(self.buyer, 'One')
        self.send(self.buyer, 'Two')

        self.client.force_authenticate(user=self.seller)
        response = self.client.get('/api/chats/')

        self.assertEqual(response.data[0]['unread_count'], 2)
        self.assertEqual(response.data[0]['last_message']['content'], 'Two')

    def test_message_rate_limit(self):
        for i in range(10):
            response = self.send(self.buyer, f'Message {i}')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.send(self.buyer, 'One too many')

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(Message.objects.count(), 10)

    def test_reading_is_not_rate_limited(self):
        self.client.force_authenticate(user=self.buyer)
        for _ in range(12):
            response = self.client.get(f'/api/chats/{self.chat.id}/messages/')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
