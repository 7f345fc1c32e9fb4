"""
Test suite for proposing a sale (POST /api/sales/).

The seller marks a product as sold to a user who has chatted about it.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.models import Chat, NotificationEvent, Product, Sale


User = get_user_model()


class SaleProposalTests(TestCase):
    """Happy path and preconditions of create_sale_request."""

    def setUp(self):
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
            brand='Fender',
            model='Stratocaster',
            price=Decimal('4500.00'),
            image_urls=['https://cdn.test/strat.jpg'],
        )
        self.chat = Chat.objects.create(buyer=self.buyer, seller=self.seller, product=self.product)

    def propose(self, user, product_id=None, buyer_id=None):
        self.client.force_authenticate(user=user)
        return self.client.post('/api/sales/', {
            'product_id': product_id or self.product.id,
            'buyer_id': buyer_id or self.buyer.id,
        }, format='json')

    def test_seller_can_propose_sale_to_chat_partner(self):
        response = self.propose(self.seller)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['sale']['status'], 'pending')
        self.assertEqual(response.data['sale']['buyer']['id'], self.buyer.id)
        self.assertEqual(response.data['sale']['seller']['id'], self.seller.id)

        sale = Sale.objects.get()
        self.assertEqual(sale.status, 'pending')
        self.assertIsNone(sale.completed_at)

    def test_proposal_marks_product_sold(self):
        self.propose(self.seller)

        self.product.refresh_from_db()
        self.assertTrue(self.product.sold)
        self.assertIsNotNone(self.product.sold_at)

    def test_proposed_product_leaves_public_listing(self):
        self.propose(self.seller)

        self.client.force_authenticate(user=None)
        response = self.client.get('/api/products/')

        ids = [item['id'] for item in response.data['results']]
        self.assertNotIn(self.product.id, ids)

    def test_proposal_enqueues_email_to_buyer(self):
        self.propose(self.seller)

        event = NotificationEvent.objects.get()
        self.assertEqual(event.kind, NotificationEvent.KIND_SALE_PROPOSED)
        self.assertEqual(event.recipient, self.buyer)
        self.assertEqual(event.payload['product_name'], 'Fender Stratocaster')

    def test_non_owner_cannot_propose(self):
        response = self.propose(self.stranger)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])
        self.assertEqual(Sale.objects.count(), 0)

    def test_missing_product_returns_404(self):
        response = self.propose(self.seller, product_id=999999)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_buyer_returns_404(self):
        response = self.propose(self.seller, buyer_id=999999)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cannot_sell_to_self(self):
        response = self.propose(self.seller, buyer_id=self.seller.id)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'self_sale')

    def test_buyer_without_chat_is_rejected(self):
        response = self.propose(self.seller, buyer_id=self.stranger.id)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'no_chat')

    def test_buyer_who_deleted_chat_is_not_eligible(self):
        self.chat.deleted_by_buyer = True
        self.chat.save()

        response = self.propose(self.seller)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'no_chat')

    def test_second_proposal_conflicts(self):
        other_buyer = User.objects.create_user(
            username='buyer2', email='buyer2@test.com', password='testpass123'
        )
        Chat.objects.create(buyer=other_buyer, seller=self.seller, product=self.product)

        first = self.propose(self.seller)
        second = self.propose(self.seller, buyer_id=other_buyer.id)

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data['code'], 'already_sold')
        self.assertEqual(Sale.objects.count(), 1)

    def test_soft_deleted_product_returns_404(self):
        self.product.soft_delete()

        response = self.propose(self.seller)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        response = self.client.post('/api/sales/', {
            'product_id': self.product.id, 'buyer_id': self.buyer.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_body_returns_400(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.post('/api/sales/', {'product_id': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProductBuyersTests(TestCase):
    """GET /api/products/{id}/buyers/"""

    def setUp(self):
        self.client = APIClient()
        self.seller = User.objects.create_user(
            username='seller', email='seller@test.com', password='testpass123'
        )
        self.buyer = User.objects.create_user(
            username='buyer', email='buyer@test.com', password='testpass123'
        )
        self.gone = User.objects.create_user(
            username='gone', email='gone@test.com', password='testpass123'
        )
        self.product = Product.objects.create(
            owner=self.seller,
            category='drums',
            type='Snare drum',
            image_urls=['https://cdn.test/snare.jpg'],
        )
        Chat.objects.create(buyer=self.buyer, seller=self.seller, product=self.product)
        Chat.objects.create(
            buyer=self.gone, seller=self.seller, product=self.product, deleted_by_buyer=True
        )

    def test_owner_sees_active_chat_partners_only(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.get(f'/api/products/{self.product.id}/buyers/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['user_id'] for row in response.data], [self.buyer.id])
        self.assertEqual(response.data[0]['username'], 'buyer')

    def test_non_owner_is_forbidden(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.get(f'/api/products/{self.product.id}/buyers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
