"""
Test suite for review submission (POST /api/reviews/).

A participant of a completed sale may review the other participant once,
within 14 days of completion.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from core.exceptions import ConflictError, PreconditionError
from core.models import Product, Review, Sale
from core.services.reviews import create_review


User = get_user_model()


class ReviewSubmissionTests(TestCase):

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
            category='keyboards',
            type='Synthesizer',
            brand='Korg',
            model='Minilogue',
            image_urls=['https://cdn.test/minilogue.jpg'],
            sold=True,
            sold_at=timezone.now(),
        )
        self.sale = Sale.objects.create(
            product=self.product,
            buyer=self.buyer,
            seller=self.seller,
            status='completed',
            completed_at=timezone.now(),
        )

    def set_completed_days_ago(self, days):
        Sale.objects.filter(pk=self.sale.pk).update(
            completed_at=timezone.now() - timedelta(days=days)
        )

    def post_review(self, user, rating=5, content='Smooth handover!', sale_id=None):
        self.client.force_authenticate(user=user)
        return self.client.post('/api/reviews/', {
            'sale_id': sale_id or self.sale.id,
            'rating': rating,
            'content': content,
        }, format='json')

    def test_buyer_can_review_seller(self):
        response = self.post_review(self.buyer)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['review']['rating'], 5)
        self.assertEqual(response.data['review']['reviewer']['id'], self.buyer.id)
        self.assertEqual(response.data['review']['reviewee_id'], self.seller.id)
        self.assertEqual(response.data['review']['sale_id'], self.sale.id)

    def test_seller_can_review_buyer(self):
        response = self.post_review(self.seller, rating=4, content='Paid quickly')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        review = Review.objects.get()
        self.assertEqual(review.reviewer, self.seller)
        self.assertEqual(review.reviewee, self.buyer)

    def test_content_is_optional(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.post('/api/reviews/', {
            'sale_id': self.sale.id, 'rating': 3,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Review.objects.get().content, '')

    def test_review_on_day_13_is_accepted(self):
        self.set_completed_days_ago(13)

        response = self.post_review(self.buyer)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_review_on_day_20_is_rejected(self):
        self.set_completed_days_ago(20)

        response = self.post_review(self.buyer)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['code'], 'review_period_expired')
        self.assertEqual(response.data['error'], 'The review period has expired.')
        self.assertEqual(Review.objects.count(), 0)

    def test_duplicate_review_conflicts(self):
        first = self.post_review(self.buyer)
        second = self.post_review(self.buyer, rating=1)

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data['code'], 'already_reviewed')
        self.assertEqual(Review.objects.count(), 1)

    def test_non_participant_is_forbidden(self):
        response = self.post_review(self.stranger)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Review.objects.count(), 0)

    def test_missing_sale_returns_404(self):
        response = self.post_review(self.buyer, sale_id=999999)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_pending_sale_cannot_be_reviewed(self):
        Sale.objects.filter(pk=self.sale.pk).update(status='pending', completed_at=None)

        response = self.post_review(self.buyer)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'sale_not_completed')

    def test_rating_out_of_range_is_rejected(self):
        for rating in (0, 6):
            response = self.post_review(self.buyer, rating=rating)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.assertEqual(Review.objects.count(), 0)

    def test_content_too_long_is_rejected(self):
        response = self.post_review(self.buyer, content='x' * 1001)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Review.objects.count(), 0)

    def test_review_of_soft_deleted_product_sale_is_allowed(self):
        self.product.soft_delete()

        response = self.post_review(self.buyer)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_requires_authentication(self):
        response = self.client.post('/api/reviews/', {'sale_id': self.sale.id, 'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ReviewServiceTests(TestCase):
    """create_review called directly, with an explicit clock."""

    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller', email='seller@test.com', password='testpass123'
        )
        self.buyer = User.objects.create_user(
            username='buyer', email='buyer@test.com', password='testpass123'
        )
        self.completed_at = timezone.now() - timedelta(days=30)
        product = Product.objects.create(
            owner=self.seller,
            category='wind',
            type='Saxophone',
            image_urls=['https://cdn.test/sax.jpg'],
            sold=True,
            sold_at=self.completed_at,
        )
        self.sale = Sale.objects.create(
            product=product,
            buyer=self.buyer,
            seller=self.seller,
            status='completed',
            completed_at=self.completed_at,
        )

    def test_boundary_is_inclusive(self):
        now = self.completed_at + timedelta(days=14)

        review = create_review(sale_id=self.sale.id, rating=4, content='', caller=self.buyer, now=now)
        self.assertEqual(review.rating, 4)

    def test_one_second_after_boundary_is_rejected(self):
        now = self.completed_at + timedelta(days=14, seconds=1)

        with self.assertRaises(PreconditionError) as ctx:
            create_review(sale_id=self.sale.id, rating=4, content='', caller=self.buyer, now=now)

        self.assertEqual(ctx.exception.code, 'review_period_expired')

    def test_boolean_rating_is_rejected(self):
        with self.assertRaises(PreconditionError) as ctx:
            create_review(
                sale_id=self.sale.id, rating=True, content='', caller=self.buyer,
                now=self.completed_at
            )

        self.assertEqual(ctx.exception.code, 'invalid_rating')

    def test_duplicate_raises_conflict(self):
        create_review(sale_id=self.sale.id, rating=5, content='', caller=self.seller, now=self.completed_at)

        with self.assertRaises(ConflictError):
            create_review(sale_id=self.sale.id, rating=2, content='', caller=self.seller, now=self.completed_at)
