"""
Tests for the handle_product_lifecycle management command.

Products sold more than 3 days ago are soft-deleted; products with a
pending sale are left alone.
"""

from datetime import timedelta
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from core.models import Product, Sale
from core.services.listings import handle_product_lifecycle


User = get_user_model()


class ProductLifecycleCommandTests(TestCase):

    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller', email='seller@test.com', password='testpass123'
        )
        self.buyer = User.objects.create_user(
            username='buyer', email='buyer@test.com', password='testpass123'
        )

    def make_sold_product(self, days_ago, sale_status='completed'):
        sold_at = timezone.now() - timedelta(days=days_ago)
        product = Product.objects.create(
            owner=self.seller,
            category='guitar',
            type='Acoustic guitar',
            image_urls=['https://cdn.test/acoustic.jpg'],
            sold=True,
            sold_at=sold_at,
        )
        Sale.objects.create(
            product=product,
            buyer=self.buyer,
            seller=self.seller,
            status=sale_status,
            completed_at=sold_at if sale_status == 'completed' else None,
        )
        return product

    def run_command(self, *args):
        out = StringIO()
        call_command('handle_product_lifecycle', *args, stdout=out)
        return out.getvalue()

    def test_old_sold_product_is_soft_deleted(self):
        product = self.make_sold_product(days_ago=4)

        output = self.run_command()

        product = Product.all_objects.get(pk=product.pk)
        self.assertTrue(product.is_soft_deleted)
        self.assertIsNotNone(product.deleted_at)
        self.assertIn('Soft-deleted 1 products.', output)

    def test_recently_sold_product_is_kept(self):
        product = self.make_sold_product(days_ago=2)

        self.run_command()

        self.assertFalse(Product.all_objects.get(pk=product.pk).is_soft_deleted)

    def test_unsold_product_is_kept(self):
        product = Product.objects.create(
            owner=self.seller,
            category='guitar',
            type='Ukulele',
            image_urls=['https://cdn.test/uke.jpg'],
        )
        Product.all_objects.filter(pk=product.pk).update(
            created_at=timezone.now() - timedelta(days=30)
        )

        self.run_command()

        self.assertFalse(Product.all_objects.get(pk=product.pk).is_soft_deleted)

    def test_pending_sale_is_skipped(self):
        product = self.make_sold_product(days_ago=10, sale_status='pending')

        self.run_command()

        self.assertFalse(Product.all_objects.get(pk=product.pk).is_soft_deleted)

    def test_second_run_is_a_no_op(self):
        product = self.make_sold_product(days_ago=4)

        self.run_command()
        deleted_at = Product.all_objects.get(pk=product.pk).deleted_at
        output = self.run_command()

        self.assertIn('Soft-deleted 0 products.', output)
        self.assertEqual(Product.all_objects.get(pk=product.pk).deleted_at, deleted_at)

    def test_dry_run_changes_nothing(self):
        product = self.make_sold_product(days_ago=4)

        output = self.run_command('--dry-run')

        self.assertIn('[DRY-RUN]', output)
        self.assertIn('1 products would be soft-deleted', output)
        self.assertFalse(Product.all_objects.get(pk=product.pk).is_soft_deleted)

    def test_service_returns_affected_ids(self):
        old = self.make_sold_product(days_ago=5)
        self.make_sold_product(days_ago=1)

        self.assertEqual(handle_product_lifecycle(), [old.pk])
        self.assertEqual(handle_product_lifecycle(), [])


class SoftDeletedProductAccessTests(TestCase):
    """Soft-deleted products stay reachable for sale history."""

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
        sold_at = timezone.now() - timedelta(days=5)
        self.product = Product.objects.create(
            owner=self.seller,
            category='strings',
            type='Violin',
            image_urls=['https://cdn.test/violin.jpg'],
            sold=True,
            sold_at=sold_at,
        )
        self.sale = Sale.objects.create(
            product=self.product,
            buyer=self.buyer,
            seller=self.seller,
            status='completed',
            completed_at=sold_at,
        )
        handle_product_lifecycle()

    def test_public_detail_returns_404(self):
        response = self.client.get(f'/api/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_buyer_can_read_transaction_view(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.get(f'/api/products/{self.product.id}/transaction/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_soft_deleted'])
        self.assertEqual(response.data['type'], 'Violin')

    def test_owner_can_read_transaction_view(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.get(f'/api/products/{self.product.id}/transaction/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_stranger_cannot_read_transaction_view(self):
        self.client.force_authenticate(user=self.stranger)
        response = self.client.get(f'/api/products/{self.product.id}/transaction/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sold_products_include_soft_deleted(self):
        response = self.client.get(f'/api/users/{self.seller.id}/sold-products/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data], [self.product.id])
        self.assertTrue(response.data[0]['is_soft_deleted'])

    def test_sale_still_resolves_product(self):
        sale = Sale.objects.get(pk=self.sale.pk)
        self.assertEqual(sale.product.pk, self.product.pk)
