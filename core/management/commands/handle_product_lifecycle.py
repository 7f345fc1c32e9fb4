# Handle Product Lifecycle Management Command
from django.core.management.base import BaseCommand

from core.services.listings import handle_product_lifecycle, products_due_for_soft_delete


class Command(BaseCommand):
    help = 'Soft-deletes products that have been sold for longer than the retention period.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the products that would be soft-deleted without changing them.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        if dry_run:
            for product in products_due_for_soft_delete():
                self.stdout.write(
                    f'  [DRY-RUN] Product {product.id} ({product.display_name}): sold at {product.sold_at}'
                )

        product_ids = handle_product_lifecycle(dry_run=dry_run)

        if dry_run:
            self.stdout.write(self.style.SUCCESS(
                f'Dry run completed. {len(product_ids)} products would be soft-deleted.'
            ))
        else:
            self.stdout.write(self.style.SUCCESS(f'Soft-deleted {len(product_ids)} products.'))
