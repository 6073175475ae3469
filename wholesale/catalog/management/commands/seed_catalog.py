"""
Management command to load a demo wholesale catalog
"""
from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction
from wholesale.catalog.models import Category, Collection, Product, ProductVariant
from wholesale.core.cache_signals import suspend_cache_signals, invalidate_products_cache_manual
from wholesale.pricing.models import BulkPricing


CATALOG = [
    {
        'category': 'Fasteners',
        'products': [
            {
                'name': 'Hex Bolt M8 x 40', 'sku': 'FAST-HEX-M8', 'price': '0.45', 'stock': 5000,
                'min_order': 100, 'tags': ['steel', 'bulk'],
                'tiers': [(500, '0.40'), (1000, '0.36'), (5000, '0.30')],
            },
            {
                'name': 'Wood Screw 4 x 50', 'sku': 'FAST-WS-450', 'price': '0.12', 'stock': 12000,
                'min_order': 250, 'tags': ['bulk'],
                'tiers': [(1000, '0.10'), (10000, '0.08')],
            },
        ],
    },
    {
        'category': 'Safety',
        'products': [
            {
                'name': 'Nitrile Work Gloves', 'sku': 'SAFE-GLV-NIT', 'price': '2.80', 'stock': 0,
                'min_order': 12, 'tags': ['ppe'], 'featured': True,
                'tiers': [(120, '2.50'), (600, '2.20')],
                'variants': [
                    ('Medium', 'SAFE-GLV-NIT-M', {'size': 'M'}, 800),
                    ('Large', 'SAFE-GLV-NIT-L', {'size': 'L'}, 650),
                    ('X-Large', 'SAFE-GLV-NIT-XL', {'size': 'XL'}, 5),
                ],
            },
            {
                'name': 'Hi-Vis Vest', 'sku': 'SAFE-VEST-HV', 'price': '6.50', 'stock': 0,
                'min_order': 10, 'tags': ['ppe'],
                'variants': [
                    ('Yellow', 'SAFE-VEST-HV-Y', {'color': 'yellow'}, 300),
                    ('Orange', 'SAFE-VEST-HV-O', {'color': 'orange'}, 120),
                ],
            },
        ],
    },
    {
        'category': 'Packaging',
        'products': [
            {
                'name': 'Shipping Carton 40x30x30', 'sku': 'PACK-CTN-403030', 'price': '1.10', 'stock': 2400,
                'min_order': 50, 'tags': ['cardboard'], 'featured': True,
                'tiers': [(200, '0.95'), (1000, '0.80')],
            },
            {
                'name': 'Stretch Wrap 500mm', 'sku': 'PACK-WRAP-500', 'price': '14.00', 'stock': 8,
                'min_order': 1, 'tags': ['pallet'],
            },
        ],
    },
]


class Command(BaseCommand):
    help = "Loads a demo wholesale catalog: categories, products, variants and bulk pricing tiers"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete existing catalog rows before seeding',
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("SEEDING CATALOG"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        with suspend_cache_signals(), transaction.atomic():
            if options['clear']:
                self.stdout.write(self.style.WARNING("Clearing existing catalog..."))
                BulkPricing.objects.all().delete()
                ProductVariant.objects.all().delete()
                Product.objects.all().delete()
                Collection.objects.all().delete()
                Category.objects.all().delete()

            collection, _ = Collection.objects.get_or_create(
                name='Warehouse Essentials',
                defaults={'description': 'Everyday stock for warehouses and trade counters'},
            )

            created_count = 0
            skipped_count = 0
            for group in CATALOG:
                category, _ = Category.objects.get_or_create(name=group['category'])
                for data in group['products']:
                    if Product.objects.filter(sku=data['sku']).exists():
                        skipped_count += 1
                        self.stdout.write(self.style.WARNING(f"  Skipped (already exists): {data['sku']}"))
                        continue
                    self._create_product(category, collection, data)
                    created_count += 1
                    self.stdout.write(self.style.SUCCESS(f"  Created: {data['name']}"))

        invalidate_products_cache_manual()

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Products Created: {created_count}")
        self.stdout.write(f"Products Skipped (already exist): {skipped_count}")
        self.stdout.write(f"Total Products in Database: {Product.objects.count()}")
        self.stdout.write(self.style.SUCCESS("=" * 80))

    def _create_product(self, category, collection, data):
        variants = data.get('variants', [])
        product = Product.objects.create(
            name=data['name'],
            sku=data['sku'],
            category=category,
            collection=collection if data.get('featured') else None,
            tags=data.get('tags', []),
            price=Decimal(data['price']),
            # products with variants carry the sum of their variant stock
            stock=sum(v[3] for v in variants) if variants else data['stock'],
            min_order=data['min_order'],
            is_featured=data.get('featured', False),
        )
        for name, sku, attributes, stock in variants:
            ProductVariant.objects.create(
                product=product, name=name, sku=sku, price=product.price, stock=stock, attributes=attributes,
            )
        BulkPricing.objects.bulk_create([
            BulkPricing(product=product, min_quantity=min_quantity, price=Decimal(price))
            for min_quantity, price in data.get('tiers', [])
        ])
        return product
