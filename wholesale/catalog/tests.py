"""
Tests for categories, collections, products, variants and storefront visibility
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from wholesale.catalog.models import Product, ProductVariant
from wholesale.catalog import services
from wholesale.core.exceptions import InvalidOperationError
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ProductModelTests(TestCase):

    def test_is_purchasable_requires_published_and_active(self):
        product = TestDataFactory.create_product()
        self.assertTrue(product.is_purchasable)
        product.status = 'DRAFT'
        self.assertFalse(product.is_purchasable)
        product.status = 'PUBLISHED'
        product.is_active = False
        self.assertFalse(product.is_purchasable)

    def test_variant_display_name_uses_attribute_values(self):
        product = TestDataFactory.create_product(name='Work Glove')
        variant = TestDataFactory.create_variant(product, name='L / Blue', attributes={'size': 'L', 'color': 'Blue'})
        self.assertEqual(variant.display_name(), 'Work Glove (L, Blue)')


class ProductAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.category = TestDataFactory.create_category(name='Fasteners')
        self.bolt = TestDataFactory.create_product(name='Steel Hex Bolt', sku='BOLT-1', category=self.category,
                                                   price='2.50', tags=['steel', 'bulk'])
        self.nut = TestDataFactory.create_product(name='Brass Nut', sku='NUT-1', category=self.category, price='0.80')
        self.draft = TestDataFactory.create_product(name='Secret Washer', status='DRAFT', category=self.category)

    def test_storefront_list_hides_unpublished(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        skus = {p['sku'] for p in response.data['data']['results']}
        self.assertEqual(skus, {'BOLT-1', 'NUT-1'})

    def test_admin_list_includes_drafts(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data['data']['pagination']['total'], 3)

    def test_search_matches_every_word(self):
        response = self.client.get('/api/v1/products/', {'search': 'bolt steel'})
        results = response.data['data']['results']
        self.assertEqual([p['sku'] for p in results], ['BOLT-1'])

    def test_sort_and_price_filters(self):
        response = self.client.get('/api/v1/products/', {'sort': 'price_asc'})
        self.assertEqual([p['sku'] for p in response.data['data']['results']], ['NUT-1', 'BOLT-1'])
        response = self.client.get('/api/v1/products/', {'min_price': '1.00'})
        self.assertEqual([p['sku'] for p in response.data['data']['results']], ['BOLT-1'])

    def test_pagination_limit(self):
        response = self.client.get('/api/v1/products/', {'limit': 1, 'page': 2})
        pagination = response.data['data']['pagination']
        self.assertEqual(len(response.data['data']['results']), 1)
        self.assertEqual(pagination['pages'], 2)
        self.assertEqual(pagination['page'], 2)

    def test_list_cache_invalidated_on_product_change(self):
        self.client.get('/api/v1/products/')
        self.bolt.name = 'Zinc Hex Bolt'
        self.bolt.save()
        response = self.client.get('/api/v1/products/', {})
        names = {p['name'] for p in response.data['data']['results']}
        self.assertIn('Zinc Hex Bolt', names)

    def test_create_requires_admin(self):
        payload = {'name': 'Anchor', 'category': self.category.id, 'price': '4.00', 'stock': 10}
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        customer_user = TestDataFactory.create_user()
        self.client.authenticate_user(customer_user)
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_generates_sku(self):
        self.client.authenticate_user(self.admin)
        payload = {'name': 'Wall Anchor', 'category': self.category.id, 'price': '4.00', 'stock': 10}
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['data']['sku'])
        self.assertTrue(Product.objects.filter(sku=response.data['data']['sku']).exists())

    def test_duplicate_sku_rejected(self):
        self.client.authenticate_user(self.admin)
        payload = {'name': 'Other', 'sku': 'BOLT-1', 'category': self.category.id, 'price': '1.00'}
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data['data'])

    def test_negative_price_rejected(self):
        self.client.authenticate_user(self.admin)
        payload = {'name': 'Other', 'category': self.category.id, 'price': '-1.00'}
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_draft_detail_hidden_from_storefront(self):
        response = self.client.get(f'/api/v1/products/{self.draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_detail_includes_tiers_sorted(self):
        TestDataFactory.create_tier(self.bolt, 100, '2.00')
        TestDataFactory.create_tier(self.bolt, 10, '2.25')
        response = self.client.get(f'/api/v1/products/{self.bolt.id}/')
        tiers = response.data['data']['bulk_pricing']
        self.assertEqual([t['min_quantity'] for t in tiers], [10, 100])

    def test_price_endpoint_applies_tier(self):
        TestDataFactory.create_tier(self.bolt, 10, '2.25')
        TestDataFactory.create_tier(self.bolt, 100, '2.00')
        response = self.client.get(f'/api/v1/products/{self.bolt.id}/price/', {'quantity': 150})
        data = response.data['data']
        self.assertEqual(data['unit_price'], '2.00')
        self.assertEqual(data['total_price'], '300.00')
        self.assertEqual(data['tier']['min_quantity'], 100)

        response = self.client.get(f'/api/v1/products/{self.bolt.id}/price/', {'quantity': 5})
        self.assertEqual(response.data['data']['unit_price'], '2.50')
        self.assertIsNone(response.data['data']['tier'])

    def test_price_endpoint_rejects_zero_quantity(self):
        response = self.client.get(f'/api/v1/products/{self.bolt.id}/price/', {'quantity': 0})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_related_products_same_category(self):
        other = TestDataFactory.create_product(name='Paint')
        response = self.client.get(f'/api/v1/products/{self.bolt.id}/related/')
        skus = [p['sku'] for p in response.data['data']]
        self.assertEqual(skus, ['NUT-1'])
        self.assertNotIn(other.sku, skus)

    def test_featured_products(self):
        self.nut.is_featured = True
        self.nut.save()
        response = self.client.get('/api/v1/products/featured/')
        self.assertEqual([p['sku'] for p in response.data['data']], ['NUT-1'])

    def test_delete_product_with_orders_conflicts(self):
        customer = TestDataFactory.create_customer(verified=True)
        TestDataFactory.create_order(customer, [(self.bolt, 1, '2.50')])
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/products/{self.bolt.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Product.objects.filter(pk=self.bolt.pk).exists())


class CategoryAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()

    def test_category_product_counts(self):
        category = TestDataFactory.create_category(name='Tools')
        TestDataFactory.create_product(category=category)
        TestDataFactory.create_product(category=category, status='DRAFT')
        response = self.client.get('/api/v1/categories/')
        row = next(c for c in response.data['data'] if c['name'] == 'Tools')
        self.assertEqual(row['product_count'], 1)

    def test_delete_category_with_products_conflicts(self):
        category = TestDataFactory.create_category()
        TestDataFactory.create_product(category=category)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_collection_add_and_remove_product(self):
        collection = TestDataFactory.create_collection(name='Spring')
        product = TestDataFactory.create_product()
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/collections/{collection.id}/products/', {'product_id': product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.collection_id, collection.id)

        response = self.client.delete(f'/api/v1/collections/{collection.id}/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertIsNone(product.collection_id)


class VariantServiceTests(TestCase):

    def setUp(self):
        self.product = TestDataFactory.create_product(name='Safety Vest', sku='VEST', price='12.00')

    def test_create_variant_defaults(self):
        variant = services.create_variant(self.product, {'name': 'M', 'attributes': {'size': 'M'}})
        self.assertTrue(variant.sku)
        self.assertEqual(variant.price, Decimal('12.00'))

    def test_create_variant_duplicate_sku(self):
        TestDataFactory.create_variant(self.product, sku='VEST-M')
        with self.assertRaises(InvalidOperationError):
            services.create_variant(self.product, {'name': 'M2', 'sku': 'VEST-M'})

    def test_sync_updates_creates_and_deletes(self):
        keep = TestDataFactory.create_variant(self.product, name='S', sku='VEST-S')
        drop = TestDataFactory.create_variant(self.product, name='XL', sku='VEST-XL')

        result = services.sync_product_variants(self.product, [
            {'id': keep.id, 'name': 'Small', 'stock': 7},
            {'name': 'Large', 'sku': 'VEST-L', 'price': Decimal('13.00')},
        ])

        self.assertEqual(len(result), 2)
        self.assertFalse(ProductVariant.objects.filter(pk=drop.pk).exists())
        keep.refresh_from_db()
        self.assertEqual(keep.name, 'Small')
        self.assertEqual(keep.stock, 7)
        self.assertTrue(ProductVariant.objects.filter(sku='VEST-L', product=self.product).exists())

    def test_sync_swaps_skus_between_variants(self):
        small = TestDataFactory.create_variant(self.product, name='S', sku='VEST-A')
        large = TestDataFactory.create_variant(self.product, name='L', sku='VEST-B')

        services.sync_product_variants(self.product, [
            {'id': small.id, 'sku': 'VEST-B'},
            {'id': large.id, 'sku': 'VEST-A'},
        ])

        self.assertEqual(ProductVariant.objects.get(pk=small.pk).sku, 'VEST-B')
        self.assertEqual(ProductVariant.objects.get(pk=large.pk).sku, 'VEST-A')

    def test_sync_rejects_duplicate_or_foreign_sku(self):
        small = TestDataFactory.create_variant(self.product, name='S', sku='VEST-A')
        TestDataFactory.create_variant(TestDataFactory.create_product(), sku='OTHER-1')
        with self.assertRaises(InvalidOperationError):
            services.sync_product_variants(self.product, [{'id': small.id}, {'name': 'M', 'sku': 'VEST-A'}])
        with self.assertRaises(InvalidOperationError):
            services.sync_product_variants(self.product, [{'id': small.id, 'sku': 'OTHER-1'}])
        self.assertEqual(ProductVariant.objects.get(pk=small.pk).sku, 'VEST-A')

    def test_product_stock_is_sum_of_variant_stock(self):
        small = services.create_variant(self.product, {'name': 'S', 'stock': 4})
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 4)
        large = services.create_variant(self.product, {'name': 'L', 'stock': 6})
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 10)

        services.update_variant(small, {'stock': 1})
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 7)
        services.sync_product_variants(self.product, [{'id': large.id, 'stock': 8}, {'name': 'XL', 'stock': 2}])
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 10)
        services.delete_variant(ProductVariant.objects.get(pk=large.pk))
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 2)

    def test_sync_rejects_foreign_variant(self):
        other = TestDataFactory.create_product()
        foreign = TestDataFactory.create_variant(other)
        mine = TestDataFactory.create_variant(self.product)
        with self.assertRaises(InvalidOperationError):
            services.sync_product_variants(self.product, [{'id': foreign.id, 'name': 'x'}])
        self.assertTrue(ProductVariant.objects.filter(pk=mine.pk).exists())


class VariantAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(sku='GLOVE')

    def test_inactive_variants_hidden_from_storefront(self):
        TestDataFactory.create_variant(self.product, name='S', is_active=True)
        hidden = TestDataFactory.create_variant(self.product, name='XS', is_active=False)
        response = self.client.get(f'/api/v1/products/{self.product.id}/variants/')
        self.assertEqual([v['name'] for v in response.data['data']], ['S'])
        response = self.client.get(f'/api/v1/variants/{hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_put_replaces_variant_set(self):
        old = TestDataFactory.create_variant(self.product, name='Old')
        self.client.authenticate_user(self.admin)
        response = self.client.put(
            f'/api/v1/products/{self.product.id}/variants/',
            {'variants': [{'name': 'New', 'sku': 'GLOVE-NEW', 'price': '3.00', 'stock': 4}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['sku'] for v in response.data['data']], ['GLOVE-NEW'])
        self.assertFalse(ProductVariant.objects.filter(pk=old.pk).exists())

    def test_post_creates_variant(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post(
            f'/api/v1/products/{self.product.id}/variants/',
            {'name': 'Blue', 'attributes': {'color': 'Blue'}, 'stock': 5},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['product'], self.product.id)
