from django.urls import path
from .views import (
    category_list_create, category_detail,
    collection_list_create, collection_detail, collection_products, collection_product_remove,
    product_list_create, product_detail, product_price, featured_products, new_arrivals,
    related_products, product_variants, variant_detail,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Collection endpoints
    path('collections/', collection_list_create, name='collection-list-create'),
    path('collections/<int:pk>/', collection_detail, name='collection-detail'),
    path('collections/<int:pk>/products/', collection_products, name='collection-products'),
    path('collections/<int:pk>/products/<int:product_id>/', collection_product_remove, name='collection-product-remove'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/featured/', featured_products, name='product-featured'),
    path('products/new-arrivals/', new_arrivals, name='product-new-arrivals'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/price/', product_price, name='product-price'),
    path('products/<int:pk>/related/', related_products, name='product-related'),
    path('products/<int:pk>/variants/', product_variants, name='product-variants'),

    # Variant endpoints
    path('variants/<int:pk>/', variant_detail, name='variant-detail'),
]
