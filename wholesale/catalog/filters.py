import django_filters
from django.db.models import Q
from .models import Product


SORT_ORDERINGS = {
    'price_asc': ['price', 'id'],
    'price_desc': ['-price', 'id'],
    'name_asc': ['name', 'id'],
    'name_desc': ['-name', 'id'],
    'newest': ['-created_at', '-id'],
}


class ProductFilter(django_filters.FilterSet):
    """Storefront and admin filter for Product model using django-filter"""

    # Basic search - searches across name, SKU, description, tags, category
    search = django_filters.CharFilter(method='filter_search', label='Search')

    # Direct field filters
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    collection = django_filters.NumberFilter(field_name='collection_id', lookup_expr='exact')
    status = django_filters.CharFilter(field_name='status', lookup_expr='iexact')
    featured = django_filters.CharFilter(method='filter_featured', label='Featured')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    sort = django_filters.CharFilter(method='filter_sort', label='Sort')

    class Meta:
        model = Product
        fields = ['search', 'category', 'collection', 'status', 'featured', 'active',
                  'min_price', 'max_price', 'in_stock', 'sort']

    def filter_search(self, queryset, name, value):
        """Match every word of the search text against name, SKU, description, category or tags

        "steel bolt" matches "Steel Hex Bolt M8": each word must appear somewhere,
        in any order.
        """
        if not value:
            return queryset
        words = [w.strip() for w in value.split() if w.strip()]
        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(sku__icontains=word) |
                Q(description__icontains=word) |
                Q(category__name__icontains=word) |
                Q(tags__icontains=word)
            )
        return queryset.distinct()

    @staticmethod
    def _as_bool(value):
        if isinstance(value, str):
            return value.lower() in ('true', '1', 'yes')
        return bool(value)

    def filter_featured(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        return queryset.filter(is_featured=self._as_bool(value))

    def filter_active(self, queryset, name, value):
        """Filter by active status (handles string 'true'/'false')"""
        if value is None or value == '':
            return queryset
        return queryset.filter(is_active=self._as_bool(value))

    def filter_in_stock(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        if self._as_bool(value):
            return queryset.filter(Q(stock__gt=0) | Q(variants__stock__gt=0)).distinct()
        return queryset.filter(stock=0).exclude(variants__stock__gt=0)

    def filter_sort(self, queryset, name, value):
        ordering = SORT_ORDERINGS.get(value)
        if not ordering:
            return queryset
        return queryset.order_by(*ordering)
