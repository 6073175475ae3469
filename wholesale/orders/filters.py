import django_filters
from django.db.models import Q
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """Filter for Order model using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='iexact')
    payment_status = django_filters.CharFilter(field_name='payment_status', lookup_expr='iexact')
    customer = django_filters.NumberFilter(field_name='customer_id', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Order
        fields = ['search', 'status', 'payment_status', 'customer', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        """Order number, company name or an item SKU"""
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value) |
            Q(customer__company_name__icontains=value) |
            Q(items__sku__icontains=value)
        ).distinct()
