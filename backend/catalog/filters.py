import django_filters
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list"""

    # Substring match on the product name
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')

    class Meta:
        model = Product
        fields = ['search', 'category']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(name__icontains=value)
