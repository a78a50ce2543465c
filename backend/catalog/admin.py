from django.contrib import admin
from django.utils.html import format_html
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'product_id', 'category', 'price', 'currency', 'stock_quantity', 'stock_unit', 'rating', 'image_preview', 'updated_at']
    list_filter = ['category', 'currency', 'created_at']
    search_fields = ['name', 'product_id', 'category']
    ordering = ['name']
    readonly_fields = ['product_id', 'image_preview', 'created_at', 'updated_at']

    def image_preview(self, obj):
        if not obj.image:
            return '-'
        return format_html('<img src="{}" style="max-height: 40px;" />', obj.image)
    image_preview.short_description = 'Image'
