from django.urls import re_path
from .views import product_list_create, product_update

urlpatterns = [
    # Product endpoints - the frontend calls them without a trailing slash
    re_path(r'^products/?$', product_list_create, name='product-list-create'),
    re_path(r'^products/(?P<product_id>[^/]+)/?$', product_update, name='product-update'),
]
