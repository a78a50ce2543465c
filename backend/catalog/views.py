from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.conf import settings
from django.db import transaction
from django.views.static import serve
import logging
from .models import Product
from .serializers import ProductSerializer
from .filters import ProductFilter
from .validators import parse_product_fields
from .uploads import delete_product_image, save_product_image
from backend.core.exceptions import error_payload

logger = logging.getLogger(__name__)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def product_list_create(request):
    """List products (optionally filtered by ?search=) or create a new product"""
    if request.method == 'GET':
        try:
            filterset = ProductFilter(request.query_params, queryset=Product.objects.all())
            serializer = ProductSerializer(filterset.qs, many=True)
            return Response(serializer.data)
        except Exception as e:
            logger.error(f"Error retrieving products: {str(e)}", exc_info=True)
            return Response(error_payload('Error retrieving products'), status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    stored_image = None
    try:
        fields = parse_product_fields(request.data)
        image = request.FILES.get('image')
        with transaction.atomic():
            product = Product(**fields)
            product.full_clean()
            if image:
                stored_image = save_product_image(image)
                product.image = stored_image
            product.save()
        logger.info(f"Created product {product.product_id} ({product.name})")
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        delete_product_image(stored_image)
        return Response(error_payload('Error creating product', e), status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['PATCH'])
@permission_classes([AllowAny])
def product_update(request, product_id):
    """Partially update a product, optionally replacing its image"""
    stored_image = None
    try:
        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            return Response({'message': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)

        fields = parse_product_fields(request.data, partial=True)
        image = request.FILES.get('image')

        changes = {}
        for field, value in fields.items():
            old_value = getattr(product, field)
            if old_value != value:
                changes[field] = {'old': old_value, 'new': value}
            setattr(product, field, value)

        # Image only hits the disk once the other fields are valid
        product.full_clean()
        if image:
            stored_image = save_product_image(image)
            changes['image'] = {'old': product.image, 'new': stored_image}
            product.image = stored_image
        product.save()
        if changes:
            logger.info(f"Updated product {product.product_id}: {', '.join(sorted(changes))}")
        return Response(ProductSerializer(product).data, status=status.HTTP_200_OK)
    except Exception as e:
        logger.error(f"Error updating product: {str(e)}")
        delete_product_image(stored_image)
        return Response(error_payload('Error updating product', e), status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def serve_upload(request, path):
    """Serve a stored upload; the root is read per request so it follows settings"""
    return serve(request, path, document_root=str(settings.UPLOADS_ROOT))
