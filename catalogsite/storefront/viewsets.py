"""
Django REST Framework ViewSets for the catalog API.

Админские ViewSets передают запись в сервисный слой
(storefront.services.catalog); публичные только читают и фильтруют.
Ошибки каталога (CatalogError) превращаются в ответ
{statusCode, kind, message} с HTTP-статусом ошибки.
"""

import logging

from django.conf import settings
from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from productcolors.models import Color
from .models import Category, Product
from .serializers import (
    CategorySerializer,
    ColorSerializer,
    ProductFilterSerializer,
    ProductFlagsSerializer,
    ProductSerializer,
)
from .services.catalog import (
    CatalogError,
    create_category,
    create_color,
    create_product,
    delete_category,
    delete_color,
    delete_product,
    record_view,
    record_whatsapp_inquiry,
    removals_from_multipart,
    set_product_flags,
    update_category,
    update_color,
    update_product,
    uploads_from_multipart,
)
from .services.catalog.normalizer import coerce_list

logger = logging.getLogger(__name__)


def plain_payload(data):
    """
    QueryDict -> dict: одиночные значения как есть, повторяющиеся ключи
    (`tags`, `tags[]`) собираются в список.
    """
    if not hasattr(data, 'getlist'):
        return dict(data)
    payload = {}
    for key in data.keys():
        values = data.getlist(key)
        name = key[:-2] if key.endswith('[]') else key
        payload[name] = values[0] if len(values) == 1 else values
    return payload


def removal_requests(request, payload):
    """
    Запросы на удаление изображений: multipart-ключи
    `variants[i][imagesToRemove]` или поле `imagesToRemove` внутри варианта в JSON.
    """
    removals = removals_from_multipart(request.data)
    for index, variant in enumerate(coerce_list(payload.get('variants'))):
        if isinstance(variant, dict) and variant.get('imagesToRemove') is not None:
            removals.setdefault(index, variant['imagesToRemove'])
    return removals


class CatalogErrorMixin:
    """Отдаёт CatalogError клиенту как стабильный kind + message."""

    def handle_exception(self, exc):
        if isinstance(exc, CatalogError):
            expose = getattr(settings, 'CATALOG_EXPOSE_ERROR_DETAIL', False)
            return Response(exc.as_dict(include_details=expose), status=exc.http_status)
        return super().handle_exception(exc)


# ==================== ADMIN ====================

class AdminProductViewSet(CatalogErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    Управление товарами.

    Предоставляет:
        - list / retrieve: GET /api/admin/products/[{id}/]
        - create: POST /api/admin/products/ (JSON или multipart)
        - update: PUT/PATCH /api/admin/products/{id}/
        - destroy: DELETE /api/admin/products/{id}/
        - toggle: POST /api/admin/products/{id}/toggle/

    Файлы вариантов: `variants[i][image]`, alt: `variants[i][imageAlt_n]`.
    """
    serializer_class = ProductSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        return (
            Product.objects.select_related('category')
            .prefetch_related('variants__color', 'variants__images')
        )

    def create(self, request):
        payload = plain_payload(request.data)
        product = create_product(payload, uploads_from_multipart(request.FILES, request.data))
        return Response(self.get_serializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        payload = plain_payload(request.data)
        product = update_product(
            pk,
            payload,
            uploads_from_multipart(request.FILES, request.data),
            removal_requests(request, payload),
        )
        return Response(self.get_serializer(product).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        delete_product(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post', 'patch'], url_path='toggle')
    def toggle(self, request, pk=None):
        """Переключить is_sold_out / is_active без изменения вариантов."""
        flags = ProductFlagsSerializer(data=request.data)
        flags.is_valid(raise_exception=True)
        product = set_product_flags(pk, **flags.validated_data)
        return Response(self.get_serializer(product).data)


def _category_files(request):
    files = request.FILES
    return {
        'banner_image': files.get('bannerImage') or files.get('banner_image'),
        'icon': files.get('icon'),
    }


class AdminCategoryViewSet(CatalogErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    Управление категориями: CRUD + баннер/иконка.

    product_count только для чтения.
    """
    serializer_class = CategorySerializer
    permission_classes = [IsAdminUser]
    queryset = Category.objects.all()

    def create(self, request):
        category = create_category(plain_payload(request.data), _category_files(request))
        return Response(self.get_serializer(category).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        category = update_category(pk, plain_payload(request.data), _category_files(request))
        return Response(self.get_serializer(category).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        delete_category(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminColorViewSet(CatalogErrorMixin, viewsets.ReadOnlyModelViewSet):
    """Управление цветами."""
    serializer_class = ColorSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = Color.objects.all()
        search = (self.request.query_params.get('search') or '').strip()
        if search:
            queryset = queryset.filter(name__icontains=search)
        return queryset

    def create(self, request):
        color = create_color(plain_payload(request.data))
        return Response(self.get_serializer(color).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        color = update_color(pk, plain_payload(request.data))
        return Response(self.get_serializer(color).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        delete_color(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ==================== PUBLIC ====================

class CategoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Активные категории.

    Предоставляет:
        - list: GET /api/categories/
        - retrieve: GET /api/categories/{slug}/
    """
    serializer_class = CategorySerializer
    permission_classes = [AllowAny]
    lookup_field = 'slug'
    queryset = Category.objects.filter(is_active=True)


class ProductViewSet(CatalogErrorMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Видимые активные товары.

    Предоставляет:
        - list: GET /api/products/?search=&category=&colors=&tags=&collections=&min_price=&max_price=&sort_by=
        - retrieve: GET /api/products/{slug}/ (увеличивает view_count)
        - whatsapp_inquiry: POST /api/products/{slug}/whatsapp-inquiry/
    """
    serializer_class = ProductSerializer
    permission_classes = [AllowAny]
    lookup_field = 'slug'

    def get_queryset(self):
        return (
            Product.objects.filter(is_visible=True, is_active=True)
            .select_related('category')
            .prefetch_related('variants__color', 'variants__images')
        )

    @staticmethod
    def _split(raw):
        return [item.strip() for item in (raw or '').split(',') if item.strip()]

    def filter_queryset(self, queryset):
        params = ProductFilterSerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        options = params.validated_data

        search = (options.get('search') or '').strip()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search)
                | Q(description__icontains=search)
                | Q(tags__icontains=search)
            )

        category = (options.get('category') or '').strip()
        if category:
            if category.isdigit():
                queryset = queryset.filter(category_id=int(category))
            else:
                queryset = queryset.filter(category__slug=category)

        color_ids = [int(value) for value in self._split(options.get('colors')) if value.isdigit()]
        if color_ids:
            queryset = queryset.filter(variants__color_id__in=color_ids)

        # Теги и коллекции хранятся как JSON-список слагов
        for field_name in ('tags', 'collections'):
            values = self._split(options.get(field_name))
            if values:
                match = Q()
                for value in values:
                    match |= Q(**{f'{field_name}__icontains': f'"{value}"'})
                queryset = queryset.filter(match)

        if options.get('min_price') is not None:
            queryset = queryset.filter(variants__final_price__gte=options['min_price'])
        if options.get('max_price') is not None:
            queryset = queryset.filter(variants__final_price__lte=options['max_price'])

        return queryset.distinct().order_by(options.get('sort_by', '-created_at'), '-id')

    def retrieve(self, request, slug=None):
        product = self.get_object()
        record_view(product)
        product.view_count += 1
        return Response(self.get_serializer(product).data)

    @action(detail=True, methods=['post'], url_path='whatsapp-inquiry')
    def whatsapp_inquiry(self, request, slug=None):
        product = self.get_object()
        record_whatsapp_inquiry(product)
        return Response({
            'success': True,
            'whatsapp_inquiry_count': product.whatsapp_inquiry_count + 1,
        })
