"""
Django REST Framework Serializers for the catalog API.

Сериализаторы только для вывода: запись идёт через сервисный слой
(storefront.services.catalog), который держит счётчики и изображения
в согласованном состоянии.
"""

from rest_framework import serializers

from productcolors.models import Color, ProductVariant, ProductVariantImage
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    """
    Сериализатор категорий.

    Fields:
        - id, name, slug, description
        - banner_image_url / icon_url: изображения категории
        - is_active, sort_order
        - product_count: число товаров (read-only, ведётся сервисом)
    """

    class Meta:
        model = Category
        fields = [
            'id', 'name', 'slug', 'description',
            'banner_image_url', 'icon_url',
            'is_active', 'sort_order', 'product_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CategoryBriefSerializer(serializers.ModelSerializer):
    """Категория внутри товара."""

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'description']
        read_only_fields = fields


class ColorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Color
        fields = ['id', 'name', 'hex', 'slug', 'product_count', 'created_at', 'updated_at']
        read_only_fields = fields


class ColorBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Color
        fields = ['id', 'name', 'hex']
        read_only_fields = fields


class VariantImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductVariantImage
        fields = ['url', 'public_id', 'alt', 'is_primary']
        read_only_fields = fields


class ProductVariantSerializer(serializers.ModelSerializer):
    """
    Вариант товара с цветом и изображениями.

    `final_price` уже посчитан сервисом при записи.
    """
    color = ColorBriefSerializer(read_only=True)
    images = VariantImageSerializer(many=True, read_only=True)

    class Meta:
        model = ProductVariant
        fields = [
            'id', 'color', 'price', 'discount', 'final_price',
            'rating', 'sizes', 'images',
        ]
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    """
    Полное представление товара.

    Fields:
        - category: {id, name, slug, description}
        - variants: варианты с цветом {id, name, hex} и изображениями
        - primary_image: первое главное изображение среди вариантов
        - revision: нужен клиенту для оптимистической блокировки
    """
    category = CategoryBriefSerializer(read_only=True)
    variants = ProductVariantSerializer(many=True, read_only=True)
    primary_image = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'slug', 'category', 'description',
            'variants', 'tags', 'collections', 'specifications', 'video_url',
            'is_active', 'is_featured', 'is_sold_out', 'is_visible',
            'discount', 'view_count', 'whatsapp_inquiry_count', 'revision',
            'primary_image', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_primary_image(self, obj):
        image = obj.primary_image
        if image is None:
            return None
        return VariantImageSerializer(image).data


class ProductFlagsSerializer(serializers.Serializer):
    """Параметры переключения флагов товара."""
    is_sold_out = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide is_sold_out and/or is_active')
        return attrs


class ProductFilterSerializer(serializers.Serializer):
    """
    Параметры фильтрации публичного списка товаров.

    Fields:
        - search: по названию, описанию и тегам
        - category: ID или slug категории
        - colors / tags / collections: через запятую
        - min_price / max_price: по итоговой цене варианта
        - sort_by: created_at | view_count | name (с '-' для убывания)
    """
    SORT_FIELDS = ('created_at', 'view_count', 'name')

    search = serializers.CharField(required=False, allow_blank=True, max_length=200)
    category = serializers.CharField(required=False, allow_blank=True, max_length=120)
    colors = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.CharField(required=False, allow_blank=True)
    collections = serializers.CharField(required=False, allow_blank=True)
    min_price = serializers.DecimalField(required=False, allow_null=True, max_digits=12, decimal_places=2, min_value=0)
    max_price = serializers.DecimalField(required=False, allow_null=True, max_digits=12, decimal_places=2, min_value=0)
    sort_by = serializers.CharField(required=False, default='-created_at')

    def validate_sort_by(self, value):
        if value.lstrip('-') not in self.SORT_FIELDS:
            raise serializers.ValidationError(
                f"sort_by must be one of: {', '.join(self.SORT_FIELDS)}"
            )
        return value
