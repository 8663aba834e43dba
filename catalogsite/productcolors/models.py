from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

from storefront.models import Product

IMAGE_URL_RE = r'(?i)^https?://.+\.(jpg|jpeg|png|gif|webp|svg)$'


class Color(models.Model):
    """
    Цвет, на который ссылаются варианты товаров.
    """
    name = models.CharField(max_length=50, unique=True)
    hex = models.CharField(max_length=7, help_text='#RRGGBB')
    slug = models.SlugField(max_length=60, unique=True)
    # Пишется только сервисом каталога (storefront.services.catalog.counters)
    product_count = models.PositiveIntegerField(default=0, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f'{self.name} ({self.hex})'


class ProductVariant(models.Model):
    """
    Цветовой вариант товара: своя цена, скидка, размеры и изображения.
    """
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    color = models.ForeignKey(Color, on_delete=models.PROTECT, related_name='variants')
    position = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    discount = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    final_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    rating = models.FloatField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    sizes = models.JSONField(default=list)

    class Meta:
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['product', 'position'], name='idx_variant_product_position'),
            models.Index(fields=['color'], name='idx_variant_color'),
        ]

    def __str__(self):
        return f'{self.product.name} [{self.color.name}]'


class ProductVariantImage(models.Model):
    """
    Изображение варианта; `public_id`: ключ объекта в хранилище.
    """
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, related_name='images')
    url = models.CharField(
        max_length=500,
        validators=[RegexValidator(
            IMAGE_URL_RE,
            'Image must be a valid HTTP/HTTPS URL with a jpg, jpeg, png, gif, webp or svg extension',
        )],
    )
    public_id = models.CharField(max_length=255)
    alt = models.CharField(max_length=100, blank=True, default='')
    is_primary = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return f'Image {self.public_id} for {self.variant}'
