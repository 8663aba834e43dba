from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

VIDEO_URL_RE = r'^https?://(www\.)?(youtube\.com/watch\?v=|youtu\.be/|vimeo\.com/).+$'


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True)
    description = models.CharField(max_length=500, blank=True, default='')
    banner_image_url = models.URLField(max_length=500, blank=True, null=True)
    banner_image_public_id = models.CharField(max_length=255, blank=True, null=True)
    icon_url = models.URLField(max_length=500, blank=True, null=True)
    icon_public_id = models.CharField(max_length=255, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)
    # Пишется только сервисом каталога (storefront.services.catalog.counters)
    product_count = models.PositiveIntegerField(default=0, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'name']
        verbose_name_plural = 'categories'
        indexes = [
            models.Index(fields=['is_active'], name='idx_category_active'),
            models.Index(fields=['sort_order'], name='idx_category_sort_order'),
        ]

    def __str__(self):
        return self.name


class Product(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    description = models.TextField(max_length=2000, blank=True, default='')
    tags = models.JSONField(blank=True, default=list)
    collections = models.JSONField(blank=True, default=list)
    specifications = models.JSONField(blank=True, default=dict)
    video_url = models.URLField(
        max_length=500,
        blank=True,
        null=True,
        validators=[RegexValidator(VIDEO_URL_RE, 'Video URL must be from YouTube or Vimeo')],
    )
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)
    is_sold_out = models.BooleanField(default=False)
    is_visible = models.BooleanField(default=True)
    discount = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    view_count = models.PositiveIntegerField(default=0)
    whatsapp_inquiry_count = models.PositiveIntegerField(default=0)
    # Оптимистическая блокировка: увеличивается при каждом обновлении
    revision = models.PositiveIntegerField(default=0, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['category', 'is_active'], name='idx_product_category_active'),
            models.Index(fields=['is_featured', 'is_active'], name='idx_product_featured_active'),
            models.Index(fields=['is_visible', 'is_sold_out'], name='idx_product_visibility'),
            models.Index(fields=['-view_count'], name='idx_product_view_count'),
            models.Index(fields=['-created_at'], name='idx_product_created'),
        ]

    def __str__(self):
        return self.name

    @property
    def color_ids(self):
        """Distinct colour ids across variants, in variant order."""
        seen = []
        for variant in self.variants.all():
            if variant.color_id not in seen:
                seen.append(variant.color_id)
        return seen

    @property
    def primary_image(self):
        first = None
        for variant in self.variants.all():
            for image in variant.images.all():
                if image.is_primary:
                    return image
                if first is None:
                    first = image
        return first
