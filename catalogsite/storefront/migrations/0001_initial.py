import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('slug', models.SlugField(max_length=120, unique=True)),
                ('description', models.CharField(blank=True, default='', max_length=500)),
                ('banner_image_url', models.URLField(blank=True, max_length=500, null=True)),
                ('banner_image_public_id', models.CharField(blank=True, max_length=255, null=True)),
                ('icon_url', models.URLField(blank=True, max_length=500, null=True)),
                ('icon_public_id', models.CharField(blank=True, max_length=255, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('product_count', models.PositiveIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['sort_order', 'name'],
                'verbose_name_plural': 'categories',
                'indexes': [
                    models.Index(fields=['is_active'], name='idx_category_active'),
                    models.Index(fields=['sort_order'], name='idx_category_sort_order'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(max_length=220, unique=True)),
                ('description', models.TextField(blank=True, default='', max_length=2000)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('collections', models.JSONField(blank=True, default=list)),
                ('specifications', models.JSONField(blank=True, default=dict)),
                ('video_url', models.URLField(blank=True, max_length=500, null=True, validators=[django.core.validators.RegexValidator('^https?://(www\\.)?(youtube\\.com/watch\\?v=|youtu\\.be/|vimeo\\.com/).+$', 'Video URL must be from YouTube or Vimeo')])),
                ('is_active', models.BooleanField(default=True)),
                ('is_featured', models.BooleanField(default=False)),
                ('is_sold_out', models.BooleanField(default=False)),
                ('is_visible', models.BooleanField(default=True)),
                ('discount', models.DecimalField(decimal_places=2, default=0, max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('view_count', models.PositiveIntegerField(default=0)),
                ('whatsapp_inquiry_count', models.PositiveIntegerField(default=0)),
                ('revision', models.PositiveIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='products', to='storefront.category')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['category', 'is_active'], name='idx_product_category_active'),
                    models.Index(fields=['is_featured', 'is_active'], name='idx_product_featured_active'),
                    models.Index(fields=['is_visible', 'is_sold_out'], name='idx_product_visibility'),
                    models.Index(fields=['-view_count'], name='idx_product_view_count'),
                    models.Index(fields=['-created_at'], name='idx_product_created'),
                ],
            },
        ),
    ]
