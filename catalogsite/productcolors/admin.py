from django.contrib import admin

from .models import Color, ProductVariant, ProductVariantImage


class ReadOnlyAdminMixin:
    """Запись только через API каталога: там ведутся счётчики и слаги."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Color)
class ColorAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ('name', 'hex', 'slug', 'product_count')
    search_fields = ('name', 'slug')


class ProductVariantImageInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = ProductVariantImage
    extra = 0
    fields = ('url', 'alt', 'is_primary', 'position')


@admin.register(ProductVariant)
class ProductVariantAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ('product', 'color', 'price', 'discount', 'final_price')
    list_select_related = ('product', 'color')
    inlines = [ProductVariantImageInline]
