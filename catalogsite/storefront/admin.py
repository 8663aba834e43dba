from django.contrib import admin

from productcolors.admin import ReadOnlyAdminMixin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'is_active', 'sort_order', 'product_count')
    list_filter = ('is_active',)
    search_fields = ('name', 'slug')
    # имя/слаг и изображения меняются через API
    fields = ('name', 'slug', 'description', 'is_active', 'sort_order', 'product_count')
    readonly_fields = ('name', 'slug', 'product_count')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ('name', 'category', 'is_active', 'is_visible', 'is_sold_out', 'view_count')
    list_filter = ('category', 'is_active', 'is_featured', 'is_sold_out')
    search_fields = ('name', 'slug')
