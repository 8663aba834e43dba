"""
Django REST Framework API URLs with Router.

Автоматически генерирует URL patterns для ViewSets.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .viewsets import (
    AdminCategoryViewSet,
    AdminColorViewSet,
    AdminProductViewSet,
    CategoryViewSet,
    ProductViewSet,
)


# Создаем Router
router = DefaultRouter()

# Админка каталога
router.register(r'admin/products', AdminProductViewSet, basename='admin-product')
router.register(r'admin/categories', AdminCategoryViewSet, basename='admin-category')
router.register(r'admin/colors', AdminColorViewSet, basename='admin-color')

# Публичное API
router.register(r'categories', CategoryViewSet, basename='api-category')
router.register(r'products', ProductViewSet, basename='api-product')

# URL patterns
urlpatterns = [
    path('', include(router.urls)),
]

# Автоматически созданные URLs:
# GET/POST          /api/admin/products/                     - Список / создание товара
# GET/PUT/PATCH/DELETE /api/admin/products/{id}/             - Товар
# POST              /api/admin/products/{id}/toggle/         - is_sold_out / is_active
# GET/POST          /api/admin/categories/                   - Категории
# GET/POST          /api/admin/colors/                       - Цвета
# GET               /api/categories/                         - Активные категории
# GET               /api/products/                           - Видимые товары с фильтрами
# GET               /api/products/{slug}/                    - Товар (view_count + 1)
# POST              /api/products/{slug}/whatsapp-inquiry/   - Запрос через WhatsApp
