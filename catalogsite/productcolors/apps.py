from django.apps import AppConfig


class ProductcolorsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'productcolors'
