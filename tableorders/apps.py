from django.apps import AppConfig


class TableOrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tableorders"
    verbose_name = "Table Orders"  # Admin section name
