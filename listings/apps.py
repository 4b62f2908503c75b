from django.apps import AppConfig


class ListingsConfig(AppConfig):
    """Configuration for the listings reference app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "listings"
