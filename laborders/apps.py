from django.apps import AppConfig


class LabOrdersConfig(AppConfig):
    name = 'laborders'
    verbose_name = 'Lab orders'
    default_auto_field = 'django.db.models.BigAutoField'
