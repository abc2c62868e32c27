"""
Medicine Requests — Application Configuration
"""

from django.apps import AppConfig


class MedicineRequestsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'medicine_requests'
    verbose_name = 'Medicine Requests'
