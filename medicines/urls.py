"""
Medicines — URL Configuration

@file medicines/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import MedicineViewSet

app_name = 'medicines'

router = DefaultRouter()
router.register('', MedicineViewSet, basename='medicine')

urlpatterns = [
    path('', include(router.urls)),
]
