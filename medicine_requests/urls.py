"""
Medicine Requests — URL Configuration

@file medicine_requests/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import MedicineRequestViewSet

app_name = 'requests'

router = DefaultRouter()
router.register('', MedicineRequestViewSet, basename='request')

urlpatterns = [
    path('', include(router.urls)),
]
