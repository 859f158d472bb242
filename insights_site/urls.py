"""
URL configuration for the insights site.
"""
from django.urls import include, path

urlpatterns = [
    path('', include('insights.urls')),
]
