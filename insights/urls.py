"""
URL configuration for insights app.
"""
from django.urls import path
from . import views

urlpatterns = [
    path('insights/<str:username>', views.insights_view, name='insights'),
    path('stats/<str:username>', views.stats_view, name='stats'),
    path('embed/<str:username>', views.embed_view, name='embed'),
]
