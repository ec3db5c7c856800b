"""
URL Configuration for the contract auditor
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('apps.audits.urls')),
]
