"""
Audit URLs
"""
from django.urls import path

from . import views

urlpatterns = [
    # Raw async view: DRF does not support streaming async responses.
    path('analyze/', views.analyze_stream, name='analyze-stream'),
    path('audits/<str:audit_id>/', views.audit_detail, name='audit-detail'),
    path('etherscan/', views.contract_source, name='contract-source'),
]
