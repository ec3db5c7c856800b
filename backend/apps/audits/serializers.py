"""
Audit serializers
"""
from rest_framework import serializers

from apps.audits.models import AuditRecord


class AuditRecordSerializer(serializers.ModelSerializer):
    """Serializer for AuditRecord (read-only: records are never edited)"""

    class Meta:
        model = AuditRecord
        fields = [
            'id',
            'created_at',
            'contract_code',
            'contract_address',
            'score',
            'findings',
            'summary',
            'source',
        ]
        read_only_fields = fields
