"""
Audit models - persisted audit results

An AuditRecord is written once, at the end of a successful analysis run,
and is only ever read back by its identifier afterwards.
"""
import secrets

from django.db import models

from apps.common.models import CreatedAtModel, ImmutableModel

AUDIT_ID_LENGTH = 12
AUDIT_ID_ALPHABET = '_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ'


def generate_audit_id(length: int = AUDIT_ID_LENGTH) -> str:
    """URL-safe random identifier (72 bits of entropy at the default length)"""
    return ''.join(secrets.choice(AUDIT_ID_ALPHABET) for _ in range(length))


class AuditSource(models.TextChoices):
    """Where the audited code came from"""
    PASTE = 'paste', 'Pasted Code'
    ETHERSCAN = 'etherscan', 'Etherscan Address Lookup'


class AuditRecord(ImmutableModel, CreatedAtModel):
    """
    Persisted form of one AnalysisResult plus its request context.

    `findings` holds the wire form of each finding, already in severity order.
    """
    id = models.CharField(
        primary_key=True,
        max_length=AUDIT_ID_LENGTH,
        default=generate_audit_id,
        editable=False,
    )
    contract_code = models.TextField()
    contract_address = models.CharField(max_length=64, null=True, blank=True)
    score = models.PositiveSmallIntegerField()
    findings = models.JSONField(default=list)
    summary = models.TextField(blank=True, default='')
    source = models.CharField(
        max_length=20,
        choices=AuditSource.choices,
        default=AuditSource.PASTE,
    )

    class Meta:
        db_table = 'audits'
        ordering = ['-created_at']

    def __str__(self):
        return f"Audit {self.id} (score {self.score})"
