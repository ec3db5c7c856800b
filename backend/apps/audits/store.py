"""
Audit record store - best-effort writes, lookup by identifier
"""
import logging
from dataclasses import dataclass
from typing import Optional

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import DatabaseError

from apps.common.exceptions import AuditNotFound, PersistenceFailure

from .models import AuditRecord, AuditSource
from .schemas import AnalysisResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistOutcome:
    """Internal result of a write; never returned to API callers."""
    audit_id: str
    saved: bool
    error: Optional[str] = None


class AuditStore:
    """Django ORM backed store for AuditRecord rows."""

    def create(
        self,
        audit_id: str,
        code: str,
        result: AnalysisResult,
        contract_address: Optional[str] = None,
        source: str = AuditSource.PASTE,
    ) -> AuditRecord:
        """Insert one record.

        Raises:
            PersistenceFailure: if the database rejects the write
        """
        try:
            return AuditRecord.objects.create(
                id=audit_id,
                contract_code=code[:settings.AUDIT_STORED_CODE_LIMIT],
                contract_address=contract_address or None,
                score=result.score,
                findings=[finding.to_wire() for finding in result.findings],
                summary=result.summary,
                source=source or AuditSource.PASTE,
            )
        except DatabaseError as e:
            raise PersistenceFailure(str(e)) from e

    def get(self, audit_id: str) -> AuditRecord:
        """Fetch a record by identifier.

        Raises:
            AuditNotFound: if no record has this identifier
        """
        record = AuditRecord.objects.filter(id=audit_id).first()
        if record is None:
            raise AuditNotFound()
        return record

    async def persist(self, audit_id: str, code: str, result: AnalysisResult,
                      contract_address: Optional[str] = None,
                      source: str = AuditSource.PASTE) -> PersistOutcome:
        """Write a record, absorbing any failure into the returned outcome."""
        try:
            await sync_to_async(self.create)(
                audit_id, code, result,
                contract_address=contract_address, source=source,
            )
        except Exception as e:
            logger.warning(
                "audit_persist_failed",
                extra={'audit_id': audit_id, 'error': str(e)},
                exc_info=not isinstance(e, PersistenceFailure),
            )
            return PersistOutcome(audit_id=audit_id, saved=False, error=str(e))
        return PersistOutcome(audit_id=audit_id, saved=True)
