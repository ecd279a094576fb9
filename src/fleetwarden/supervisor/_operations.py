"""In-memory store for control operation records."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, final

from fleetwarden.utils import get_timestamp, now, parse_timestamp

from ._models import OperationRecord, OperationStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._models import OperationType, ServiceResult

DEFAULT_OPERATION_TTL = 24 * 60 * 60


def _new_operation_id() -> str:
    return f"op_{uuid.uuid4().hex}"


@final
class OperationStore:
    """Process-lifetime store of operation records with age-based eviction.

    Records are kept in creation order. Nothing is persisted; a restart
    begins with an empty store.
    """

    __slots__ = ("_records", "ttl")

    def __init__(self, ttl: float = DEFAULT_OPERATION_TTL) -> None:
        self._records: dict[str, OperationRecord] = {}
        self.ttl = ttl

    def __len__(self) -> int:
        return len(self._records)

    def create(self, op_type: OperationType, service: str | None) -> OperationRecord:
        """Create and register a pending operation record."""
        record = OperationRecord(
            id=_new_operation_id(),
            type=op_type,
            service=service,
            start_time=get_timestamp(),
        )
        self._records[record.id] = record
        return record

    def begin(self, record: OperationRecord) -> None:
        """Move a pending record to running."""
        if record.status == OperationStatus.PENDING:
            record.status = OperationStatus.RUNNING

    def complete(
        self,
        record: OperationRecord,
        results: Sequence[ServiceResult] = (),
    ) -> None:
        """Mark a record completed. A finalized record is left untouched."""
        if record.finished:
            return
        record.results = list(results)
        record.status = OperationStatus.COMPLETED
        record.end_time = get_timestamp()

    def fail(
        self,
        record: OperationRecord,
        error: str,
        results: Sequence[ServiceResult] = (),
    ) -> None:
        """Mark a record failed. A finalized record is left untouched."""
        if record.finished:
            return
        record.results = list(results)
        record.status = OperationStatus.FAILED
        record.error = error
        record.end_time = get_timestamp()

    def get(self, operation_id: str) -> OperationRecord | None:
        """Return a record by id, or None if unknown or evicted."""
        return self._records.get(operation_id)

    def list(self, limit: int = 50) -> list[OperationRecord]:
        """Return up to ``limit`` records, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._records.values()))[:limit]

    def cleanup(self, max_age: float | None = None) -> int:
        """Evict records whose start time is older than ``max_age`` seconds.

        Args:
            max_age: Age limit in seconds. Defaults to the store TTL.

        Returns:
            Number of evicted records.
        """
        limit = self.ttl if max_age is None else max_age
        cutoff = now().subtract(seconds=limit)
        expired = [
            op_id
            for op_id, record in self._records.items()
            if parse_timestamp(record.start_time) < cutoff
        ]
        for op_id in expired:
            del self._records[op_id]
        return len(expired)
