"""In-memory table of the latest validated snapshot per session."""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aspose_preview.protocol.messages import SnapshotMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Payload-free view of a session for listings."""

    session_id: str
    document_type: str | None
    original_path: str | None
    output_format: str | None
    last_update: str | None
    unseen: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "documentType": self.document_type,
            "originalPath": self.original_path,
            "outputFormat": self.output_format,
            "lastUpdate": self.last_update,
            "hasUpdate": self.unseen,
        }


@dataclass(frozen=True, slots=True)
class Session:
    """Latest snapshot of one document session.

    Records are immutable; every change swaps in a whole new record.
    """

    session_id: str
    document_type: str | None
    original_path: str | None
    output_format: str | None
    mime_type: str | None
    timestamp: str | None
    sequence_number: int | None
    data: bytes
    unseen: bool = True

    @classmethod
    def from_snapshot(cls, metadata: SnapshotMetadata, payload: bytes) -> Session:
        return cls(
            session_id=metadata.session_id,
            document_type=metadata.document_type,
            original_path=metadata.original_path,
            output_format=metadata.output_format,
            mime_type=metadata.mime_type,
            timestamp=metadata.timestamp,
            sequence_number=metadata.sequence_number,
            data=bytes(payload),
        )

    def summary(self) -> SessionSummary:
        return SessionSummary(
            session_id=self.session_id,
            document_type=self.document_type,
            original_path=self.original_path,
            output_format=self.output_format,
            last_update=self.timestamp,
            unseen=self.unseen,
        )


class SessionRegistry:
    """Thread-safe map of session id -> latest ``Session``.

    The lock only guards dictionary access; callers get immutable records back
    and do any I/O after the lock is released.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def upsert(self, session_id: str, metadata: SnapshotMetadata, payload: bytes) -> bool:
        """Replace or create the session record; return True if the id was new."""
        record = dataclasses.replace(Session.from_snapshot(metadata, payload), session_id=session_id)
        with self._lock:
            created = session_id not in self._sessions
            self._sessions[session_id] = record

        if created:
            logger.info("New session %s created", session_id)
        else:
            logger.debug("Updated session %s, sequence: %s", session_id, record.sequence_number)
        return created

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def mark_seen(self, session_id: str) -> bool:
        """Clear the unseen flag; return False if the session does not exist."""
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return False
            if record.unseen:
                self._sessions[session_id] = dataclasses.replace(record, unseen=False)
        return True

    def remove(self, session_id: str) -> bool:
        """Drop the session; removing an unknown id is a no-op."""
        with self._lock:
            existed = self._sessions.pop(session_id, None) is not None
        if existed:
            logger.info("Session %s removed", session_id)
        return existed

    def list_summaries(self) -> list[SessionSummary]:
        with self._lock:
            records = list(self._sessions.values())
        return [record.summary() for record in records]

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __len__(self) -> int:
        return self.count()

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
        logger.info("All sessions cleared")


__all__ = ["Session", "SessionRegistry", "SessionSummary"]
