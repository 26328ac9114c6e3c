"""Session registry for the latest snapshot of each document session."""

from __future__ import annotations

from aspose_preview.sessions.registry import Session, SessionRegistry, SessionSummary

__all__ = ["Session", "SessionRegistry", "SessionSummary"]
