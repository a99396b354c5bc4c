"""Append-only, user-visible activity log."""

import logging
from datetime import datetime, timezone

from chunkpilot.models.upload import ActivityEntry, ActivityEvent

logger = logging.getLogger(__name__)


class ActivityLog:
    """Human-readable record of what an upload did.

    Entries are for display only; nothing reads them back to make control
    decisions.
    """

    def __init__(self):
        self._entries: list[ActivityEntry] = []

    def append(self, event: ActivityEvent, message: str) -> ActivityEntry:
        entry = ActivityEntry(
            timestamp=datetime.now(timezone.utc),
            event=event,
            message=message,
        )
        self._entries.append(entry)
        logger.info(message, extra={"activity_event": event.value})
        return entry

    def clear(self) -> None:
        self._entries = []

    def entries(self) -> list[ActivityEntry]:
        return list(self._entries)

    def messages(self) -> list[str]:
        return [entry.message for entry in self._entries]

    def events(self) -> list[ActivityEvent]:
        return [entry.event for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
