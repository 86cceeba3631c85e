"""Session-scoped refinement history."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RefinementHistoryEntry(BaseModel):
    """A single completed refinement."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    original_prompt: str
    refined_prompt: str
    model: str
    framework: Optional[str] = None

    def to_summary(self) -> str:
        """Get a one-line summary of this entry."""
        original = self.original_prompt
        if len(original) > 50:
            original = original[:50] + "..."
        framework = f" [{self.framework}]" if self.framework else ""
        return f"[{self.timestamp.strftime('%Y-%m-%d %H:%M')}] \"{original}\" ({self.model}){framework}"


class RefinementHistory(BaseModel):
    """
    In-memory history of completed refinements.

    Entries are kept newest first and capped at ``max_history``; the oldest
    entries are dropped when the cap is exceeded.
    """

    max_history: int = Field(default=50, ge=1)
    entries: list[RefinementHistoryEntry] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def record_refinement(
        self,
        original: str,
        refined: str,
        model_id: str,
        framework: Optional[str] = None,
    ) -> RefinementHistoryEntry:
        """Add a completed refinement to the front of the history."""
        entry = RefinementHistoryEntry(
            original_prompt=original,
            refined_prompt=refined,
            model=model_id,
            framework=framework,
        )
        self.entries.insert(0, entry)
        if len(self.entries) > self.max_history:
            del self.entries[self.max_history:]

        logger.debug(f"Added history entry: {entry.to_summary()}")
        return entry

    def get_recent(self, count: int = 10) -> list[RefinementHistoryEntry]:
        return self.entries[:count]

    def get_by_id(self, entry_id: str) -> Optional[RefinementHistoryEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def get_last(self) -> Optional[RefinementHistoryEntry]:
        """Get the most recent refinement."""
        return self.entries[0] if self.entries else None

    def delete(self, entry_id: str) -> bool:
        """Remove an entry; returns False if no entry had that id."""
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.id != entry_id]
        return len(self.entries) < before

    def clear(self) -> None:
        """Clear all history."""
        self.entries = []
        logger.info("Cleared refinement history")
