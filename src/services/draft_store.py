"""Local persistence for in-progress quote drafts.

Drafts are written after every wizard mutation so an interrupted session can
resume. Storage is best-effort: a failed write or read is logged and the
wizard carries on in memory.
"""

import logging
from pathlib import Path
from typing import Protocol

from src.schemas.quote import WizardSnapshot
from src.services.quote_constants import DRAFT_STORAGE_KEY

logger = logging.getLogger(__name__)


class DraftStore(Protocol):
    """Storage for a single wizard snapshot under a fixed key."""

    key: str

    def save_draft(self, snapshot: WizardSnapshot) -> None: ...

    def load_draft(self) -> WizardSnapshot | None: ...

    def clear_draft(self) -> None: ...


class InMemoryDraftStore:
    """Draft store that keeps the serialized snapshot in process memory."""

    def __init__(self, key: str = DRAFT_STORAGE_KEY) -> None:
        self.key = key
        self._payload: str | None = None

    def save_draft(self, snapshot: WizardSnapshot) -> None:
        self._payload = snapshot.model_dump_json(by_alias=True)

    def load_draft(self) -> WizardSnapshot | None:
        if self._payload is None:
            return None
        return WizardSnapshot.model_validate_json(self._payload)

    def clear_draft(self) -> None:
        self._payload = None


class FileDraftStore:
    """Draft store backed by one JSON file per key."""

    def __init__(self, directory: str | Path, key: str = DRAFT_STORAGE_KEY) -> None:
        """Initialize the file draft store.

        Args:
            directory: Directory holding draft files; created on first write.
            key: Storage key, used as the file name.
        """
        self.key = key
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def save_draft(self, snapshot: WizardSnapshot) -> None:
        """Overwrite the stored snapshot. Failures are logged, not raised."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(snapshot.model_dump_json(by_alias=True), encoding="utf-8")
            tmp_path.replace(self.path)
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Failed to save draft %s: %s", self.key, str(e))

    def load_draft(self) -> WizardSnapshot | None:
        """Read the stored snapshot, or None if absent or unreadable."""
        try:
            if not self.path.exists():
                return None
            return WizardSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable draft %s: %s", self.key, str(e))
            return None

    def clear_draft(self) -> None:
        """Remove the stored snapshot."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to clear draft %s: %s", self.key, str(e))
