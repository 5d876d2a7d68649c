"""Server-side registry of quote wizard sessions."""

import logging
import re
import secrets
import time
from pathlib import Path

from src.core.config import get_settings
from src.services.abandonment_detector import AbandonmentDetector
from src.services.draft_store import FileDraftStore
from src.services.email_service import get_email_service
from src.services.lead_store_service import get_lead_store_service
from src.services.quote_constants import DRAFT_STORAGE_KEY
from src.services.quote_wizard import QuoteWizard
from src.services.submission_pipeline import SubmissionPipeline

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[0-9a-f]{64}")


class QuoteSessionService:
    """Owns the wizard for each visitor, keyed by an opaque session token."""

    TOKEN_LENGTH = 64  # Length of session token in characters

    def __init__(self, draft_dir: str | Path, quiet_period: float, max_idle_seconds: int) -> None:
        """Initialize the registry.

        Args:
            draft_dir: Directory for persisted drafts.
            quiet_period: Abandonment debounce in seconds.
            max_idle_seconds: Wizards untouched for longer are dropped from memory.
        """
        self.draft_dir = Path(draft_dir)
        self.quiet_period = quiet_period
        self.max_idle_seconds = max_idle_seconds
        self._wizards: dict[str, QuoteWizard] = {}
        self._last_seen: dict[str, float] = {}

    def _generate_token(self) -> str:
        return secrets.token_hex(self.TOKEN_LENGTH // 2)

    def _draft_store(self, token: str) -> FileDraftStore:
        return FileDraftStore(self.draft_dir, key=f"{DRAFT_STORAGE_KEY}_{token}")

    def _build_wizard(self, token: str, resume: bool) -> QuoteWizard:
        lead_store = get_lead_store_service()
        pipeline = SubmissionPipeline(lead_store, get_email_service())
        detector = AbandonmentDetector(lead_store, self.quiet_period)
        store = self._draft_store(token)
        if resume:
            return QuoteWizard.resume(store, pipeline, detector)
        return QuoteWizard(store, pipeline, detector)

    def _touch(self, token: str) -> None:
        self._last_seen[token] = time.monotonic()

    def create_session(self) -> tuple[str, QuoteWizard]:
        """Start a new wizard.

        Returns:
            tuple: (session_token, wizard)
        """
        self.prune()
        token = self._generate_token()
        wizard = self._build_wizard(token, resume=False)
        self._wizards[token] = wizard
        self._touch(token)
        logger.info("Created quote session %s", token[:8])
        return token, wizard

    def get_wizard(self, token: str | None) -> QuoteWizard | None:
        """Look up the wizard for a token, resuming a stored draft if needed.

        Args:
            token: Session token from the cookie.

        Returns:
            QuoteWizard | None: The wizard, or None for unknown tokens.
        """
        if not token or not TOKEN_PATTERN.fullmatch(token):
            return None

        wizard = self._wizards.get(token)
        if wizard is None:
            if not self._draft_store(token).path.exists():
                return None
            wizard = self._build_wizard(token, resume=True)
            self._wizards[token] = wizard

        self._touch(token)
        return wizard

    def prune(self) -> int:
        """Drop idle wizards from memory. Their drafts stay on disk."""
        cutoff = time.monotonic() - self.max_idle_seconds
        stale = [
            token
            for token, seen in self._last_seen.items()
            if seen < cutoff and not self._wizards[token].submitting
        ]
        for token in stale:
            wizard = self._wizards.pop(token)
            self._last_seen.pop(token, None)
            if wizard.abandonment is not None:
                wizard.abandonment.cancel()
        if stale:
            logger.debug("Pruned %d idle quote sessions", len(stale))
        return len(stale)

    async def shutdown(self) -> None:
        """Cancel armed abandonment timers and wait for captures in flight."""
        for wizard in self._wizards.values():
            if wizard.abandonment is not None:
                await wizard.abandonment.aclose()
        self._wizards.clear()
        self._last_seen.clear()


_quote_session_service: QuoteSessionService | None = None


def get_quote_session_service() -> QuoteSessionService:
    """Get or create the quote session registry singleton."""
    global _quote_session_service
    if _quote_session_service is None:
        settings = get_settings()
        _quote_session_service = QuoteSessionService(
            draft_dir=settings.draft_store_dir,
            quiet_period=settings.abandonment_debounce_seconds,
            max_idle_seconds=settings.quote_session_cookie_max_age,
        )
    return _quote_session_service


async def shutdown_quote_session_service() -> None:
    """Shutdown the registry. Call at app shutdown."""
    global _quote_session_service
    if _quote_session_service is not None:
        await _quote_session_service.shutdown()
        _quote_session_service = None
