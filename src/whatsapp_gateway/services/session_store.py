"""Persistence interfaces for WhatsApp login state."""

from datetime import datetime
from typing import Protocol

from whatsapp_gateway.domain.sessions import QrRecord, SessionRecord


class SessionRepository(Protocol):
    """Persistence interface for browser session tokens."""

    def get_session(self, session: str) -> SessionRecord | None:
        """Return the stored session token, if present."""

    def upsert_session(
        self, session: str, session_data: dict[str, object], updated_at: datetime
    ) -> None:
        """Insert or overwrite the session token."""

    def delete_session(self, session: str) -> int:
        """Delete the session token and return the number of removed rows."""


class QrCodeRepository(Protocol):
    """Persistence interface for QR challenges."""

    def get_qr_code(self, session: str) -> QrRecord | None:
        """Return the latest QR challenge, if present."""

    def upsert_qr_code(
        self, session: str, qr_code: str, generated_at: datetime
    ) -> None:
        """Insert or overwrite the QR challenge."""

    def delete_qr_code(self, session: str) -> int:
        """Delete the QR challenge and return the number of removed rows."""
