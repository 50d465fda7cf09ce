"""Domain models for persisted WhatsApp session state."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionRecord:
    """Represents the stored browser session token for a login session."""

    session: str
    session_data: dict[str, object]
    updated_at: datetime | None = None


@dataclass(frozen=True)
class QrRecord:
    """Represents the latest QR challenge emitted for a login session."""

    session: str
    qr_code: str
    generated_at: datetime | None = None
