"""Events emitted by the WhatsApp automation client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from whatsapp_gateway.adapters.whatsapp_client import WhatsAppClient

STATE_INITIALIZING = "INITIALIZING"
STATE_QRCODE = "QRCODE"
STATE_CONNECTED = "CONNECTED"
STATE_LOGGED_OUT = "LOGGED_OUT"
STATE_DISCONNECTED = "DISCONNECTED"
STATE_CLOSED = "CLOSED"


@dataclass(frozen=True)
class QrChallenge:
    """A new QR code was rendered and is waiting to be scanned."""

    session: str
    qr_code: str
    attempt: int = 1
    generated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


@dataclass(frozen=True)
class StateChanged:
    """The client moved to a new connection state."""

    session: str
    state: str
    client: WhatsAppClient


ClientEvent = QrChallenge | StateChanged
