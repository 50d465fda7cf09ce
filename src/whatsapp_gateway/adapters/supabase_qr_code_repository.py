"""Supabase-backed QR challenge repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from whatsapp_gateway.domain.sessions import QrRecord
from whatsapp_gateway.services.session_store import QrCodeRepository


@dataclass
class SupabaseQrCodeRepository(QrCodeRepository):
    """Supabase implementation for QR challenges."""

    client: Client

    def get_qr_code(self, session: str) -> QrRecord | None:
        """Return the latest QR challenge, if present."""
        response = (
            self.client.table("qr_codes")
            .select("session, qr_code, generated_at")
            .eq("session", session)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        generated_at = row.get("generated_at")
        return QrRecord(
            session=row["session"],
            qr_code=row.get("qr_code") or "",
            generated_at=datetime.fromisoformat(generated_at) if generated_at else None,
        )

    def upsert_qr_code(
        self, session: str, qr_code: str, generated_at: datetime
    ) -> None:
        """Insert or overwrite the QR challenge keyed by session name."""
        response = (
            self.client.table("qr_codes")
            .upsert(
                {
                    "session": session,
                    "qr_code": qr_code,
                    "generated_at": generated_at.isoformat(),
                },
                on_conflict="session",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store QR code")

    def delete_qr_code(self, session: str) -> int:
        """Delete the QR challenge and return the number of removed rows."""
        response = (
            self.client.table("qr_codes").delete().eq("session", session).execute()
        )
        return len(response.data or [])
