"""Supabase-backed session token repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from whatsapp_gateway.domain.sessions import SessionRecord
from whatsapp_gateway.services.session_store import SessionRepository


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for WhatsApp session tokens."""

    client: Client

    def get_session(self, session: str) -> SessionRecord | None:
        """Return the stored session token, if present."""
        response = (
            self.client.table("whatsapp_sessions")
            .select("session, session_data, updated_at")
            .eq("session", session)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        updated_at = row.get("updated_at")
        return SessionRecord(
            session=row["session"],
            session_data=row.get("session_data") or {},
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )

    def upsert_session(
        self, session: str, session_data: dict[str, object], updated_at: datetime
    ) -> None:
        """Insert or overwrite the session token keyed by session name."""
        response = (
            self.client.table("whatsapp_sessions")
            .upsert(
                {
                    "session": session,
                    "session_data": session_data,
                    "updated_at": updated_at.isoformat(),
                },
                on_conflict="session",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store session data")

    def delete_session(self, session: str) -> int:
        """Delete the session token and return the number of removed rows."""
        response = (
            self.client.table("whatsapp_sessions")
            .delete()
            .eq("session", session)
            .execute()
        )
        return len(response.data or [])
