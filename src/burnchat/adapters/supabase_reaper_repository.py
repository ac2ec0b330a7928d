"""Supabase repository for the cleanup job."""

from dataclasses import dataclass

from supabase import Client

from burnchat.adapters.supabase_rows import execute
from burnchat.services.reaper import ReaperRepository


@dataclass
class SupabaseReaperRepository(ReaperRepository):
    """Calls the database cleanup functions."""

    client: Client

    def delete_expired_messages(self) -> None:
        """Run ``delete_expired_messages``."""
        execute(self.client.rpc("delete_expired_messages", {}), "delete expired messages")

    def delete_expired_chats(self) -> None:
        """Run ``delete_expired_chats``."""
        execute(self.client.rpc("delete_expired_chats", {}), "delete expired chats")
