"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from burnchat.adapters.file_local_storage import FileLocalStorage
from burnchat.adapters.supabase_chat_repository import SupabaseChatRepository
from burnchat.adapters.supabase_realtime_channel import SupabaseRealtimeChannel
from burnchat.adapters.supabase_reaper_repository import SupabaseReaperRepository
from burnchat.config import Settings
from burnchat.services.chats import ChatService
from burnchat.services.identity import DeviceIdentity
from burnchat.services.keys import KeyManager
from burnchat.services.reaper import ReaperService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    key_manager: KeyManager
    device_identity: DeviceIdentity
    chat_service: ChatService
    reaper_service: ReaperService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_key
    )
    reaper_client = create_client(
        resolved_settings.supabase_url, resolved_settings.reaper_key
    )
    storage = FileLocalStorage(Path(resolved_settings.storage_dir))
    key_manager = KeyManager(storage)
    device_identity = DeviceIdentity(storage)
    channel = SupabaseRealtimeChannel(
        supabase_url=resolved_settings.supabase_url,
        supabase_key=resolved_settings.supabase_key,
    )
    chat_service = ChatService(
        repository=SupabaseChatRepository(supabase_client),
        channel=channel,
        key_manager=key_manager,
        identity=device_identity,
        chat_ttl_seconds=resolved_settings.chat_ttl_seconds,
        lazy_key_creation=resolved_settings.lazy_key_creation,
        link_base_url=resolved_settings.app_base_url,
        prune_interval_seconds=resolved_settings.prune_interval_seconds,
    )
    reaper_service = ReaperService(SupabaseReaperRepository(reaper_client))

    async def close_resources() -> None:
        await channel.close()

    return AppContainer(
        settings=resolved_settings,
        key_manager=key_manager,
        device_identity=device_identity,
        chat_service=chat_service,
        reaper_service=reaper_service,
        close_resources=close_resources,
    )
