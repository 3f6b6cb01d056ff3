import logging
from typing import Optional
from supabase import create_client, Client
from tableforge.config.settings import settings

logger = logging.getLogger(__name__)


class SupabaseNotConfigured(RuntimeError):
    pass


def _connect(key: Optional[str], purpose: str) -> Client:
    if not settings.supabase_url or not key:
        raise SupabaseNotConfigured(f"SUPABASE_URL and a {purpose} key must be set")
    logger.info(f"Connecting to Supabase ({purpose})")
    return create_client(settings.supabase_url, key)


class SupabaseClient:
    """Process-wide clients: one for request handling, one with the service role."""

    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = _connect(settings.supabase_key, "anon")
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Bypasses RLS; falls back to the regular client when no service key is configured."""
        if cls._service_client is None:
            if not settings.supabase_service_role_key:
                logger.warning("SUPABASE_SERVICE_ROLE_KEY not set, using the anon client")
                return cls.get_client()
            cls._service_client = _connect(settings.supabase_service_role_key, "service role")
        return cls._service_client


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()
