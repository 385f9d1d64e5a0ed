from typing import Optional
from fastapi import HTTPException
from supabase import create_client, Client
from app.config import settings
import logging

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Lazily created clients; the permission engine treats a missing configuration as deny-all"""
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def is_configured(cls) -> bool:
        return settings.supabase_configured

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            if not cls.is_configured():
                raise RuntimeError("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
            logger.info("Supabase client created")
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with the service_role key, so role maps are readable regardless of RLS"""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def check_roles_table(cls, client: Optional[Client] = None) -> bool:
        """Cheap read of the roles table; raises when the role store is unreachable"""
        client = client or cls.get_client()
        client.table("roles").select("id").limit(1).execute()
        return True

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    if not SupabaseClient.is_configured():
        raise HTTPException(status_code=503, detail="Datastore not configured")
    return SupabaseClient.get_client()


def get_optional_supabase() -> Optional[Client]:
    """The client, or None when Supabase is not configured"""
    if not SupabaseClient.is_configured():
        return None
    return SupabaseClient.get_client()
