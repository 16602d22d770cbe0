from typing import Optional

from supabase import create_client, Client, ClientOptions
from app.config import settings


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Falls back to the anon client."""
        return cls.get_admin_client() or cls.get_client()

    @classmethod
    def get_admin_client(cls) -> Optional[Client]:
        """Service-role client, or None when the server is not configured for it."""
        if cls._service_client is None and settings.auth_configured:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client

    @classmethod
    def create_sign_in_client(cls) -> Client:
        """Fresh anon client for one password sign-in; never shared with other requests."""
        return create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=ClientOptions(persist_session=False, auto_refresh_token=False),
        )

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_admin_supabase() -> Optional[Client]:
    return SupabaseClient.get_admin_client()


def get_sign_in_supabase() -> Client:
    return SupabaseClient.create_sign_in_client()
