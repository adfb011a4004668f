import logging
from typing import Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient, AsyncClientOptions, acreate_client

from dishes_api.config import settings

logger = logging.getLogger(__name__)

# PostgREST error code for "JSON object requested, multiple (or no) rows returned"
NO_ROWS_CODE = "PGRST116"


class SupabaseClient:
    _client: Optional[AsyncClient] = None
    _service_client: Optional[AsyncClient] = None

    @classmethod
    async def get_client(cls) -> AsyncClient:
        if cls._client is None:
            cls._client = await acreate_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    async def get_service_client(cls) -> Optional[AsyncClient]:
        """Client with service_role key; bypasses RLS. None when the key is not configured."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = await acreate_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


async def get_supabase() -> AsyncClient:
    return await SupabaseClient.get_client()


async def get_service_supabase() -> Optional[AsyncClient]:
    return await SupabaseClient.get_service_client()


async def create_auth_client() -> AsyncClient:
    """Fresh client for sign-in based flows so sessions never land on the shared client."""
    return await acreate_client(
        settings.supabase_url,
        settings.supabase_key,
        options=AsyncClientOptions(persist_session=False, auto_refresh_token=False),
    )


async def close_auth_client(client: AsyncClient) -> None:
    """Release the HTTP connection pool of a client from ``create_auth_client``.

    Only the auth sub-client is ever used on such a client, so it is the only
    one holding connections. A failing close is logged and not raised.
    """
    try:
        await client.auth.close()
    except Exception as e:
        logger.warning(f"Failed to close auth client: {str(e)}")


def is_no_rows(error: Exception) -> bool:
    return isinstance(error, APIError) and getattr(error, "code", None) == NO_ROWS_CODE
