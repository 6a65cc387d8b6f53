from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from app.config import settings
from app.utils.logging import get_logger

logger = get_logger(__name__)

def _client_options() -> ClientOptions:
    return ClientOptions(auto_refresh_token=False, persist_session=False)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Return a cached Supabase client holding the service role key.

    Used by work that spans users: tag cleanup and legacy migration.
    """
    logger.debug("Initializing Supabase admin client")
    if not settings.supabase_service_role_key:
        raise RuntimeError("supabase_service_role_key is required for admin client")
    return create_client(settings.supabase_url, settings.supabase_service_role_key, options=_client_options())


def create_request_supabase_client(bearer_token: str | None = None) -> Client:
    """Create a Supabase client for one request.

    With a JWT, PostgREST runs every table call as that user.
    """
    if not settings.supabase_anon_key:
        raise RuntimeError("supabase_anon_key is required for request client")

    client = create_client(settings.supabase_url, settings.supabase_anon_key, options=_client_options())
    if bearer_token:
        client.postgrest.auth(bearer_token)
    return client
