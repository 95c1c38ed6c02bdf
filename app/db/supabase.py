import logging
from functools import lru_cache
from supabase import create_client, Client
from app.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Create the Supabase client on first use.

    Returns:
        Client: Configured Supabase client

    Raises:
        RuntimeError: If the client cannot be created
    """
    try:
        # Service role key bypasses RLS; every query here is scoped explicitly
        client: Client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        logger.info("Supabase client created for %s", settings.SUPABASE_URL)
        return client

    except Exception as e:
        error_msg = f"Failed to connect to Supabase: {str(e)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)
