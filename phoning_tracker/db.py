from supabase import create_client, Client

from phoning_tracker.config import Settings


def get_supabase(settings: Settings) -> Client:
    if not settings.remote_enabled:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_KEY environment variables")

    return create_client(settings.supabase_url, settings.supabase_key)
