from supabase import acreate_client, AsyncClient

from chui.core.config import Settings


async def create_supabase(settings: Settings) -> AsyncClient:
    if not settings.supabase_url or not settings.supabase_key:
        raise RuntimeError(
            "Missing Supabase config. Set PUBLIC_SUPABASE_URL and SECRET_API_KEY."
        )
    return await acreate_client(settings.supabase_url, settings.supabase_key)
