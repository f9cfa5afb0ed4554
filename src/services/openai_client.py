from openai import OpenAI
from ..core.config import settings


def get_openai_client() -> OpenAI:
    """Build a client from the current settings (tests swap keys and base URLs at runtime)."""
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout_seconds,
        max_retries=1,
    )
