from langfuse import Langfuse

from .config import Settings


def build_langfuse(settings: Settings) -> Langfuse:
    # Without keys the client stays disabled and every span becomes a no-op.
    return Langfuse(
        secret_key=settings.LANGFUSE_SECRET_KEY,
        public_key=settings.LANGFUSE_PUBLIC_KEY,
        host=settings.LANGFUSE_HOST,
        tracing_enabled=settings.langfuse_configured,
        debug=False,  # Set to True for verbose SDK logging
    )
