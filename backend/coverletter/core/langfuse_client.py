"""Langfuse tracing client.

Exports:
- observe: decorator for tracing completion calls
- flush: flush pending traces at end of request

Tracing stays inert unless both keys are configured.
Env vars: LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY, LANGFUSE_HOST
"""

import threading

from langfuse import Langfuse, observe

from coverletter.config import load_settings
from coverletter.core.logger import logger

__all__ = ["observe", "flush"]

# Lazy singleton with thread-safe init
_client = None
_initialized = False
_lock = threading.Lock()


def _get_client():
    """Get or create the Langfuse client singleton. Returns None if not configured."""
    global _client, _initialized

    if _initialized:
        return _client

    with _lock:
        if _initialized:
            return _client

        _initialized = True
        settings = load_settings()

        if not settings.langfuse_public_key or not settings.langfuse_secret_key:
            logger.info("Langfuse: no keys configured — tracing disabled")
            return None

        try:
            _client = Langfuse(
                public_key=settings.langfuse_public_key,
                secret_key=settings.langfuse_secret_key,
                host=settings.langfuse_host,
            )
            logger.info("Langfuse: client initialized")
            return _client
        except (ValueError, TypeError, RuntimeError) as e:
            logger.warning(f"Langfuse: failed to initialize client: {e}")
            return None


def flush():
    """Flush pending Langfuse traces."""
    client = _get_client()
    if client:
        try:
            client.flush()
            logger.debug("Langfuse: traces flushed")
        except Exception as e:
            logger.warning(f"Langfuse: flush failed: {e}")
