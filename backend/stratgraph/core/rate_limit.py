"""
PURPOSE: Per-client rate limits for the strategy graph API using slowapi.

Routes pick one of three tiers, each configured in Settings:
    - LLM_LIMIT:   interpret (each call spends LLM tokens)
    - WRITE_LIMIT: validation, edits, deletes and backtests
    - READ_LIMIT:  list/get, catalog and health
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from stratgraph.config.settings import Settings, settings


def build_limiter(config: Settings) -> Limiter:
    """Limiter keyed by client IP, switched off when RATE_LIMIT_ENABLED is false."""
    return Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)


limiter = build_limiter(settings)

LLM_LIMIT: str = settings.RATE_LIMIT_LLM
WRITE_LIMIT: str = settings.RATE_LIMIT_WRITE
READ_LIMIT: str = settings.RATE_LIMIT_READ
