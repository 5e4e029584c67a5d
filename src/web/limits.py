"""Shared rate limiter for the web app and its routers."""

from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import Config

limiter = Limiter(key_func=get_remote_address)

_write_limit: Optional[str] = None


def configure_limits(config: Config) -> None:
    """Use the rate limit from `config` for write routes."""
    global _write_limit
    _write_limit = config.WEB_RATE_LIMIT


def write_rate_limit() -> str:
    """Rate limit applied to routes that trigger automation or write to the store."""
    if _write_limit is None:
        configure_limits(Config())
    return _write_limit
