"""Caller-owned caches."""

from .ttl_cache import TTLCache

__all__ = ["TTLCache"]
