"""In-process caching for read-heavy API queries."""
from .ttl_cache import TTLCache

__all__ = ["TTLCache"]
