from .content_cache import CacheEntry, CacheStats, ContentCache

__all__ = ["CacheEntry", "CacheStats", "ContentCache"]
