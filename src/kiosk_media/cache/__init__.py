"""Disk-backed media cache with LRU eviction under a byte budget."""

from kiosk_media.cache.budget import CacheBudget
from kiosk_media.cache.byte_store import ByteStore, StoredEntry
from kiosk_media.cache.eviction import EvictionPolicy, EvictionResult
from kiosk_media.cache.media_cache import MediaCache
from kiosk_media.cache.memory import BoundedMemoryCache
from kiosk_media.cache.utils import cache_key_for_url, format_bytes

__all__ = [
    "BoundedMemoryCache",
    "ByteStore",
    "CacheBudget",
    "EvictionPolicy",
    "EvictionResult",
    "MediaCache",
    "StoredEntry",
    "cache_key_for_url",
    "format_bytes",
]
