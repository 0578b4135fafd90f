"""
Redis Cache Service for document listings.
Provides namespace-versioned caching with graceful degradation.
"""

import logging
import json
from typing import Any, Optional, Callable, Dict
from datetime import datetime, date
from decimal import Decimal

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask, current_app

logger = logging.getLogger(__name__)

QUOTES_NAMESPACE = 'client_quotes'
ORDERS_NAMESPACE = 'clients_orders'
PROJECTS_NAMESPACE = 'projects'


class CacheService:
    """
    Redis-based caching service.

    Keys pattern: {prefix}:cache:{namespace}:v{version}:{key}

    Invalidation bumps {prefix}:ver:{namespace}; older keys are never read
    again and simply expire with their TTL.
    """

    def __init__(self, app: Optional[Flask] = None):
        """Initialize cache service."""
        self.client: Optional[redis.Redis] = None
        self._enabled: bool = False
        self._prefix: str = ""

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize Redis client from Flask app config."""
        self._enabled = app.config.get('CACHE_ENABLED', True)
        self._prefix = app.config.get('CACHE_KEY_PREFIX', 'praetor')
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')

        if not self._enabled:
            logger.info("[CACHE] Cache is DISABLED via config")
            return

        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                socket_keepalive=True,
                max_connections=50,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[CACHE] Redis connected: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[CACHE] Redis connection failed: {e}. Cache DISABLED.")
            self._enabled = False
            self.client = None

    def is_available(self) -> bool:
        """Check if cache is available and healthy."""
        if not self._enabled or not self.client:
            return False
        try:
            self.client.ping()
            return True
        except (ConnectionError, RedisError):
            return False

    def _version_key(self, namespace: str) -> str:
        return f"{self._prefix}:ver:{namespace}"

    def _build_key(self, namespace: str, version: int, key: str) -> str:
        """Build namespace-versioned cache key."""
        return f"{self._prefix}:cache:{namespace}:v{version}:{key}"

    def _serialize(self, value: Any) -> str:
        """Serialize Python object to JSON string with Decimal precision."""
        def default_handler(obj: Any) -> Any:
            if isinstance(obj, (datetime, date)):
                return obj.isoformat()
            elif isinstance(obj, Decimal):
                return {"__decimal__": str(obj)}
            raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
        return json.dumps(value, default=default_handler)

    def _deserialize(self, value: str) -> Any:
        """Deserialize JSON string to Python object, reconstructing Decimals."""
        def object_hook(dct: Dict[str, Any]) -> Any:
            if "__decimal__" in dct:
                return Decimal(dct["__decimal__"])
            return dct
        return json.loads(value, object_hook=object_hook)

    def get_namespace_version(self, namespace: str) -> int:
        """Current version of a namespace (1 when unknown or on error)."""
        if not self.is_available():
            return 1
        try:
            # NX keeps an existing counter, so the first bump goes 1 -> 2
            self.client.set(self._version_key(namespace), '1', nx=True)
            raw = self.client.get(self._version_key(namespace))
            return int(raw) if raw else 1
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] Version read error: {e}")
            return 1

    def bump_namespace_version(self, namespace: str) -> None:
        """Invalidate every cached key of a namespace."""
        if not self.is_available():
            return
        try:
            self.client.set(self._version_key(namespace), '1', nx=True)
            self.client.incr(self._version_key(namespace))
            logger.info(f"[CACHE] INVALIDATE: {namespace}")
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate error: {e}")

    # InvalidationSink
    def invalidate(self, namespace: str) -> None:
        self.bump_namespace_version(namespace)

    def get(self, namespace: str, key: str) -> Optional[Any]:
        """Get value from cache."""
        if not self.is_available():
            return None
        try:
            cache_key = self._build_key(namespace, self.get_namespace_version(namespace), key)
            value = self.client.get(cache_key)
            if value is None:
                return None
            return self._deserialize(value)
        except (RedisError, json.JSONDecodeError) as e:
            logger.warning(f"[CACHE] Get error: {e}")
            return None

    def set(self, namespace: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL."""
        if not self.is_available():
            return False
        try:
            cache_key = self._build_key(namespace, self.get_namespace_version(namespace), key)
            serialized = self._serialize(value)
            if ttl is None:
                ttl = current_app.config.get('CACHE_DEFAULT_TTL', 60)
            self.client.setex(cache_key, ttl, serialized)
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Set error: {e}")
            return False

    def memoize(self, namespace: str, key: str, loader_fn: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Cache-aside pattern: get from cache, or load and cache."""
        cached = self.get(namespace, key)
        if cached is not None:
            return cached
        try:
            value = loader_fn()
            self.set(namespace, key, value, ttl)
            return value
        except Exception as e:
            logger.exception(f"[CACHE] Loader error: {e}")
            raise


_cache_service: Optional[CacheService] = None

def init_cache(app: Flask) -> None:
    """Initialize cache service singleton."""
    global _cache_service
    _cache_service = CacheService(app)
    if not hasattr(app, 'extensions'):
        app.extensions = {}
    app.extensions['cache'] = _cache_service

def get_cache() -> CacheService:
    """Get cache service instance."""
    if _cache_service is None:
        raise RuntimeError("Cache not initialized.")
    return _cache_service
