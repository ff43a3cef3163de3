"""
Redis cache for catalog and dashboard reads.

Keys look like {prefix}:{scope}:{module}:{key}, where scope is 'global'
for data shared by everyone or 'client:{id}' for one client's data.
When Redis is unreachable or disabled every read is a miss and every
write is dropped, so callers always fall through to the database.
"""

import logging
import json
from typing import Any, Optional, Callable, Union
from decimal import Decimal

import redis
from redis.exceptions import RedisError
from flask import Flask, current_app

logger = logging.getLogger(__name__)

Scope = Union[int, str]

GLOBAL_SCOPE = 'global'
DECIMAL_MARKER = '__decimal__'


def client_scope(client_id: int) -> str:
    return f"client:{client_id}"


def _encode(value: Any) -> str:
    def default(obj):
        if isinstance(obj, Decimal):
            return {DECIMAL_MARKER: str(obj)}
        raise TypeError(f"{type(obj).__name__} is not cacheable")
    return json.dumps(value, default=default)


def _decode(raw: str) -> Any:
    # Prices must come back exact, not as floats
    def hook(obj):
        if DECIMAL_MARKER in obj:
            return Decimal(obj[DECIMAL_MARKER])
        return obj
    return json.loads(raw, object_hook=hook)


class CacheService:
    """Cache-aside helper over a Redis client."""

    def __init__(self, app: Optional[Flask] = None, client: Optional[redis.Redis] = None):
        self.client: Optional[redis.Redis] = client
        self.prefix: str = 'portal'
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.prefix = app.config.get('CACHE_KEY_PREFIX', 'portal')
        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Disabled by configuration")
            self.client = None
            return

        redis_url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        try:
            client = redis.from_url(redis_url, decode_responses=True,
                                    socket_connect_timeout=3, socket_timeout=3)
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unreachable at {redis_url}: {e}. Running without cache.")
            self.client = None
            return
        self.client = client
        logger.info(f"[CACHE] Connected to {redis_url}")

    def is_available(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key(self, scope: Scope, module: str, name: str) -> str:
        return f"{self.prefix}:{scope}:{module}:{name}"

    def get(self, scope: Scope, module: str, name: str) -> Optional[Any]:
        if not self.is_available():
            return None
        try:
            raw = self.client.get(self.key(scope, module, name))
            return None if raw is None else _decode(raw)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] Read failed for {module}/{name}: {e}")
            return None

    def set(self, scope: Scope, module: str, name: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.is_available():
            return False
        if ttl is None:
            ttl = current_app.config.get('CACHE_DEFAULT_TTL', 60)
        try:
            self.client.setex(self.key(scope, module, name), ttl, _encode(value))
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Write failed for {module}/{name}: {e}")
            return False
        return True

    def memoize(self, scope: Scope, module: str, name: str, loader: Callable[[], Any],
                ttl: Optional[int] = None) -> Any:
        """Return the cached value, or call loader and cache its result."""
        cached = self.get(scope, module, name)
        if cached is not None:
            return cached
        value = loader()
        self.set(scope, module, name, value, ttl)
        return value

    def invalidate_module(self, scope: Scope, module: str) -> int:
        """Drop every key of one module within one scope. Returns the number removed."""
        if not self.is_available():
            return 0
        pattern = self.key(scope, module, '*')
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidation of {pattern} failed: {e}")
            return 0
        if keys:
            logger.info(f"[CACHE] Invalidated {pattern} ({len(keys)} keys)")
        return len(keys)


_cache_service: Optional[CacheService] = None


def init_cache(app: Flask) -> None:
    global _cache_service
    _cache_service = CacheService(app)
    app.extensions['cache'] = _cache_service


def get_cache() -> CacheService:
    if _cache_service is None:
        raise RuntimeError("Cache not initialized, call init_cache(app) first.")
    return _cache_service


def invalidate_client_dashboard(client_id: int) -> None:
    """Called after orders or inventory change for a client."""
    if _cache_service is None:
        return
    _cache_service.invalidate_module(client_scope(client_id), 'dashboard')
    _cache_service.invalidate_module(GLOBAL_SCOPE, 'dashboard')
