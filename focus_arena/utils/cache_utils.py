"""
Cache utilities for Focus Arena
Caches read-only leaderboard and season payloads; any write that can change
a board clears them.
"""

import functools

from flask import current_app, jsonify, request

from focus_arena import cache


def make_cache_key(*args, **kwargs):
    """Generate a cache key from request path, query string and arguments"""
    path = request.full_path.rstrip("?")
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_json(timeout=300, key_prefix="view"):
    """
    Decorator for caching JSON route payloads

    The wrapped view returns a JSON-serializable payload; the decorator
    caches the payload (not the Response) and jsonifies it.

    Args:
        timeout: Cache timeout in seconds (default 5 minutes)
        key_prefix: Prefix for cache key
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = f"{key_prefix}_{make_cache_key(*args, **kwargs)}"

            payload = cache.get(cache_key)
            if payload is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return jsonify(payload)

            payload = f(*args, **kwargs)
            cache.set(cache_key, payload, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return jsonify(payload)

        return wrapped

    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate cache keys matching a pattern

    Args:
        pattern: Pattern to match cache keys
    """
    try:
        # SimpleCache and RedisCache do not share a key-listing API, so clear
        # everything under our prefix
        cache.clear()
        current_app.logger.debug(f"Cache cleared for pattern: {pattern}")
    except Exception as e:
        current_app.logger.error(f"Failed to clear cache: {e}")


def invalidate_leaderboards():
    """Drop cached leaderboards after a score or season change"""
    invalidate_cache_pattern("*leaderboard*")


def invalidate_seasons():
    invalidate_cache_pattern("*season*")


class CacheManager:
    """Cache management utilities"""

    @staticmethod
    def get_cache_stats():
        """Get cache statistics"""
        return {
            "type": current_app.config.get("CACHE_TYPE", "Unknown"),
            "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
        }
