# ==== REDIS CLIENT ==== #

"""
Redis client for gateway rate limiting in EasyBill.

One lazily created ``redis.asyncio`` client per process, with SSL settings
for managed ``rediss://`` deployments.
"""

from typing import Optional

import redis.asyncio as redis

from easybill.settings import settings


# ==== GLOBAL CLIENT INSTANCE ==== #

_redis_client: Optional[redis.Redis] = None


# ==== REDIS CLIENT FUNCTIONS ==== #


def get_redis_client() -> redis.Redis:
    """
    Get the shared Redis client.

    Connections are opened on first command, so creating the client never
    blocks and never fails on an unreachable server.

    Returns:
        redis.Redis: Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        # --► SSL CONFIGURATION FOR MANAGED REDIS
        ssl_config = {}
        if settings.REDIS_URL.startswith('rediss://'):
            ssl_config = {
                'ssl_cert_reqs': None,
                'ssl_check_hostname': False,
            }

        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
            **ssl_config
        )

    return _redis_client


def set_redis_client(client: Optional[redis.Redis]) -> None:
    """Replace the shared client. Tests install fakes through this."""
    global _redis_client
    _redis_client = client


async def close_redis_client() -> None:
    """Close the shared client and reset it for clean shutdown."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
