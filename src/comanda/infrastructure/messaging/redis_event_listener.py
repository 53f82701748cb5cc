from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from redis import asyncio as redis_asyncio

from comanda.application.use_cases.notify import events_channel

logger = logging.getLogger(__name__)


def _decode_value(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


async def _close(resource: Any) -> None:
    aclose = getattr(resource, "aclose", None)
    if callable(aclose):
        await aclose()
    else:
        await resource.close()


async def start_redis_fanout(app_state: Any) -> None:
    """Relay every event published on the events channel to connected websockets.

    Reconnects with capped exponential backoff; clients also poll, so events
    lost while disconnected are only a latency cost.
    """
    url = os.getenv("REDIS_URL")
    if not url:
        logger.warning("redis_fanout_not_started", extra={"reason": "REDIS_URL missing"})
        return

    channel = events_channel()
    backoff_seconds = 1.0
    while True:
        client: redis_asyncio.Redis | None = None
        pubsub: redis_asyncio.client.PubSub | None = None
        try:
            client = redis_asyncio.from_url(url)
            pubsub = client.pubsub()
            await pubsub.subscribe(channel)
            logger.info("redis_fanout_subscribed", extra={"channel": channel})
            backoff_seconds = 1.0

            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    await asyncio.sleep(0.05)
                    continue

                payload = _decode_value(message.get("data"))
                if not payload:
                    continue
                await app_state.ws_manager.broadcast(message_json_str=payload)
        except asyncio.CancelledError:
            logger.info("redis_fanout_cancelled")
            raise
        except Exception:
            logger.exception(
                "redis_fanout_error",
                extra={"backoff_seconds": backoff_seconds},
            )
            await asyncio.sleep(backoff_seconds)
            backoff_seconds = min(backoff_seconds * 2, 5.0)
        finally:
            if pubsub is not None:
                await _close(pubsub)
            if client is not None:
                await _close(client)
