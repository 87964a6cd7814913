"""Real-time event fan-out over WebSockets.

``Broadcaster.emit`` is called from route handlers (running in the threadpool)
and from background jobs. It never blocks and never raises: events are
scheduled onto the event loop captured at startup and delivered best-effort.

With ``REDIS_URL`` configured, every emit is published to a Redis channel and
each process relays what it receives to its own sockets, so clients connected
to any instance see every event. If Redis cannot be reached at startup the
broadcaster logs a warning and delivers to local sockets only. The same
happens if the relay loses its Redis connection later on.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from fastapi import Request, WebSocket, status
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

REDIS_EVENTS_CHANNEL = "hotel:events"


class ConnectionManager:
    """Tracks live WebSockets and the channels each one joined."""

    # Configuration
    MAX_CONNECTIONS = 5000
    MAX_CHANNELS_PER_CONNECTION = 20
    MAX_MESSAGE_SIZE = 65536  # 64KB

    def __init__(self):
        self.connections: Set[WebSocket] = set()
        self.channels: Dict[str, Set[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}

    async def connect(self, websocket: WebSocket, principal_label: str) -> bool:
        """Accept a socket. Returns False if the server is at capacity."""
        if len(self.connections) >= self.MAX_CONNECTIONS:
            logger.warning("WebSocket connection rejected: server at capacity")
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
            return False

        await websocket.accept()
        self.connections.add(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "principal": principal_label,
            "channels": set(),
            "last_ping": datetime.now(timezone.utc),
        }
        logger.debug(f"WebSocket connected for {principal_label}")
        return True

    def join(self, websocket: WebSocket, channel: str) -> bool:
        meta = self.connection_metadata.get(id(websocket))
        if meta is None:
            return False
        if channel not in meta["channels"] and len(meta["channels"]) >= self.MAX_CHANNELS_PER_CONNECTION:
            return False
        self.channels.setdefault(channel, set()).add(websocket)
        meta["channels"].add(channel)
        return True

    def leave(self, websocket: WebSocket, channel: str) -> None:
        members = self.channels.get(channel)
        if members is not None:
            members.discard(websocket)
            if not members:
                del self.channels[channel]
        meta = self.connection_metadata.get(id(websocket))
        if meta is not None:
            meta["channels"].discard(channel)

    def disconnect(self, websocket: WebSocket) -> None:
        meta = self.connection_metadata.pop(id(websocket), None)
        for channel in list(meta["channels"]) if meta else []:
            members = self.channels.get(channel)
            if members is not None:
                members.discard(websocket)
                if not members:
                    del self.channels[channel]
        self.connections.discard(websocket)

    def update_ping(self, websocket: WebSocket) -> None:
        meta = self.connection_metadata.get(id(websocket))
        if meta is not None:
            meta["last_ping"] = datetime.now(timezone.utc)

    def channels_of(self, websocket: WebSocket) -> Set[str]:
        meta = self.connection_metadata.get(id(websocket))
        return set(meta["channels"]) if meta else set()

    async def send(self, message: Dict[str, Any], channel: Optional[str] = None) -> int:
        """Deliver to one channel, or to every socket when ``channel`` is None."""
        targets = list(self.connections if channel is None else self.channels.get(channel, ()))
        delivered = 0
        for connection in targets:
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                self.disconnect(connection)
        return delivered

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        if channel:
            return len(self.channels.get(channel, ()))
        return len(self.connections)


class Broadcaster:
    """Process-wide event publisher, owned by the application lifespan."""

    def __init__(
        self,
        manager: Optional[ConnectionManager] = None,
        redis_url: Optional[str] = None,
        redis_channel: str = REDIS_EVENTS_CHANNEL,
    ):
        self.manager = manager or ConnectionManager()
        self._redis_url = redis_url
        self._redis_channel = redis_channel
        self._redis = None
        self._pubsub = None
        self._relay_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Task] = set()
        self.relay_lost = False

    @property
    def mode(self) -> str:
        if self._redis is not None:
            return "redis"
        return "local, redis relay lost" if self.relay_lost else "local"

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        if not self._redis_url:
            logger.info("Broadcaster running in single-process mode")
            return

        try:
            import redis.asyncio as aioredis

            client = aioredis.from_url(self._redis_url, socket_connect_timeout=2)
            await client.ping()
            pubsub = client.pubsub(ignore_subscribe_messages=True)
            await pubsub.subscribe(self._redis_channel)
        except Exception as e:
            logger.warning(f"Redis unavailable, broadcaster falling back to local delivery: {e}")
            return

        self._redis = client
        self._pubsub = pubsub
        self._relay_task = asyncio.create_task(self._relay())
        logger.info("Broadcaster relaying through Redis")

    async def stop(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._loop = None

    def emit(self, event: str, data: Any, channel: Optional[str] = None) -> None:
        """Fire-and-forget publish. ``channel=None`` reaches every client."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"Broadcaster not started, dropping '{event}'")
            return

        message = {
            "event": event,
            "data": jsonable_encoder(data),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        coro = self.publish(message, channel)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            task = loop.create_task(coro)
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            asyncio.run_coroutine_threadsafe(coro, loop)

    async def publish(self, message: Dict[str, Any], channel: Optional[str] = None) -> None:
        if self._redis is not None:
            try:
                await self._redis.publish(
                    self._redis_channel,
                    json.dumps({"channel": channel, "message": message}),
                )
                return
            except Exception as e:
                logger.warning(f"Redis publish failed, delivering locally: {e}")
        await self.manager.send(message, channel)

    async def _relay(self) -> None:
        """Forward events published by any instance to this instance's sockets."""
        try:
            async for raw in self._pubsub.listen():
                try:
                    envelope = json.loads(raw["data"])
                    await self.manager.send(envelope["message"], envelope.get("channel"))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Dropping malformed broadcast envelope: {e}")
        except Exception as e:
            logger.warning(f"Redis relay lost, broadcaster falling back to local delivery: {e}")
            self.relay_lost = True
            await self._drop_redis()

    async def _drop_redis(self) -> None:
        pubsub, client = self._pubsub, self._redis
        # Cleared first so emits arriving meanwhile are delivered locally
        self._pubsub = None
        self._redis = None
        for resource in (pubsub, client):
            if resource is None:
                continue
            try:
                await resource.aclose()
            except Exception as e:
                logger.debug(f"Ignoring error while closing Redis connection: {e}")


def get_broadcaster(request: Request) -> Broadcaster:
    """FastAPI dependency: the broadcaster owned by the app lifespan."""
    return request.app.state.broadcaster
