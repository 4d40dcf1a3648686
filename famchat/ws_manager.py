"""Presence map: which real-time connection, if any, each user is reachable on.

This is a best-effort routing table for live pushes. The conversation store
stays the source of truth; nothing here is queued or retried.
"""
import asyncio
import logging
from typing import Any, Dict, Optional
from fastapi import Request
from .core import ONLINE_USERS, LIVE_PUSHES

logger = logging.getLogger('famchat')


class PresenceMap:
    def __init__(self):
        self.connections: Dict[str, Any] = {}
        self.users: Dict[int, str] = {}
        self.lock = asyncio.Lock()

    async def attach(self, connection_id: str, connection):
        """Make a live socket addressable by its connection id."""
        async with self.lock:
            self.connections[connection_id] = connection

    async def register(self, user_id: int, connection_id: str):
        # single active connection per user: a newer one evicts the older from live pushes
        async with self.lock:
            for other, cid in list(self.users.items()):
                if cid == connection_id and other != user_id:
                    del self.users[other]
            previous = self.users.get(user_id)
            self.users[user_id] = connection_id
            ONLINE_USERS.set(len(self.users))
        if previous and previous != connection_id:
            logger.info({'msg': 'presence_replaced', 'user_id': user_id, 'previous': previous, 'connection_id': connection_id})

    async def unregister(self, connection_id: str):
        async with self.lock:
            self._forget(connection_id)

    def _forget(self, connection_id: str):
        self.connections.pop(connection_id, None)
        # a stale unregister from an already-replaced connection leaves the newer entry alone
        for user_id, cid in list(self.users.items()):
            if cid == connection_id:
                del self.users[user_id]
        ONLINE_USERS.set(len(self.users))

    async def connection_for(self, user_id: int) -> Optional[str]:
        async with self.lock:
            return self.users.get(user_id)

    async def is_online(self, user_id: int) -> bool:
        return await self.connection_for(user_id) is not None

    async def route_if_present(self, user_id: int, payload: dict) -> bool:
        async with self.lock:
            connection_id = self.users.get(user_id)
            ws = self.connections.get(connection_id) if connection_id else None
        if ws is None:
            return False
        try:
            await ws.send_json(payload)
        except Exception as e:
            logger.warning({'msg': 'live_push_failed', 'user_id': user_id, 'connection_id': connection_id, 'error': str(e)})
            await self.unregister(connection_id)
            return False
        LIVE_PUSHES.labels(event=payload.get('type', 'unknown')).inc()
        return True

    async def close(self):
        async with self.lock:
            self.connections.clear()
            self.users.clear()
            ONLINE_USERS.set(0)


def get_presence(request: Request) -> PresenceMap:
    return request.app.state.presence
