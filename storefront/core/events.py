"""
Realtime event hub for WebSocket clients.

Clients connect to ``/api/v1/ws`` and receive JSON frames::

    {"channel": "order/status_updated", "data": {...}, "timestamp": "..."}

Routing:
- an event carrying ``customer_id`` goes to that customer's sockets and
  to every staff/admin socket
- an event without a customer goes to staff/admin sockets only
- anonymous sockets only receive frames addressed to their own key
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from storefront.core.metrics import metrics

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({"STAFF", "ADMIN"})


def event_payload(event_type: str, **fields: Any) -> Dict[str, Any]:
    """Event body with its type and an ISO timestamp."""
    return {"event_type": event_type, "timestamp": datetime.now(timezone.utc).isoformat(), **fields}


class EventHub:
    """Manage WebSocket connections and fan out domain events."""

    def __init__(self):
        self._connections: Dict[str, List[Any]] = {}  # user key -> sockets
        self._roles: Dict[str, str] = {}  # user key -> role
        self._lock = asyncio.Lock()

    async def connect(self, websocket, user_key: str, role: Optional[str] = None) -> None:
        """Register an accepted WebSocket under a user key."""
        async with self._lock:
            self._connections.setdefault(user_key, []).append(websocket)
            if role:
                self._roles[user_key] = role
            count = len(self._connections[user_key])
        metrics.increment("websocket_connections")
        logger.info(f"WebSocket connected for {user_key[:8]}... (role={role}, sockets={count})")

    async def disconnect(self, websocket, user_key: str) -> None:
        """Unregister a WebSocket connection."""
        removed = False
        async with self._lock:
            sockets = self._connections.get(user_key)
            if sockets and websocket in sockets:
                sockets.remove(websocket)
                removed = True
            if sockets is not None and not sockets:
                del self._connections[user_key]
                self._roles.pop(user_key, None)
        if removed:
            metrics.decrement("websocket_connections")
            logger.info(f"WebSocket disconnected for {user_key[:8]}...")

    def connection_count(self, user_key: Optional[str] = None) -> int:
        """Number of open sockets, for one user key or overall."""
        if user_key is not None:
            return len(self._connections.get(user_key, []))
        return sum(len(sockets) for sockets in self._connections.values())

    def _recipients(self, customer_id: Optional[str]) -> List[str]:
        keys = [key for key, role in self._roles.items() if role in STAFF_ROLES]
        if customer_id and customer_id in self._connections and customer_id not in keys:
            keys.append(customer_id)
        return keys

    async def publish(
        self,
        channel: str,
        data: Dict[str, Any],
        customer_id: Optional[str] = None,
    ) -> int:
        """
        Send an event to the owning customer and to staff.

        Args:
            channel: Event channel, e.g. 'quote/status_updated'
            data: JSON-serializable payload
            customer_id: Owning customer, if any

        Returns:
            Number of successful sends
        """
        message = {
            "channel": channel,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        message_json = json.dumps(message, default=str)
        metrics.increment("events_published")

        async with self._lock:
            targets = [
                (key, ws)
                for key in self._recipients(customer_id)
                for ws in list(self._connections.get(key, []))
            ]

        successful = 0
        failed = []
        for key, ws in targets:
            try:
                await ws.send_text(message_json)
                successful += 1
            except Exception as e:
                logger.warning(f"Failed to send {channel} to WebSocket: {e}")
                failed.append((key, ws))

        for key, ws in failed:
            await self.disconnect(ws, key)

        if successful:
            metrics.increment("events_delivered", successful)
        logger.debug(f"Published {channel} -> {successful} sockets")
        return successful

    async def notify_customer(
        self,
        customer_id: str,
        message: str,
        priority: str = "NORMAL",
        link: Optional[str] = None,
        **fields: Any,
    ) -> int:
        """Push a ``notification/new`` entry for the customer's notification list."""
        payload = event_payload(
            "notification",
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            message=message,
            priority=priority,
            link=link,
            **fields,
        )
        return await self.publish("notification/new", payload, customer_id=customer_id)

    async def close_all(self) -> None:
        """Close every socket (application shutdown)."""
        async with self._lock:
            targets = [(key, ws) for key, sockets in self._connections.items() for ws in sockets]
            self._connections.clear()
            self._roles.clear()
        for _, ws in targets:
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")
        metrics.set_gauge("websocket_connections", 0)
        if targets:
            logger.info(f"Closed {len(targets)} WebSocket connections")


# Global event hub instance
event_hub = EventHub()
