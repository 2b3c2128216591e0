"""Change-notification channels delivering the ids of newly stored files."""

from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional

import asyncpg
from loguru import logger
from sqlalchemy.engine import make_url


class NotificationChannel(ABC):
    """A named publish/subscribe channel polled for pending payloads.

    Payloads published while nobody is subscribed are dropped.
    """

    def __init__(self, name: str):
        self.name = name
        self._pending: Deque[str] = deque()

    @property
    @abstractmethod
    def subscribed(self) -> bool: ...

    @abstractmethod
    async def subscribe(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    async def poll(self) -> List[str]:
        """Return and forget every payload received since the last poll."""
        payloads = []
        while self._pending:
            payloads.append(self._pending.popleft())
        return payloads


class LocalNotificationChannel(NotificationChannel):
    """In-process channel for stores that cannot notify, such as SQLite."""

    def __init__(self, name: str):
        super().__init__(name)
        self._subscribed = False

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    async def subscribe(self) -> None:
        self._subscribed = True
        logger.debug(f"Listening on local channel '{self.name}'")

    def publish(self, payload: str) -> None:
        if self._subscribed:
            self._pending.append(payload)

    async def close(self) -> None:
        self._subscribed = False
        self._pending.clear()


class PostgresNotificationChannel(NotificationChannel):
    """LISTEN on a Postgres channel over a dedicated asyncpg connection."""

    def __init__(self, name: str, database_url: str):
        super().__init__(name)
        # asyncpg takes a plain postgresql:// dsn, without the SQLAlchemy driver suffix
        self.dsn = make_url(database_url).set(drivername="postgresql").render_as_string(
            hide_password=False
        )
        self._connection: Optional[asyncpg.Connection] = None

    @property
    def subscribed(self) -> bool:
        return self._connection is not None and not self._connection.is_closed()

    async def subscribe(self) -> None:
        self._connection = await asyncpg.connect(self.dsn)
        await self._connection.add_listener(self.name, self._on_notification)
        logger.debug(f"Listening on Postgres channel '{self.name}'")

    def _on_notification(self, connection, pid: int, channel: str, payload: str) -> None:
        self._pending.append(payload)

    async def close(self) -> None:
        if self._connection is None:
            return
        try:
            if not self._connection.is_closed():
                await self._connection.remove_listener(self.name, self._on_notification)
                await self._connection.close()
        finally:
            self._connection = None
            self._pending.clear()
