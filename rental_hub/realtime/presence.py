"""
Presence registry and message relay.

The registry maps a user id to the connection that last registered for it and
forwards chat payloads to that connection's outbox. All state is owned by a
single task; register/relay/attach/detach are commands queued to it, so
lookups never interleave with overwrites.

Presence is in-memory only. A restart empties it and every user appears
offline until their client sends ``addUser`` again.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from rental_hub.config import settings
from rental_hub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class PresenceRegistryError(Exception):
    """Raised when a command is submitted to a registry that is not running."""


@dataclass(eq=False)
class Connection:
    """Transport-side handle of one socket: an id plus a bounded outbox."""

    connection_id: str
    outbox: asyncio.Queue = field(
        default_factory=lambda: asyncio.Queue(maxsize=settings.PRESENCE_OUTBOX_SIZE)
    )

    def deliver(self, payload: Any) -> bool:
        try:
            self.outbox.put_nowait(payload)
            return True
        except asyncio.QueueFull:
            logger.warning(
                "Connection outbox full, message dropped", connection_id=self.connection_id
            )
            return False


@dataclass
class _Command:
    name: str
    args: tuple
    future: asyncio.Future


class PresenceRegistry:
    """
    Process-wide presence state, owned by one task.

    Usage:
        registry = PresenceRegistry()
        await registry.start()
        await registry.attach(connection)
        await registry.register(connection.connection_id, "user-1")
        await registry.relay(other_connection_id, "user-1", {"text": "hi"})
        await registry.stop()
    """

    def __init__(self):
        self._entries: dict[str, str] = {}
        self._connections: dict[str, Connection] = {}
        self._commands: asyncio.Queue[_Command] | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Spawn the owner task on the running loop."""
        if self.is_running:
            return
        self._commands = asyncio.Queue()
        self._task = asyncio.create_task(self._run(), name="presence-registry")
        logger.info("Presence registry started")

    async def stop(self) -> None:
        """Cancel the owner task and fail any command still queued."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

        while self._commands is not None and not self._commands.empty():
            command = self._commands.get_nowait()
            if not command.future.done():
                command.future.set_exception(PresenceRegistryError("Presence registry stopped"))

        logger.info(
            "Presence registry stopped",
            entries=len(self._entries),
            connections=len(self._connections),
        )

    async def _submit(self, name: str, *args) -> Any:
        if not self.is_running:
            raise PresenceRegistryError("Presence registry is not running")

        future = asyncio.get_running_loop().create_future()
        await self._commands.put(_Command(name=name, args=args, future=future))
        return await future

    async def _run(self) -> None:
        while True:
            command = await self._commands.get()
            handler = getattr(self, f"_do_{command.name}")
            try:
                result = handler(*command.args)
            except Exception as e:
                logger.error("Presence command failed", command=command.name, error=str(e))
                if not command.future.done():
                    command.future.set_exception(e)
            else:
                if not command.future.done():
                    command.future.set_result(result)

    # -----------------------------------------------------------------
    # Public commands
    # -----------------------------------------------------------------

    async def attach(self, connection: Connection) -> None:
        """Make a freshly accepted connection reachable by relay."""
        await self._submit("attach", connection)

    async def detach(self, connection_id: str) -> None:
        """
        Drop the transport channel of a closed connection.

        Presence entries pointing at it are kept: they are only replaced
        when the user registers again from a new connection.
        """
        if not self.is_running:
            return
        await self._submit("detach", connection_id)

    async def register(self, connection_id: str, user_id: str) -> None:
        """Bind user_id to connection_id; the last registration wins."""
        await self._submit("register", connection_id, user_id)

    async def relay(self, from_connection_id: str | None, to_user_id: str, message: Any) -> bool:
        """
        Deliver message to the connection registered for to_user_id.

        Returns True if it was queued for delivery. A miss is not an error
        and nothing is reported back to the sender.
        """
        return await self._submit("relay", from_connection_id, to_user_id, message)

    async def lookup(self, user_id: str) -> str | None:
        return await self._submit("lookup", user_id)

    async def stats(self) -> dict:
        return await self._submit("stats")

    # -----------------------------------------------------------------
    # Command handlers (owner task only)
    # -----------------------------------------------------------------

    def _do_attach(self, connection: Connection) -> None:
        self._connections[connection.connection_id] = connection
        logger.debug("Connection attached", connection_id=connection.connection_id)

    def _do_detach(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        logger.debug("Connection detached", connection_id=connection_id)

    def _do_register(self, connection_id: str, user_id: str) -> None:
        previous = self._entries.get(user_id)
        self._entries[user_id] = connection_id
        logger.info(
            "User registered",
            user_id=user_id,
            connection_id=connection_id,
            replaced_connection_id=previous if previous != connection_id else None,
        )

    def _do_relay(self, from_connection_id: str | None, to_user_id: str, message: Any) -> bool:
        connection_id = self._entries.get(to_user_id)
        if connection_id is None:
            logger.debug("Relay miss: recipient offline", to_user_id=to_user_id)
            return False

        # Same rule as a socket.io room emit: the sending socket is excluded
        if connection_id == from_connection_id:
            logger.debug("Relay skipped: recipient is the sender", to_user_id=to_user_id)
            return False

        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug(
                "Relay miss: connection closed",
                to_user_id=to_user_id,
                connection_id=connection_id,
            )
            return False

        return connection.deliver(message)

    def _do_lookup(self, user_id: str) -> str | None:
        return self._entries.get(user_id)

    def _do_stats(self) -> dict:
        online = sum(1 for cid in self._entries.values() if cid in self._connections)
        return {
            "registered_users": len(self._entries),
            "open_connections": len(self._connections),
            "online_users": online,
        }
