"""Tracks whether iwd and BlueZ are on the bus and which objects they expose."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any

from dbus_fast import Message, MessageType
from dbus_fast.aio import MessageBus

from .const import DBUS_INTERFACE, DBUS_PATH, DBUS_SERVICE
from .exceptions import WlControlError
from .inputs import ObjectAdded, ObjectRemoved, Resynchronized, ServiceLost
from .proxy import DBusServiceProxy, add_match

_LOGGER = logging.getLogger(__name__)


class PresenceWatcher:
    """Turns name ownership and ObjectManager signals into inbox messages.

    When the service appears the full tree is enumerated and posted as one
    Resynchronized message; when it vanishes ServiceLost is posted.
    """

    def __init__(
        self,
        bus: MessageBus,
        proxy: DBusServiceProxy,
        post: Callable[[Any], None],
    ) -> None:
        """Initialize the watcher.

        Args:
            bus: Connected system bus.
            proxy: Proxy of the watched service; its cache follows the tree.
            post: Puts a message into the coordinator inbox.
        """
        self._bus = bus
        self._proxy = proxy
        self._post = post
        self.service = proxy.service
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        proxy.set_membership_callbacks(self._object_added, self._object_removed)

    @property
    def present(self) -> bool:
        """Return True while the service owns its name."""
        return self._proxy.owner is not None

    async def start(self) -> None:
        """Subscribe to signals and report the current presence."""
        await add_match(
            self._bus,
            "type='signal',sender='org.freedesktop.DBus',"
            "interface='org.freedesktop.DBus',member='NameOwnerChanged',"
            f"arg0='{self.service}'",
        )
        self._bus.add_message_handler(self._handle_message)
        await self._proxy.subscribe()

        owner = await self._get_name_owner()
        if owner:
            await self._appeared(owner)
        else:
            _LOGGER.info("%s is not running", self.service)
            self._post(ServiceLost(self.service))

    def stop(self) -> None:
        """Remove signal handlers."""
        self._bus.remove_message_handler(self._handle_message)
        self._proxy.unsubscribe()
        if self._task is not None:
            self._task.cancel()

    async def _get_name_owner(self) -> str | None:
        reply = await self._bus.call(
            Message(
                destination=DBUS_SERVICE,
                path=DBUS_PATH,
                interface=DBUS_INTERFACE,
                member="GetNameOwner",
                signature="s",
                body=[self.service],
            )
        )
        if reply.message_type == MessageType.ERROR:
            return None
        return reply.body[0]

    def _handle_message(self, msg: Message) -> None:
        if (
            msg.message_type != MessageType.SIGNAL
            or msg.interface != DBUS_INTERFACE
            or msg.member != "NameOwnerChanged"
        ):
            return
        name, _old_owner, new_owner = msg.body
        if name != self.service:
            return
        if new_owner:
            self._task = asyncio.create_task(self._appeared(new_owner))
        else:
            self._vanished()

    async def _appeared(self, owner: str) -> None:
        self._generation += 1
        generation = self._generation
        _LOGGER.info("%s appeared as %s", self.service, owner)
        self._proxy.owner = owner
        try:
            objects = await self._proxy.get_managed_objects()
        except WlControlError as err:
            if generation != self._generation:
                return
            _LOGGER.warning("Cannot enumerate %s: %s", self.service, err)
            self._proxy.owner = None
            self._proxy.clear()
            self._post(ServiceLost(self.service))
            return
        if generation != self._generation:
            _LOGGER.debug("Dropping stale enumeration of %s", self.service)
            return
        self._post(Resynchronized(self.service, objects))

    def _vanished(self) -> None:
        self._generation += 1
        _LOGGER.warning("%s vanished from the bus", self.service)
        self._proxy.owner = None
        self._proxy.clear()
        self._post(ServiceLost(self.service))

    def _object_added(self, path: str, interfaces: dict[str, dict[str, Any]]) -> None:
        _LOGGER.debug("%s added %s on %s", self.service, list(interfaces), path)
        self._post(ObjectAdded(self.service, path, interfaces))

    def _object_removed(self, path: str, interfaces: list[str]) -> None:
        _LOGGER.debug("%s removed %s from %s", self.service, interfaces, path)
        self._post(ObjectRemoved(self.service, path, tuple(interfaces)))
