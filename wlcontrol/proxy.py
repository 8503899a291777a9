"""Generic D-Bus service proxy with a local property cache."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
import logging
from typing import Any

from dbus_fast import Message, MessageType, Variant
from dbus_fast.aio import MessageBus

from .const import (
    DBUS_ERROR_NAME_HAS_NO_OWNER,
    DBUS_ERROR_NO_REPLY,
    DBUS_ERROR_SERVICE_UNKNOWN,
    DBUS_INTERFACE,
    DBUS_OBJECT_MANAGER_INTERFACE,
    DBUS_PATH,
    DBUS_PROPERTIES_INTERFACE,
    DBUS_SERVICE,
)
from .exceptions import RemoteServiceError, ServiceUnavailable
from .inputs import PropertyDelta

_LOGGER = logging.getLogger(__name__)

ObjectTree = dict[str, dict[str, dict[str, Any]]]


def unwrap(value: Any) -> Any:
    """Strip Variant wrappers from a value received from the bus."""
    if isinstance(value, Variant):
        return unwrap(value.value)
    if isinstance(value, dict):
        return {key: unwrap(item) for key, item in value.items()}
    if isinstance(value, list):
        return [unwrap(item) for item in value]
    return value


async def add_match(bus: MessageBus, rule: str) -> None:
    """Ask the bus daemon to route messages matching rule to us."""
    reply = await bus.call(
        Message(
            destination=DBUS_SERVICE,
            path=DBUS_PATH,
            interface=DBUS_INTERFACE,
            member="AddMatch",
            signature="s",
            body=[rule],
        )
    )
    if reply.message_type == MessageType.ERROR:
        raise RemoteServiceError(reply.error_name or "", _error_text(reply))


def _error_text(reply: Message) -> str:
    if reply.body and isinstance(reply.body[0], str):
        return reply.body[0]
    return reply.error_name or "Unknown error"


class DBusServiceProxy:
    """Typed access to one remote service's object tree.

    Calls go straight to the bus. Property reads are answered from a cache
    kept current by ObjectManager and PropertiesChanged signals.
    """

    def __init__(self, bus: MessageBus, service: str) -> None:
        """Initialize the proxy.

        Args:
            bus: Connected system bus.
            service: Well-known bus name of the remote service.
        """
        self._bus = bus
        self.service = service
        self.owner: str | None = None
        self._objects: ObjectTree = {}
        self._deltas: asyncio.Queue[PropertyDelta] = asyncio.Queue()
        self._on_added: Callable[[str, dict[str, dict[str, Any]]], None] | None = None
        self._on_removed: Callable[[str, list[str]], None] | None = None
        self._subscribed = False

    @property
    def objects(self) -> ObjectTree:
        """Return the cached object tree."""
        return self._objects

    # -------------------------------
    # region Subscriptions
    # -------------------------------

    async def subscribe(self) -> None:
        """Install signal match rules and the message handler."""
        if self._subscribed:
            return
        for member, interface in (
            ("PropertiesChanged", DBUS_PROPERTIES_INTERFACE),
            ("InterfacesAdded", DBUS_OBJECT_MANAGER_INTERFACE),
            ("InterfacesRemoved", DBUS_OBJECT_MANAGER_INTERFACE),
        ):
            await add_match(
                self._bus,
                f"type='signal',sender='{self.service}',"
                f"interface='{interface}',member='{member}'",
            )
        self._bus.add_message_handler(self._handle_message)
        self._subscribed = True
        _LOGGER.debug("Subscribed to signals of %s", self.service)

    def unsubscribe(self) -> None:
        """Remove the message handler."""
        if self._subscribed:
            self._bus.remove_message_handler(self._handle_message)
            self._subscribed = False

    def set_membership_callbacks(
        self,
        on_added: Callable[[str, dict[str, dict[str, Any]]], None],
        on_removed: Callable[[str, list[str]], None],
    ) -> None:
        """Register receivers for InterfacesAdded and InterfacesRemoved."""
        self._on_added = on_added
        self._on_removed = on_removed

    async def deltas(self) -> AsyncIterator[PropertyDelta]:
        """Yield property changes as they arrive, forever."""
        while True:
            yield await self._deltas.get()

    def _handle_message(self, msg: Message) -> None:
        if msg.message_type != MessageType.SIGNAL:
            return
        if self.owner is None or msg.sender != self.owner:
            return
        if msg.member == "PropertiesChanged" and msg.interface == DBUS_PROPERTIES_INTERFACE:
            interface, changed, invalidated = msg.body
            self._properties_changed(msg.path, interface, unwrap(changed), invalidated)
        elif msg.member == "InterfacesAdded" and msg.interface == DBUS_OBJECT_MANAGER_INTERFACE:
            path, interfaces = msg.body
            self._interfaces_added(path, unwrap(interfaces))
        elif msg.member == "InterfacesRemoved" and msg.interface == DBUS_OBJECT_MANAGER_INTERFACE:
            path, interfaces = msg.body
            self._interfaces_removed(path, list(interfaces))

    def _properties_changed(
        self,
        path: str,
        interface: str,
        changed: dict[str, Any],
        invalidated: list[str],
    ) -> None:
        properties = self._objects.setdefault(path, {}).setdefault(interface, {})
        properties.update(changed)
        for name in invalidated:
            properties.pop(name, None)
        updates = [*changed.items(), *((name, None) for name in invalidated)]
        for name, value in updates:
            self._deltas.put_nowait(
                PropertyDelta(
                    service=self.service,
                    path=path,
                    interface=interface,
                    name=name,
                    value=value,
                    properties=dict(properties),
                )
            )

    def _interfaces_added(self, path: str, interfaces: dict[str, dict[str, Any]]) -> None:
        self._objects.setdefault(path, {}).update(interfaces)
        if self._on_added is not None:
            self._on_added(path, interfaces)

    def _interfaces_removed(self, path: str, interfaces: list[str]) -> None:
        cached = self._objects.get(path, {})
        for interface in interfaces:
            cached.pop(interface, None)
        if not cached:
            self._objects.pop(path, None)
        if self._on_removed is not None:
            self._on_removed(path, interfaces)

    # -------------------------------
    # region Cache
    # -------------------------------

    def get_property(self, path: str, interface: str, name: str, default: Any = None) -> Any:
        """Return the last known value of a property."""
        return self._objects.get(path, {}).get(interface, {}).get(name, default)

    def get_properties(self, path: str, interface: str) -> dict[str, Any]:
        """Return a copy of all cached properties of an interface."""
        return dict(self._objects.get(path, {}).get(interface, {}))

    def clear(self) -> None:
        """Forget every cached object."""
        self._objects = {}

    async def get_managed_objects(self) -> ObjectTree:
        """Enumerate the full object tree and replace the cache with it."""
        (objects,) = await self.call("/", DBUS_OBJECT_MANAGER_INTERFACE, "GetManagedObjects")
        self._objects = unwrap(objects)
        return {path: dict(interfaces) for path, interfaces in self._objects.items()}

    # -------------------------------
    # region Calls
    # -------------------------------

    async def call(
        self,
        path: str,
        interface: str,
        member: str,
        signature: str = "",
        body: list[Any] | None = None,
        timeout: float | None = None,
    ) -> list[Any]:
        """Call a remote method and return the reply body.

        Raises:
            ServiceUnavailable: The service has no owner on the bus.
            RemoteServiceError: The service replied with an error.
        """
        msg = Message(
            destination=self.service,
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=body or [],
        )
        _LOGGER.debug("Calling %s.%s on %s", interface, member, path)
        try:
            reply = await asyncio.wait_for(self._bus.call(msg), timeout)
        except TimeoutError as err:
            raise RemoteServiceError(DBUS_ERROR_NO_REPLY, "Timed out waiting for reply") from err
        if reply.message_type == MessageType.ERROR:
            error_name = reply.error_name or ""
            text = _error_text(reply)
            _LOGGER.debug("%s.%s failed: %s %s", interface, member, error_name, text)
            if error_name in (DBUS_ERROR_SERVICE_UNKNOWN, DBUS_ERROR_NAME_HAS_NO_OWNER):
                raise ServiceUnavailable(f"{self.service} is not running")
            raise RemoteServiceError(error_name, text)
        return reply.body

    async def set_property(
        self, path: str, interface: str, name: str, signature: str, value: Any
    ) -> None:
        """Set a remote property through org.freedesktop.DBus.Properties."""
        await self.call(
            path,
            DBUS_PROPERTIES_INTERFACE,
            "Set",
            "ssv",
            [interface, name, Variant(signature, value)],
        )
