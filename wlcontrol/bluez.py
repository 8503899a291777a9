"""Typed bindings for the BlueZ D-Bus API."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from .const import (
    BLUEZ_ADAPTER_INTERFACE,
    BLUEZ_AGENT_CAPABILITY,
    BLUEZ_AGENT_MANAGER_INTERFACE,
    BLUEZ_BATTERY_INTERFACE,
    BLUEZ_DEVICE_INTERFACE,
    BLUEZ_ROOT_PATH,
)
from .data import BluetoothAdapter, BluetoothDevice
from .exceptions import RemoteServiceError
from .proxy import DBusServiceProxy

_LOGGER = logging.getLogger(__name__)

# Substrings of the BlueZ error name or text, checked in order
_BLUEZ_ERROR_MESSAGES = (
    (("page-timeout", "abort-by-local"), "Device not responding. Make sure it is turned on and nearby."),
    (("profile-unavailable",), "No compatible services found on the device."),
    (("already-connected",), "Already connected."),
    (("connection-timeout", "connection-attempt-failed"), "Connection timed out."),
    (("connection-refused",), "Connection refused by the device."),
    (("aborted-by-remote", "ECONNRESET"), "Device disconnected or turned off."),
    (("not-powered",), "Bluetooth adapter is not powered on."),
    (("not-supported", "EOPNOTSUPP"), "Operation not supported."),
    (("busy", "EBUSY", "in-progress"), "Device is busy, try again."),
    (("not-ready",), "Bluetooth is not ready."),
    (("rejected", "canceled"), "Operation cancelled."),
    (("not-paired",), "Device is not paired. Pair first."),
    (("authentication", "auth"), "Authentication failed."),
)


def describe_bluez_error(err: RemoteServiceError) -> str:
    """Translate a BlueZ error into a message for the user."""
    text = f"{err.error_name} {err.message}".lower().replace(" ", "-")
    for needles, message in _BLUEZ_ERROR_MESSAGES:
        if any(needle.lower() in text for needle in needles):
            return message
    return f"Bluetooth error: {err.message}"


def is_does_not_exist(err: RemoteServiceError) -> bool:
    """Return True if BlueZ reports that the object is already gone."""
    return err.error_name.endswith("DoesNotExist") or "Does Not Exist" in err.message


# -------------------------------
# region Parsing
# -------------------------------


def parse_adapter(path: str, props: Mapping[str, Any]) -> BluetoothAdapter:
    """Build a BluetoothAdapter from org.bluez.Adapter1 properties."""
    return BluetoothAdapter(
        path=path,
        name=props.get("Alias") or props.get("Name", ""),
        address=props.get("Address", ""),
        powered=bool(props.get("Powered", False)),
        discoverable=bool(props.get("Discoverable", False)),
        discovering=bool(props.get("Discovering", False)),
    )


def parse_device(path: str, interfaces: Mapping[str, Mapping[str, Any]]) -> BluetoothDevice:
    """Build a BluetoothDevice from its Device1 and Battery1 properties."""
    props = interfaces.get(BLUEZ_DEVICE_INTERFACE, {})
    battery = interfaces.get(BLUEZ_BATTERY_INTERFACE, {}).get("Percentage")
    return BluetoothDevice(
        path=path,
        address=props.get("Address", ""),
        name=props.get("Name", ""),
        alias=props.get("Alias", ""),
        icon=props.get("Icon", ""),
        device_class=int(props.get("Class", 0)),
        paired=bool(props.get("Paired", False)),
        trusted=bool(props.get("Trusted", False)),
        connected=bool(props.get("Connected", False)),
        battery=int(battery) if battery is not None else None,
        rssi=props.get("RSSI"),
        adapter=props.get("Adapter"),
    )


# -------------------------------
# region Client
# -------------------------------


class BluezClient:
    """Method calls on org.bluez objects."""

    def __init__(self, proxy: DBusServiceProxy) -> None:
        """Initialize the client."""
        self.proxy = proxy

    async def start_discovery(self, adapter: str) -> None:
        """Start discovering devices."""
        await self.proxy.call(adapter, BLUEZ_ADAPTER_INTERFACE, "StartDiscovery")

    async def stop_discovery(self, adapter: str) -> None:
        """Stop discovering devices."""
        await self.proxy.call(adapter, BLUEZ_ADAPTER_INTERFACE, "StopDiscovery")

    async def remove_device(self, adapter: str, device: str) -> None:
        """Remove a device and its pairing."""
        _LOGGER.info("Removing %s", device)
        await self.proxy.call(adapter, BLUEZ_ADAPTER_INTERFACE, "RemoveDevice", "o", [device])

    async def set_powered(self, adapter: str, powered: bool) -> None:
        """Power the adapter on or off."""
        await self.proxy.set_property(adapter, BLUEZ_ADAPTER_INTERFACE, "Powered", "b", powered)

    async def set_discoverable(self, adapter: str, discoverable: bool) -> None:
        """Make the adapter visible or hidden."""
        await self.proxy.set_property(
            adapter, BLUEZ_ADAPTER_INTERFACE, "Discoverable", "b", discoverable
        )

    async def connect(self, device: str) -> None:
        """Connect all auto-connectable profiles of a device."""
        _LOGGER.info("Connecting %s", device)
        await self.proxy.call(device, BLUEZ_DEVICE_INTERFACE, "Connect")

    async def disconnect(self, device: str) -> None:
        """Disconnect a device."""
        await self.proxy.call(device, BLUEZ_DEVICE_INTERFACE, "Disconnect")

    async def pair(self, device: str) -> None:
        """Pair with a device."""
        _LOGGER.info("Pairing %s", device)
        await self.proxy.call(device, BLUEZ_DEVICE_INTERFACE, "Pair")

    async def set_trusted(self, device: str, trusted: bool) -> None:
        """Change the trusted flag of a device."""
        await self.proxy.set_property(device, BLUEZ_DEVICE_INTERFACE, "Trusted", "b", trusted)

    async def set_alias(self, device: str, alias: str) -> None:
        """Rename a device."""
        await self.proxy.set_property(device, BLUEZ_DEVICE_INTERFACE, "Alias", "s", alias)

    async def register_agent(self, agent_path: str) -> None:
        """Register the pairing agent and make it the default one."""
        try:
            await self.proxy.call(
                BLUEZ_ROOT_PATH,
                BLUEZ_AGENT_MANAGER_INTERFACE,
                "RegisterAgent",
                "os",
                [agent_path, BLUEZ_AGENT_CAPABILITY],
            )
        except RemoteServiceError as err:
            if not err.error_name.endswith("AlreadyExists"):
                raise
            _LOGGER.debug("Pairing agent %s is already registered", agent_path)
        await self.proxy.call(
            BLUEZ_ROOT_PATH, BLUEZ_AGENT_MANAGER_INTERFACE, "RequestDefaultAgent", "o", [agent_path]
        )
        _LOGGER.info("Registered pairing agent at %s", agent_path)

    async def unregister_agent(self, agent_path: str) -> None:
        """Unregister the pairing agent."""
        await self.proxy.call(
            BLUEZ_ROOT_PATH, BLUEZ_AGENT_MANAGER_INTERFACE, "UnregisterAgent", "o", [agent_path]
        )
