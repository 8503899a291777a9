"""Typed bindings for the iwd D-Bus API."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from .const import (
    DBUS_ERROR_NO_REPLY,
    IWD_AGENT_MANAGER_INTERFACE,
    IWD_DEVICE_INTERFACE,
    IWD_KNOWN_NETWORK_INTERFACE,
    IWD_NETWORK_INTERFACE,
    IWD_ROOT_PATH,
    IWD_STATION_INTERFACE,
)
from .data import KnownNetwork, NetworkObject, StationStatus, WifiDevice
from .exceptions import RemoteServiceError
from .proxy import DBusServiceProxy

_LOGGER = logging.getLogger(__name__)

# Substrings of iwd error names, checked in order
_IWD_ERROR_MESSAGES = (
    ("Aborted", "Connection cancelled"),
    ("Canceled", "Connection cancelled"),
    ("InvalidFormat", "Invalid password"),
    ("InvalidArguments", "Invalid password"),
    ("AuthenticationFailed", "Wrong password"),
    ("NotConnected", "Not connected"),
    ("Busy", "Device is busy, try again"),
    ("NotFound", "Network not found"),
    ("NoAgent", "No agent registered"),
    ("Failed", "Connection failed"),
)


def centi_to_dbm(value: int) -> int:
    """Convert iwd's hundredths of a dBm to whole dBm, truncating toward zero."""
    dbm = abs(value) // 100
    return dbm if value >= 0 else -dbm


def describe_iwd_error(err: RemoteServiceError) -> str:
    """Translate an iwd error into a message for the user."""
    if err.error_name == DBUS_ERROR_NO_REPLY:
        return "Connection timed out"
    for needle, message in _IWD_ERROR_MESSAGES:
        if needle in err.error_name:
            return message
    return f"Connection failed: {err.message}"


# -------------------------------
# region Parsing
# -------------------------------


def parse_device(path: str, props: Mapping[str, Any]) -> WifiDevice:
    """Build a WifiDevice from net.connman.iwd.Device properties."""
    return WifiDevice(
        path=path,
        name=props.get("Name", ""),
        address=props.get("Address", ""),
        powered=bool(props.get("Powered", False)),
        mode=props.get("Mode", "station"),
        adapter=props.get("Adapter"),
    )


def parse_station(path: str, props: Mapping[str, Any]) -> StationStatus:
    """Build a StationStatus from net.connman.iwd.Station properties."""
    return StationStatus(
        path=path,
        state=props.get("State", "disconnected"),
        scanning=bool(props.get("Scanning", False)),
        connected_network=props.get("ConnectedNetwork"),
    )


def parse_network(path: str, props: Mapping[str, Any]) -> NetworkObject:
    """Build a NetworkObject from net.connman.iwd.Network properties."""
    return NetworkObject(
        path=path,
        name=props.get("Name", ""),
        security=props.get("Type", "open"),
        device=props.get("Device", ""),
        connected=bool(props.get("Connected", False)),
        known_network=props.get("KnownNetwork"),
    )


def parse_known_network(path: str, props: Mapping[str, Any]) -> KnownNetwork:
    """Build a KnownNetwork from net.connman.iwd.KnownNetwork properties."""
    return KnownNetwork(
        path=path,
        name=props.get("Name", ""),
        security=props.get("Type", "psk"),
        auto_connect=bool(props.get("AutoConnect", True)),
        last_connected=props.get("LastConnectedTime"),
    )


# -------------------------------
# region Client
# -------------------------------


class IwdClient:
    """Method calls on net.connman.iwd objects.

    Every call either succeeds or raises the service's error unchanged.
    """

    def __init__(self, proxy: DBusServiceProxy, connect_timeout: float | None = None) -> None:
        """Initialize the client.

        Args:
            proxy: Proxy bound to net.connman.iwd.
            connect_timeout: Seconds to wait for Network.Connect to return.
        """
        self.proxy = proxy
        self._connect_timeout = connect_timeout

    async def scan(self, station: str) -> None:
        """Request a scan on a station."""
        await self.proxy.call(station, IWD_STATION_INTERFACE, "Scan")

    async def get_ordered_networks(self, station: str) -> list[tuple[str, int]]:
        """Return (network path, signal in dBm) pairs, strongest first."""
        (networks,) = await self.proxy.call(
            station, IWD_STATION_INTERFACE, "GetOrderedNetworks"
        )
        return [(path, centi_to_dbm(signal)) for path, signal in networks]

    async def connect(self, network: str) -> None:
        """Connect to a network. Returns once iwd finished the attempt."""
        _LOGGER.info("Connecting to %s", network)
        await self.proxy.call(
            network, IWD_NETWORK_INTERFACE, "Connect", timeout=self._connect_timeout
        )

    async def disconnect(self, station: str) -> None:
        """Disconnect a station."""
        await self.proxy.call(station, IWD_STATION_INTERFACE, "Disconnect")

    async def forget(self, known_network: str) -> None:
        """Remove a known network."""
        _LOGGER.info("Forgetting %s", known_network)
        await self.proxy.call(known_network, IWD_KNOWN_NETWORK_INTERFACE, "Forget")

    async def set_powered(self, device: str, powered: bool) -> None:
        """Power a device on or off."""
        await self.proxy.set_property(device, IWD_DEVICE_INTERFACE, "Powered", "b", powered)

    async def set_auto_connect(self, known_network: str, enabled: bool) -> None:
        """Toggle autoconnect of a known network."""
        await self.proxy.set_property(
            known_network, IWD_KNOWN_NETWORK_INTERFACE, "AutoConnect", "b", enabled
        )

    async def register_agent(self, agent_path: str) -> None:
        """Register the passphrase agent with iwd."""
        await self.proxy.call(
            IWD_ROOT_PATH, IWD_AGENT_MANAGER_INTERFACE, "RegisterAgent", "o", [agent_path]
        )
        _LOGGER.info("Registered passphrase agent at %s", agent_path)

    async def unregister_agent(self, agent_path: str) -> None:
        """Unregister the passphrase agent."""
        await self.proxy.call(
            IWD_ROOT_PATH, IWD_AGENT_MANAGER_INTERFACE, "UnregisterAgent", "o", [agent_path]
        )
