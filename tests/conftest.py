"""Common test fixtures for wlcontrol tests."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from dbus_fast import MessageType
import pytest

from wlcontrol.const import (
    BLUEZ_ADAPTER_INTERFACE,
    BLUEZ_BATTERY_INTERFACE,
    BLUEZ_DEVICE_INTERFACE,
    BLUEZ_SERVICE,
    IWD_DEVICE_INTERFACE,
    IWD_KNOWN_NETWORK_INTERFACE,
    IWD_NETWORK_INTERFACE,
    IWD_SERVICE,
    IWD_STATION_INTERFACE,
)
from wlcontrol.inputs import PropertyDelta, Resynchronized

DEVICE = "/net/connman/iwd/0/4"
DEVICE_2 = "/net/connman/iwd/0/5"
HOME = "/net/connman/iwd/0/4/486f6d652d3547_psk"
COFFEE = "/net/connman/iwd/0/4/436f6666656553686f70_open"
HOME_KNOWN = "/net/connman/iwd/486f6d652d3547_psk"
OFFICE_KNOWN = "/net/connman/iwd/4f6666696365_8021x"

ADAPTER = "/org/bluez/hci0"
HEADSET = "/org/bluez/hci0/dev_00_1B_66_AA_BB_CC"
MOUSE = "/org/bluez/hci0/dev_F0_12_34_56_78_9A"
BEACON = "/org/bluez/hci0/dev_4C_11_22_33_44_55"


def make_reply(body: list[Any] | None = None, error_name: str | None = None) -> MagicMock:
    """Return a mock reply message."""
    reply = MagicMock()
    reply.message_type = MessageType.ERROR if error_name else MessageType.METHOD_RETURN
    reply.error_name = error_name
    reply.body = body if body is not None else []
    return reply


def make_signal(
    sender: str, path: str, interface: str, member: str, body: list[Any]
) -> MagicMock:
    """Return a mock signal message."""
    msg = MagicMock()
    msg.message_type = MessageType.SIGNAL
    msg.sender = sender
    msg.path = path
    msg.interface = interface
    msg.member = member
    msg.body = body
    return msg


def iwd_objects(
    state: str = "disconnected",
    connected_network: str | None = None,
    scanning: bool = False,
    powered: bool = True,
) -> dict[str, dict[str, dict[str, Any]]]:
    """Return an iwd object tree with one device, two networks and two known networks."""
    station: dict[str, Any] = {"State": state, "Scanning": scanning}
    if connected_network:
        station["ConnectedNetwork"] = connected_network
    device: dict[str, dict[str, Any]] = {
        IWD_DEVICE_INTERFACE: {
            "Name": "wlan0",
            "Address": "12:34:56:78:9a:bc",
            "Powered": powered,
            "Mode": "station",
            "Adapter": "/net/connman/iwd/0",
        }
    }
    if powered:
        device[IWD_STATION_INTERFACE] = station
    return {
        DEVICE: device,
        HOME: {
            IWD_NETWORK_INTERFACE: {
                "Name": "Home-5G",
                "Type": "psk",
                "Device": DEVICE,
                "Connected": connected_network == HOME,
                "KnownNetwork": HOME_KNOWN,
            }
        },
        COFFEE: {
            IWD_NETWORK_INTERFACE: {
                "Name": "CoffeeShop",
                "Type": "open",
                "Device": DEVICE,
                "Connected": connected_network == COFFEE,
            }
        },
        HOME_KNOWN: {
            IWD_KNOWN_NETWORK_INTERFACE: {"Name": "Home-5G", "Type": "psk", "AutoConnect": True}
        },
        OFFICE_KNOWN: {
            IWD_KNOWN_NETWORK_INTERFACE: {
                "Name": "Office",
                "Type": "8021x",
                "AutoConnect": False,
            }
        },
    }


def station_delta(state: str, connected_network: str | None = None, scanning: bool = False):
    """Return a Station property change for DEVICE."""
    properties: dict[str, Any] = {"State": state, "Scanning": scanning}
    if connected_network:
        properties["ConnectedNetwork"] = connected_network
    return PropertyDelta(IWD_SERVICE, DEVICE, IWD_STATION_INTERFACE, "State", state, properties)


def bluez_objects(powered: bool = True, discovering: bool = False):
    """Return a BlueZ object tree with one adapter and three devices."""
    return {
        ADAPTER: {
            BLUEZ_ADAPTER_INTERFACE: {
                "Address": "00:1A:7D:DA:71:13",
                "Name": "laptop",
                "Alias": "laptop",
                "Powered": powered,
                "Discoverable": False,
                "Discovering": discovering,
            }
        },
        HEADSET: {
            BLUEZ_DEVICE_INTERFACE: {
                "Address": "00:1B:66:AA:BB:CC",
                "Name": "WH-1000XM4",
                "Alias": "WH-1000XM4",
                "Icon": "audio-headset",
                "Class": 2360324,
                "Paired": True,
                "Trusted": True,
                "Connected": True,
                "Adapter": ADAPTER,
            },
            BLUEZ_BATTERY_INTERFACE: {"Percentage": 80},
        },
        MOUSE: {
            BLUEZ_DEVICE_INTERFACE: {
                "Address": "F0:12:34:56:78:9A",
                "Name": "MX Master",
                "Alias": "MX Master",
                "Icon": "input-mouse",
                "Paired": True,
                "Adapter": ADAPTER,
            }
        },
        BEACON: {
            BLUEZ_DEVICE_INTERFACE: {
                "Address": "4C:11:22:33:44:55",
                "Alias": "4C-11-22-33-44-55",
                "RSSI": -80,
                "Adapter": ADAPTER,
            }
        },
    }


@pytest.fixture(name="iwd_resync")
def iwd_resync_fixture():
    """Return a Resynchronized message for an idle iwd."""
    return Resynchronized(IWD_SERVICE, iwd_objects())


@pytest.fixture(name="bluez_resync")
def bluez_resync_fixture():
    """Return a Resynchronized message for a powered BlueZ adapter."""
    return Resynchronized(BLUEZ_SERVICE, bluez_objects())


@pytest.fixture(name="mock_bus")
def mock_bus_fixture():
    """Return a mock system bus with neither service running."""
    bus = MagicMock()

    async def call(msg):
        if msg.member == "GetNameOwner":
            return make_reply(error_name="org.freedesktop.DBus.Error.NameHasNoOwner")
        return make_reply()

    bus.call = AsyncMock(side_effect=call)
    return bus


@pytest.fixture(name="mock_proxy")
def mock_proxy_fixture():
    """Return a mock service proxy."""
    proxy = MagicMock()
    proxy.call = AsyncMock(return_value=[])
    proxy.set_property = AsyncMock()
    return proxy
