"""Tests for the BlueZ bindings."""

import pytest

from wlcontrol.bluez import (
    BluezClient,
    describe_bluez_error,
    is_does_not_exist,
    parse_adapter,
    parse_device,
)
from wlcontrol.const import (
    BLUEZ_ADAPTER_INTERFACE,
    BLUEZ_AGENT_MANAGER_INTERFACE,
    BLUEZ_DEVICE_INTERFACE,
    BLUEZ_ROOT_PATH,
)
from wlcontrol.data import DeviceCategory
from wlcontrol.exceptions import RemoteServiceError

from .conftest import ADAPTER, BEACON, HEADSET, MOUSE, bluez_objects


@pytest.mark.parametrize(
    ("error_name", "message", "expected"),
    [
        ("org.bluez.Error.Failed", "br-connection-page-timeout", "Device not responding"),
        ("org.bluez.Error.Failed", "br-connection-profile-unavailable", "No compatible services"),
        ("org.bluez.Error.AlreadyConnected", "Already Connected", "Already connected."),
        ("org.bluez.Error.Failed", "le-connection-abort-by-local", "Device not responding"),
        ("org.bluez.Error.NotReady", "Resource Not Ready", "Bluetooth is not ready."),
        ("org.bluez.Error.InProgress", "Operation already in progress", "Device is busy"),
        ("org.bluez.Error.AuthenticationFailed", "Authentication Failed", "Authentication failed."),
        ("org.bluez.Error.AuthenticationRejected", "Authentication Rejected", "Operation cancelled."),
    ],
)
def test_describe_bluez_error(error_name, message, expected):
    """Test BlueZ errors are translated for the user."""
    assert describe_bluez_error(RemoteServiceError(error_name, message)).startswith(expected)


def test_describe_bluez_error_unknown():
    """Test unknown errors keep the service's text."""
    err = RemoteServiceError("org.bluez.Error.Whatever", "Odd thing")
    assert describe_bluez_error(err) == "Bluetooth error: Odd thing"


def test_is_does_not_exist():
    """Test detecting objects BlueZ already dropped."""
    assert is_does_not_exist(RemoteServiceError("org.bluez.Error.DoesNotExist", "Does Not Exist"))
    assert is_does_not_exist(RemoteServiceError("org.bluez.Error.Failed", "Does Not Exist"))
    assert not is_does_not_exist(RemoteServiceError("org.bluez.Error.Failed", "Failed"))


def test_parse_adapter():
    """Test parsing adapter properties."""
    adapter = parse_adapter(ADAPTER, bluez_objects()[ADAPTER][BLUEZ_ADAPTER_INTERFACE])
    assert adapter.name == "laptop"
    assert adapter.powered is True
    assert adapter.discovering is False


def test_parse_device_with_battery():
    """Test Battery1 is merged into the device."""
    device = parse_device(HEADSET, bluez_objects()[HEADSET])
    assert device.battery == 80
    assert device.connected is True
    assert device.category is DeviceCategory.CONNECTED
    assert device.display_name == "WH-1000XM4"
    assert device.adapter == ADAPTER


def test_parse_device_noise():
    """Test advertisers that only expose their address are noise."""
    objects = bluez_objects()
    assert parse_device(BEACON, objects[BEACON]).is_noise
    assert not parse_device(MOUSE, objects[MOUSE]).is_noise
    assert parse_device(MOUSE, objects[MOUSE]).category is DeviceCategory.PAIRED


async def test_client_calls(mock_proxy):
    """Test each client method targets the right object and member."""
    client = BluezClient(mock_proxy)

    await client.start_discovery(ADAPTER)
    mock_proxy.call.assert_awaited_with(ADAPTER, BLUEZ_ADAPTER_INTERFACE, "StartDiscovery")

    await client.remove_device(ADAPTER, MOUSE)
    mock_proxy.call.assert_awaited_with(
        ADAPTER, BLUEZ_ADAPTER_INTERFACE, "RemoveDevice", "o", [MOUSE]
    )

    await client.pair(MOUSE)
    mock_proxy.call.assert_awaited_with(MOUSE, BLUEZ_DEVICE_INTERFACE, "Pair")

    await client.set_alias(MOUSE, "Mouse")
    mock_proxy.set_property.assert_awaited_with(
        MOUSE, BLUEZ_DEVICE_INTERFACE, "Alias", "s", "Mouse"
    )

    await client.set_discoverable(ADAPTER, True)
    mock_proxy.set_property.assert_awaited_with(
        ADAPTER, BLUEZ_ADAPTER_INTERFACE, "Discoverable", "b", True
    )


async def test_register_agent(mock_proxy):
    """Test the pairing agent is registered and requested as default."""
    client = BluezClient(mock_proxy)

    await client.register_agent("/agent")

    assert [call.args for call in mock_proxy.call.await_args_list] == [
        (BLUEZ_ROOT_PATH, BLUEZ_AGENT_MANAGER_INTERFACE, "RegisterAgent", "os", ["/agent", "KeyboardDisplay"]),
        (BLUEZ_ROOT_PATH, BLUEZ_AGENT_MANAGER_INTERFACE, "RequestDefaultAgent", "o", ["/agent"]),
    ]


async def test_register_agent_already_registered(mock_proxy):
    """Test an agent BlueZ already knows is still made the default."""
    mock_proxy.call.side_effect = [
        RemoteServiceError("org.bluez.Error.AlreadyExists", "Already Exists"),
        [],
    ]
    client = BluezClient(mock_proxy)

    await client.register_agent("/agent")

    mock_proxy.call.assert_awaited_with(
        BLUEZ_ROOT_PATH, BLUEZ_AGENT_MANAGER_INTERFACE, "RequestDefaultAgent", "o", ["/agent"]
    )


async def test_register_agent_failure(mock_proxy):
    """Test other registration errors propagate."""
    mock_proxy.call.side_effect = RemoteServiceError("org.bluez.Error.InvalidArguments", "Bad")
    client = BluezClient(mock_proxy)

    with pytest.raises(RemoteServiceError):
        await client.register_agent("/agent")
