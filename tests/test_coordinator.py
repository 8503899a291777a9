"""Tests for the wlcontrol coordinator."""

import asyncio
from unittest.mock import MagicMock, call

from dbus_fast import DBusError
import pytest

from wlcontrol.bluez import BluezClient
from wlcontrol.commands import (
    ConnectNetwork,
    DeclineCredential,
    PairDevice,
    PairingResponse,
    StartDiscovery,
    StartScan,
    SubmitPassphrase,
)
from wlcontrol.const import (
    BLUEZ_ADAPTER_INTERFACE,
    BLUEZ_SERVICE,
    DEFAULT_AGENT_PATH,
    DEFAULT_PAIRING_AGENT_PATH,
    IWD_SERVICE,
)
from wlcontrol.coordinator import Coordinator
from wlcontrol.data import CoordinatorConfig, PairingKind, StationState
from wlcontrol.events import (
    CommandCompleted,
    Connected,
    CredentialRequested,
    PairingRequested,
    ServiceAvailabilityChanged,
)
from wlcontrol.exceptions import (
    CommandConflict,
    CredentialDeclined,
    RemoteServiceError,
    ServiceUnavailable,
)
from wlcontrol.inputs import PropertyDelta, Resynchronized
from wlcontrol.iwd import IwdClient

from .conftest import ADAPTER, BEACON, COFFEE, DEVICE, HOME, bluez_objects, iwd_objects, station_delta


async def _settle():
    for _ in range(20):
        await asyncio.sleep(0)


@pytest.fixture(name="coordinator")
async def coordinator_fixture(mock_bus):
    """Return a running coordinator with mocked service clients."""
    coordinator = Coordinator(mock_bus, CoordinatorConfig(discovery_timeout=0.01))
    coordinator._iwd = MagicMock(spec=IwdClient)
    coordinator._iwd.get_ordered_networks.return_value = [(HOME, -45), (COFFEE, -70)]
    coordinator._bluez = MagicMock(spec=BluezClient)
    coordinator._loop_task = asyncio.create_task(coordinator.run())
    yield coordinator
    await coordinator.stop()


@pytest.fixture(name="wifi_ready")
async def wifi_ready_fixture(coordinator):
    """Return the coordinator after iwd was enumerated."""
    coordinator.post(Resynchronized(IWD_SERVICE, iwd_objects()))
    await _settle()
    return coordinator


async def test_resynchronized_runs_effects(wifi_ready):
    """Test enumeration registers the agent and refreshes signals."""
    wifi_ready._iwd.register_agent.assert_awaited_once_with(DEFAULT_AGENT_PATH)
    wifi_ready._iwd.get_ordered_networks.assert_awaited_once_with(DEVICE)
    assert [n.name for n in wifi_ready.networks] == ["Home-5G", "CoffeeShop", "Office"]
    assert wifi_ready.networks[0].signal_dbm == -45


async def test_execute_scan(wifi_ready):
    """Test a command completes with its generated tag."""
    event = await wifi_ready.execute(StartScan())

    assert event == CommandCompleted("cmd-1")
    wifi_ready._iwd.scan.assert_awaited_once_with(DEVICE)


async def test_execute_connect(wifi_ready):
    """Test connect resolves once the station reports the link."""

    async def fake_connect(network):
        wifi_ready.post(station_delta("connected", network))

    wifi_ready._iwd.connect.side_effect = fake_connect

    event = await wifi_ready.execute(ConnectNetwork(COFFEE, tag="mine"))

    assert event == Connected(COFFEE, "mine")
    assert wifi_ready.wifi.state is StationState.CONNECTED
    assert [n.path for n in wifi_ready.networks if n.connected] == [COFFEE]


async def test_execute_connect_wrong_password(wifi_ready):
    """Test a rejected connect raises the translated error."""
    wifi_ready._iwd.connect.side_effect = RemoteServiceError(
        "net.connman.iwd.AuthenticationFailed", "Authentication failed"
    )

    with pytest.raises(RemoteServiceError, match="Wrong password"):
        await wifi_ready.execute(ConnectNetwork(HOME))

    assert wifi_ready.wifi.state is StationState.IDLE


async def test_execute_connect_while_connecting(wifi_ready):
    """Test a second connect is rejected while the first is running."""
    first = asyncio.create_task(wifi_ready.execute(ConnectNetwork(COFFEE)))
    await _settle()

    with pytest.raises(CommandConflict):
        await wifi_ready.execute(ConnectNetwork(HOME))

    wifi_ready.post(station_delta("connected", COFFEE))
    assert await first == Connected(COFFEE, "cmd-1")


async def test_execute_without_service(coordinator):
    """Test commands raise ServiceUnavailable before iwd appeared."""
    with pytest.raises(ServiceUnavailable):
        await coordinator.execute(StartScan())


async def test_unexpected_call_error(wifi_ready):
    """Test an unexpected exception in a call is reported as a remote error."""
    wifi_ready._iwd.scan.side_effect = ValueError("boom")

    with pytest.raises(RemoteServiceError, match="boom"):
        await wifi_ready.execute(StartScan())


async def test_credential_round_trip(wifi_ready):
    """Test a passphrase request reaches the UI and its answer reaches iwd."""
    events = []
    wifi_ready.add_listener(events.append)

    agent_call = asyncio.create_task(wifi_ready._agent.request_passphrase(HOME))
    await _settle()
    assert CredentialRequested(1, HOME, "Home-5G") in events

    await wifi_ready.execute(SubmitPassphrase("hunter22"))

    assert await agent_call == "hunter22"
    assert wifi_ready.wifi.pending_credential is None


async def test_credential_declined(wifi_ready):
    """Test declining fails the connect and cancels the agent call."""
    connect = asyncio.create_task(wifi_ready.execute(ConnectNetwork(HOME)))
    await _settle()
    agent_call = asyncio.create_task(wifi_ready._agent.request_passphrase(HOME))
    await _settle()

    await wifi_ready.execute(DeclineCredential())

    with pytest.raises(CredentialDeclined):
        await connect
    with pytest.raises(DBusError):
        await agent_call



async def test_pairing_round_trip(coordinator):
    """Test a pairing prompt reaches the UI and its answer reaches BlueZ."""
    coordinator.post(Resynchronized(BLUEZ_SERVICE, bluez_objects()))
    await _settle()
    coordinator._bluez.register_agent.assert_awaited_once_with(DEFAULT_PAIRING_AGENT_PATH)
    events = []
    coordinator.add_listener(events.append)

    pairing = asyncio.create_task(coordinator.execute(PairDevice(BEACON)))
    await _settle()
    agent_call = asyncio.create_task(
        coordinator._pairing_agent.request_confirmation(BEACON, PairingKind.CONFIRM_PASSKEY, "004242")
    )
    await _settle()
    assert PairingRequested(1, BEACON, PairingKind.CONFIRM_PASSKEY, "004242") in events

    await coordinator.execute(PairingResponse(True))

    assert await agent_call is None
    await pairing
    assert coordinator.bluetooth.pending_pairing is None

async def test_listeners(wifi_ready):
    """Test listeners are notified, isolated from each other and removable."""
    failing = MagicMock(side_effect=RuntimeError("listener bug"))
    received = []
    wifi_ready.add_listener(failing)
    remove = wifi_ready.add_listener(received.append)

    wifi_ready.post(Resynchronized(BLUEZ_SERVICE, bluez_objects()))
    await _settle()
    assert failing.called
    assert received

    remove()
    received.clear()
    wifi_ready.submit(StartScan())
    await _settle()
    assert received == []


async def test_submit_returns_tag(wifi_ready):
    """Test submit echoes a caller tag and generates one otherwise."""
    assert wifi_ready.submit(StartScan(tag="x")) == "x"
    assert wifi_ready.submit(StartScan()) == "cmd-1"


async def test_discovery_timeout_stops_discovery(coordinator):
    """Test discovery is stopped after the configured timeout."""
    coordinator.post(Resynchronized(BLUEZ_SERVICE, bluez_objects()))
    await _settle()

    await coordinator.execute(StartDiscovery())
    props = dict(bluez_objects()[ADAPTER][BLUEZ_ADAPTER_INTERFACE], Discovering=True)
    coordinator.post(
        PropertyDelta(BLUEZ_SERVICE, ADAPTER, BLUEZ_ADAPTER_INTERFACE, "Discovering", True, props)
    )
    await asyncio.sleep(0.05)
    await _settle()

    coordinator._bluez.start_discovery.assert_awaited_once_with(ADAPTER)
    coordinator._bluez.stop_discovery.assert_awaited_once_with(ADAPTER)


async def test_start_and_stop(mock_bus):
    """Test startup exports both agents and reports both services missing."""
    coordinator = Coordinator(mock_bus)
    events = []
    coordinator.add_listener(events.append)

    await coordinator.start()
    await _settle()

    assert mock_bus.export.call_args_list == [
        call(DEFAULT_AGENT_PATH, coordinator._agent),
        call(DEFAULT_PAIRING_AGENT_PATH, coordinator._pairing_agent),
    ]
    assert not coordinator.wifi.available
    assert not coordinator.bluetooth.available
    assert not any(isinstance(e, ServiceAvailabilityChanged) for e in events)

    await coordinator.stop()

    assert mock_bus.unexport.call_args_list == [
        call(DEFAULT_AGENT_PATH, coordinator._agent),
        call(DEFAULT_PAIRING_AGENT_PATH, coordinator._pairing_agent),
    ]
    assert coordinator._loop_task.done()
