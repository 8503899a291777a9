"""Backend coordinator: owns the models and mediates between the UI and the bus."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
import itertools
import logging
from typing import Any

from dbus_fast import BusType
from dbus_fast.aio import MessageBus

from .agent import BluezAgentInterface, CredentialMailbox, IwdAgentInterface, pairing_mailbox
from .bluetooth_state import project_devices, reduce_bluetooth
from .bluez import BluezClient
from .commands import Command
from .const import BLUEZ_SERVICE, IWD_SERVICE
from .data import (
    BluetoothDevice,
    BluetoothModel,
    CoordinatorConfig,
    ErrorKind,
    Subsystem,
    WifiModel,
    WirelessNetwork,
)
from .effects import (
    CallConnect,
    CallDeviceConnect,
    CallDeviceDisconnect,
    CallDisconnect,
    CallForget,
    CallPair,
    CallRemoveDevice,
    CallScan,
    CallSetAdapterPowered,
    CallSetAlias,
    CallSetAutoConnect,
    CallSetDiscoverable,
    CallSetTrusted,
    CallSetWifiPowered,
    CallStartDiscovery,
    CallStopDiscovery,
    RefreshNetworks,
    RegisterAgent,
    RegisterPairingAgent,
    ResolveCredential,
    ResolvePairing,
    ScheduleDiscoveryTimeout,
)
from .events import CommandCompleted, Connected, ConnectionAbandoned, ErrorRaised, Event
from .exceptions import (
    CommandConflict,
    CredentialDeclined,
    RemoteServiceError,
    ServiceUnavailable,
    WlControlError,
)
from .inputs import (
    CredentialCancelledByService,
    CredentialInbound,
    CredentialTimedOut,
    DiscoveryTimeout,
    EffectCompleted,
    PairingCancelledByService,
    PairingInbound,
    PairingTimedOut,
)
from .iwd import IwdClient
from .presence import PresenceWatcher
from .proxy import DBusServiceProxy
from .wifi_state import project_networks, reduce_wifi

_LOGGER = logging.getLogger(__name__)

# Events that close a command
_TERMINAL_EVENTS = (CommandCompleted, Connected, ErrorRaised, ConnectionAbandoned)

_ERRORS: dict[ErrorKind, type[WlControlError]] = {
    ErrorKind.SERVICE_UNAVAILABLE: ServiceUnavailable,
    ErrorKind.COMMAND_CONFLICT: CommandConflict,
    ErrorKind.CREDENTIAL_DECLINED: CredentialDeclined,
}


def _exception_for(event: ErrorRaised) -> WlControlError:
    if event.kind is ErrorKind.REMOTE_SERVICE:
        return RemoteServiceError(message=event.message)
    return _ERRORS[event.kind](event.message)


class Coordinator:
    """WiFi and Bluetooth coordinator.

    A single task drains one inbox fed by UI commands, property deltas,
    presence changes, agent requests, timers and finished remote calls.
    Only that task touches the models.
    """

    # -------------------------------
    # region Setup
    # -------------------------------

    def __init__(self, bus: MessageBus, config: CoordinatorConfig | None = None) -> None:
        """Initialize coordinator and its bus-side collaborators."""
        self.config = config or CoordinatorConfig()
        _LOGGER.debug("Startup coordinator with %s", self.config)
        self._bus = bus
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.wifi = WifiModel()
        self.bluetooth = BluetoothModel()

        # Create clients
        iwd_proxy = DBusServiceProxy(bus, IWD_SERVICE)
        bluez_proxy = DBusServiceProxy(bus, BLUEZ_SERVICE)
        self._proxies = (iwd_proxy, bluez_proxy)
        self._iwd = IwdClient(iwd_proxy, self.config.connect_timeout)
        self._bluez = BluezClient(bluez_proxy)
        self._mailbox = CredentialMailbox(self.post, self.config.credential_timeout)
        self._agent = IwdAgentInterface(self._mailbox)
        self._pairing_mailbox = pairing_mailbox(self.post, self.config.credential_timeout)
        self._pairing_agent = BluezAgentInterface(self._pairing_mailbox)
        self._watchers = (
            PresenceWatcher(bus, iwd_proxy, self.post),
            PresenceWatcher(bus, bluez_proxy, self.post),
        )

        self._listeners: list[Callable[[Event], None]] = []
        self._waiters: dict[str, asyncio.Future[Event]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._discovery_timer: asyncio.TimerHandle | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._tags = itertools.count(1)

        self._calls: dict[type, Callable[[Any], Awaitable[Any]]] = {
            CallScan: lambda e: self._iwd.scan(e.station),
            CallConnect: lambda e: self._iwd.connect(e.network),
            CallDisconnect: lambda e: self._iwd.disconnect(e.station),
            CallForget: lambda e: self._iwd.forget(e.known_network),
            CallSetAutoConnect: lambda e: self._iwd.set_auto_connect(e.known_network, e.enabled),
            CallSetWifiPowered: lambda e: self._iwd.set_powered(e.device, e.powered),
            RefreshNetworks: lambda e: self._iwd.get_ordered_networks(e.station),
            RegisterAgent: lambda e: self._iwd.register_agent(self.config.agent_path),
            RegisterPairingAgent: lambda e: self._bluez.register_agent(self.config.pairing_agent_path),
            CallStartDiscovery: lambda e: self._bluez.start_discovery(e.adapter),
            CallStopDiscovery: lambda e: self._bluez.stop_discovery(e.adapter),
            CallSetAdapterPowered: lambda e: self._bluez.set_powered(e.adapter, e.powered),
            CallSetDiscoverable: lambda e: self._bluez.set_discoverable(e.adapter, e.discoverable),
            CallDeviceConnect: lambda e: self._bluez.connect(e.device),
            CallDeviceDisconnect: lambda e: self._bluez.disconnect(e.device),
            CallPair: lambda e: self._bluez.pair(e.device),
            CallSetTrusted: lambda e: self._bluez.set_trusted(e.device, e.trusted),
            CallSetAlias: lambda e: self._bluez.set_alias(e.device, e.alias),
            CallRemoveDevice: lambda e: self._bluez.remove_device(e.adapter, e.device),
        }

    async def start(self) -> None:
        """Export the agents, start the loop and begin watching both services."""
        self._bus.export(self.config.agent_path, self._agent)
        self._bus.export(self.config.pairing_agent_path, self._pairing_agent)
        self._loop_task = asyncio.create_task(self.run())
        for proxy in self._proxies:
            self._track(asyncio.create_task(self._forward_deltas(proxy)))
        for watcher in self._watchers:
            await watcher.start()
        _LOGGER.debug("Coordinator startup finished")

    async def stop(self) -> None:
        """Unregister the agents and cancel everything in flight."""
        _LOGGER.debug("Stopping coordinator")
        for watcher in self._watchers:
            watcher.stop()
        if self.wifi.available:
            try:
                await self._iwd.unregister_agent(self.config.agent_path)
            except WlControlError as err:
                _LOGGER.debug("Cannot unregister agent: %s", err)
        if self.bluetooth.available:
            try:
                await self._bluez.unregister_agent(self.config.pairing_agent_path)
            except WlControlError as err:
                _LOGGER.debug("Cannot unregister pairing agent: %s", err)
        self._bus.unexport(self.config.agent_path, self._agent)
        self._bus.unexport(self.config.pairing_agent_path, self._pairing_agent)
        if self._discovery_timer is not None:
            self._discovery_timer.cancel()
        tasks = list(self._tasks)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for waiter in self._waiters.values():
            if not waiter.done():
                waiter.cancel()

    # -------------------------------
    # region UI surface
    # -------------------------------

    @property
    def networks(self) -> tuple[WirelessNetwork, ...]:
        """Return the network list as the UI shows it."""
        return project_networks(self.wifi)

    @property
    def bluetooth_devices(self) -> tuple[BluetoothDevice, ...]:
        """Return the Bluetooth device list as the UI shows it."""
        return project_devices(self.bluetooth)

    def add_listener(self, listener: Callable[[Event], None]) -> Callable[[], None]:
        """Register an event listener. Returns a callable that removes it."""
        self._listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    def submit(self, command: Command) -> str:
        """Queue a command and return the tag its outcome will carry."""
        if command.tag is None:
            command = replace(command, tag=f"cmd-{next(self._tags)}")
        self.post(command)
        return command.tag

    async def execute(self, command: Command) -> Event:
        """Queue a command and wait for its terminal outcome.

        Returns:
            The CommandCompleted or Connected event.

        Raises:
            RemoteServiceError: The service rejected or failed the call.
            ServiceUnavailable: The service is not running.
            CommandConflict: The command is not valid in the current state.
            CredentialDeclined: The password prompt was declined.
        """
        if command.tag is None:
            command = replace(command, tag=f"cmd-{next(self._tags)}")
        waiter: asyncio.Future[Event] = asyncio.get_running_loop().create_future()
        self._waiters[command.tag] = waiter
        self.post(command)
        try:
            event = await waiter
        finally:
            self._waiters.pop(command.tag, None)
        if isinstance(event, ErrorRaised):
            raise _exception_for(event)
        if isinstance(event, ConnectionAbandoned):
            raise CommandConflict("Connection attempt was abandoned")
        return event

    def post(self, message: Any) -> None:
        """Put a message into the inbox."""
        self._inbox.put_nowait(message)

    # -------------------------------
    # region Loop
    # -------------------------------

    async def run(self) -> None:
        """Process the inbox until cancelled."""
        while True:
            message = await self._inbox.get()
            try:
                self._process(message)
            except Exception:
                _LOGGER.exception("Failed to process %s", type(message).__name__)

    def _process(self, message: Any) -> None:
        subsystem = self._subsystem_of(message)
        if subsystem is Subsystem.WIFI:
            transition = reduce_wifi(self.wifi, message)
            self.wifi = transition.model
        elif subsystem is Subsystem.BLUETOOTH:
            transition = reduce_bluetooth(self.bluetooth, message)
            self.bluetooth = transition.model
        else:
            _LOGGER.debug("Dropping message %s", message)
            return
        for event in transition.events:
            self._dispatch(event)
        for effect in transition.effects:
            self._perform(effect)

    @staticmethod
    def _subsystem_of(message: Any) -> Subsystem | None:
        if isinstance(message, Command):
            return message.subsystem
        if isinstance(message, EffectCompleted):
            return message.effect.subsystem
        if isinstance(message, (CredentialInbound, CredentialCancelledByService, CredentialTimedOut)):
            return Subsystem.WIFI
        if isinstance(message, (PairingInbound, PairingCancelledByService, PairingTimedOut)):
            return Subsystem.BLUETOOTH
        if isinstance(message, DiscoveryTimeout):
            return Subsystem.BLUETOOTH
        service = getattr(message, "service", None)
        if service == IWD_SERVICE:
            return Subsystem.WIFI
        if service == BLUEZ_SERVICE:
            return Subsystem.BLUETOOTH
        return None

    def _dispatch(self, event: Event) -> None:
        _LOGGER.debug("Event %s", event)
        tag = getattr(event, "tag", None)
        if isinstance(event, _TERMINAL_EVENTS) and tag in self._waiters:
            waiter = self._waiters[tag]
            if not waiter.done():
                waiter.set_result(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _LOGGER.exception("Event listener failed on %s", type(event).__name__)

    def _perform(self, effect: Any) -> None:
        if isinstance(effect, ResolveCredential):
            self._mailbox.resolve(effect.request_id, effect.outcome)
            return
        if isinstance(effect, ResolvePairing):
            self._pairing_mailbox.resolve(effect.request_id, effect.outcome)
            return
        if isinstance(effect, ScheduleDiscoveryTimeout):
            if self._discovery_timer is not None:
                self._discovery_timer.cancel()
            self._discovery_timer = asyncio.get_running_loop().call_later(
                self.config.discovery_timeout, self.post, DiscoveryTimeout(effect.token)
            )
            return
        call = self._calls[type(effect)]
        self._track(asyncio.create_task(self._call(effect, call)))

    async def _call(self, effect: Any, func: Callable[[Any], Awaitable[Any]]) -> None:
        """Run a remote call and feed its outcome back into the inbox."""
        try:
            result = await func(effect)
        except WlControlError as err:
            _LOGGER.debug("%s failed: %s", type(effect).__name__, err)
            self.post(EffectCompleted(effect, error=err))
        except Exception as err:
            _LOGGER.exception("Unexpected error in %s", type(effect).__name__)
            self.post(EffectCompleted(effect, error=RemoteServiceError(message=repr(err))))
        else:
            self.post(EffectCompleted(effect, result=result))

    async def _forward_deltas(self, proxy: DBusServiceProxy) -> None:
        async for delta in proxy.deltas():
            self.post(delta)

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


async def create_coordinator(
    config: CoordinatorConfig | None = None, bus: MessageBus | None = None
) -> Coordinator:
    """Connect to the system bus and start a coordinator."""
    if bus is None:
        bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
    coordinator = Coordinator(bus, config)
    await coordinator.start()
    return coordinator
