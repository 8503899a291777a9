"""WiFi state machine.

`reduce_wifi(model, message)` is a pure function. It returns the next
model, the events for the UI and the effects the coordinator must run.
Races between command results and property signals are resolved here,
so every ordering can be replayed in a test.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
import logging
from typing import Any

from . import commands as cmd
from .const import (
    IWD_DEVICE_INTERFACE,
    IWD_KNOWN_NETWORK_INTERFACE,
    IWD_NETWORK_INTERFACE,
    IWD_STATION_INTERFACE,
)
from .data import (
    ConnectAttempt,
    CredentialOutcome,
    ErrorKind,
    PendingCredentialRequest,
    StationState,
    StationStatus,
    Subsystem,
    WifiDevice,
    WifiModel,
    WirelessNetwork,
)
from .effects import (
    CallConnect,
    CallDisconnect,
    CallForget,
    CallScan,
    CallSetAutoConnect,
    CallSetWifiPowered,
    RefreshNetworks,
    RegisterAgent,
    ResolveCredential,
    Transition,
)
from .events import (
    CommandCompleted,
    Connected,
    Connecting,
    ConnectionAbandoned,
    CredentialRequestCancelled,
    CredentialRequested,
    CredentialResponseApplied,
    Disconnected,
    ErrorRaised,
    KnownStatusChanged,
    NetworksChanged,
    ScanningChanged,
    ServiceAvailabilityChanged,
    WifiAdaptersChanged,
    WifiPoweredChanged,
    WifiStateChanged,
    error_event,
)
from .exceptions import WlControlError
from .inputs import (
    CredentialCancelledByService,
    CredentialInbound,
    CredentialTimedOut,
    EffectCompleted,
    ObjectAdded,
    ObjectRemoved,
    PropertyDelta,
    Resynchronized,
    ServiceLost,
)
from .iwd import (
    describe_iwd_error,
    parse_device,
    parse_known_network,
    parse_network,
    parse_station,
)

_LOGGER = logging.getLogger(__name__)

# Station.State values meaning the link is up
_LINK_UP = ("connected", "roaming")


# -------------------------------
# region Derived views
# -------------------------------


def derive_state(model: WifiModel) -> tuple[StationState, str | None]:
    """Return the station state and its network from the model's facts."""
    if not model.available or model.active_device not in model.devices:
        return StationState.NO_ADAPTER, None
    station = model.station
    if station is None:
        return StationState.IDLE, None
    if model.disconnecting:
        return StationState.DISCONNECTING, station.connected_network
    attempt = model.attempt
    if attempt is not None:
        if station.state in _LINK_UP and station.connected_network == attempt.network_path:
            return StationState.CONNECTED, attempt.network_path
        return StationState.CONNECTING, attempt.network_path
    if station.state in _LINK_UP and station.connected_network:
        return StationState.CONNECTED, station.connected_network
    if station.state == "connecting":
        return StationState.CONNECTING, station.connected_network
    if station.state == "disconnecting":
        return StationState.DISCONNECTING, station.connected_network
    if station.scanning:
        return StationState.SCANNING, None
    return StationState.IDLE, None


def project_networks(model: WifiModel) -> tuple[WirelessNetwork, ...]:
    """Return the network list the UI shows, strongest first, offline known last."""
    if model.state is StationState.NO_ADAPTER:
        return ()
    visible = []
    referenced = set()
    for obj in model.network_objects.values():
        if obj.device != model.active_device:
            continue
        known = model.known.get(obj.known_network or "")
        if known is not None:
            referenced.add(known.path)
        visible.append(
            WirelessNetwork(
                path=obj.path,
                name=obj.name,
                security=obj.security,
                signal_dbm=model.signals.get(obj.path),
                connected=model.state is StationState.CONNECTED
                and model.current_network == obj.path,
                connecting=model.state is StationState.CONNECTING
                and model.current_network == obj.path,
                known=known is not None,
                auto_connect=known.auto_connect if known else False,
                known_path=known.path if known else None,
            )
        )
    visible.sort(key=lambda n: (n.signal_dbm is None, -(n.signal_dbm or 0), n.name))
    offline = [
        WirelessNetwork(
            path=known.path,
            name=known.name,
            security=known.security,
            known=True,
            auto_connect=known.auto_connect,
            known_path=known.path,
            offline=True,
        )
        for known in sorted(model.known.values(), key=lambda k: k.name)
        if known.path not in referenced
    ]
    return tuple(visible + offline)


def _sorted_devices(model: WifiModel) -> tuple[WifiDevice, ...]:
    return tuple(model.devices[path] for path in sorted(model.devices))


def _pick_device(
    devices: dict[str, WifiDevice],
    stations: dict[str, StationStatus],
    current: str | None,
) -> str | None:
    """Keep the current device, else prefer one that is already connected."""
    if current in devices:
        return current
    paths = sorted(devices)
    for path in paths:
        station = stations.get(path)
        if station is not None and station.state in _LINK_UP:
            return path
    return paths[0] if paths else None


def _diff(before: WifiModel, after: WifiModel, connected_tag: str | None) -> list[Any]:
    events: list[Any] = []
    if before.available != after.available:
        events.append(ServiceAvailabilityChanged(Subsystem.WIFI, after.available))
    if before.devices != after.devices or before.active_device != after.active_device:
        events.append(WifiAdaptersChanged(_sorted_devices(after), after.active_device))
    if after.active_device is not None and (
        before.active_device != after.active_device or before.powered != after.powered
    ):
        events.append(WifiPoweredChanged(after.active_device, after.powered))
    if before.scanning != after.scanning:
        events.append(ScanningChanged(after.scanning))

    old = (before.state, before.current_network)
    new = (after.state, after.current_network)
    if old != new:
        events.append(WifiStateChanged(after.state, after.current_network))
        linked = (StationState.CONNECTED, StationState.DISCONNECTING)
        if before.state in linked and before.current_network and not (
            after.state in linked and after.current_network == before.current_network
        ):
            events.append(Disconnected(before.current_network))
        if after.state is StationState.CONNECTING and after.current_network:
            tag = after.attempt.tag if after.attempt else None
            events.append(Connecting(after.current_network, tag))
        resumed = (
            before.state is StationState.DISCONNECTING
            and before.current_network == after.current_network
        )
        if after.state is StationState.CONNECTED and after.current_network and not resumed:
            events.append(Connected(after.current_network, connected_tag))

    old_networks = project_networks(before)
    new_networks = project_networks(after)
    if old_networks != new_networks:
        events.append(NetworksChanged(new_networks))
        was_known = {n.path: n.known for n in old_networks if not n.offline}
        for network in new_networks:
            if network.offline or network.path not in was_known:
                continue
            if was_known[network.path] != network.known:
                events.append(KnownStatusChanged(network.path, network.known))
    return events


# -------------------------------
# region Step builder
# -------------------------------


class _Step:
    """Collects one reducer step.

    Handlers record facts and explicit events; checkpoint() settles the
    derived state and prepends the change events it implies.
    """

    def __init__(self, model: WifiModel) -> None:
        self.before = model
        self.model = model
        self.events: list[Any] = []
        self.effects: list[Any] = []
        self._explicit: list[Any] = []

    def update(self, **changes: Any) -> None:
        self.model = replace(self.model, **changes)

    def emit(self, event: Any) -> None:
        self._explicit.append(event)

    def run(self, effect: Any) -> None:
        self.effects.append(effect)

    def checkpoint(self) -> None:
        model = self.model
        station = model.station
        if model.disconnecting and (station is None or station.state == "disconnected"):
            model = replace(model, disconnecting=False)
        state, network = derive_state(model)
        attempt = model.attempt
        connected_tag = None
        if state is StationState.CONNECTED and attempt is not None:
            connected_tag = attempt.tag
            attempt = None
        self.model = replace(model, state=state, current_network=network, attempt=attempt)
        self.events.extend(_diff(self.before, self.model, connected_tag))
        self.events.extend(self._explicit)
        self._explicit = []
        self.before = self.model

    def finish(self) -> Transition[WifiModel]:
        self.checkpoint()
        return Transition(self.model, self.events, self.effects)


def _conflict(step: _Step, message: str, tag: str | None) -> None:
    _LOGGER.debug("Rejecting command: %s", message)
    step.emit(ErrorRaised(ErrorKind.COMMAND_CONFLICT, message, Subsystem.WIFI, tag))


def _guard(step: _Step, tag: str | None, need_station: bool = True) -> bool:
    """Emit the rejection for commands the current state cannot serve."""
    model = step.model
    if not model.available:
        step.emit(
            ErrorRaised(
                ErrorKind.SERVICE_UNAVAILABLE, "WiFi service is not running", Subsystem.WIFI, tag
            )
        )
        return False
    if model.active_device is None:
        _conflict(step, "No WiFi adapter", tag)
        return False
    if need_station and model.station is None:
        _conflict(step, "WiFi is turned off", tag)
        return False
    return True


def _abandon_attempt(step: _Step) -> None:
    attempt = step.model.attempt
    if attempt is None:
        return
    _LOGGER.debug("Abandoning connect attempt %s", attempt.attempt_id)
    step.emit(ConnectionAbandoned(attempt.network_path, attempt.tag))
    step.update(attempt=None)


def _cancel_attempt(step: _Step) -> None:
    """Close the attempt a disconnect or power-off supersedes.

    The late Connect reply no longer matches an attempt and is dropped.
    """
    attempt = step.model.attempt
    if attempt is None:
        return
    _LOGGER.debug("Cancelling connect attempt %s", attempt.attempt_id)
    pending = step.model.pending_credential
    if pending is not None and pending.network_path == attempt.network_path:
        _release_credential(step, "connection cancelled")
    step.update(attempt=None)
    step.emit(
        ErrorRaised(ErrorKind.COMMAND_CONFLICT, "Connection cancelled", Subsystem.WIFI, attempt.tag)
    )


def _release_credential(step: _Step, reason: str) -> None:
    pending = step.model.pending_credential
    if pending is None:
        return
    step.run(ResolveCredential(pending.request_id, CredentialOutcome.cancelled(reason)))
    step.emit(CredentialRequestCancelled(pending.request_id, pending.network_path, reason))
    step.update(pending_credential=None)


def _refresh(step: _Step) -> None:
    station = step.model.station
    if station is not None:
        step.run(RefreshNetworks(station.path))


def _known_path_for(model: WifiModel, network: str) -> str | None:
    if network in model.known:
        return network
    obj = model.network_objects.get(network)
    if obj is not None and obj.known_network in model.known:
        return obj.known_network
    return None


# -------------------------------
# region Service lifecycle
# -------------------------------


def _resynchronized(step: _Step, msg: Resynchronized) -> None:
    devices, stations, networks, known = {}, {}, {}, {}
    for path, interfaces in msg.objects.items():
        if IWD_DEVICE_INTERFACE in interfaces:
            devices[path] = parse_device(path, interfaces[IWD_DEVICE_INTERFACE])
        if IWD_STATION_INTERFACE in interfaces:
            stations[path] = parse_station(path, interfaces[IWD_STATION_INTERFACE])
        if IWD_NETWORK_INTERFACE in interfaces:
            networks[path] = parse_network(path, interfaces[IWD_NETWORK_INTERFACE])
        if IWD_KNOWN_NETWORK_INTERFACE in interfaces:
            known[path] = parse_known_network(path, interfaces[IWD_KNOWN_NETWORK_INTERFACE])
    _LOGGER.info(
        "iwd resynchronized: %d devices, %d networks, %d known",
        len(devices),
        len(networks),
        len(known),
    )
    _abandon_attempt(step)
    _release_credential(step, "service restarted")
    step.update(
        available=True,
        devices=devices,
        stations=stations,
        network_objects=networks,
        known=known,
        signals={},
        disconnecting=False,
        active_device=_pick_device(devices, stations, step.model.active_device),
    )
    step.run(RegisterAgent())
    _refresh(step)


def _service_lost(step: _Step, msg: ServiceLost) -> None:
    _LOGGER.warning("iwd is gone")
    _abandon_attempt(step)
    _release_credential(step, "service lost")
    step.model = WifiModel(available=False, next_attempt_id=step.model.next_attempt_id)


def _object_added(step: _Step, msg: ObjectAdded) -> None:
    model = step.model
    path = msg.path
    interfaces = msg.interfaces
    if IWD_DEVICE_INTERFACE in interfaces:
        _LOGGER.info("WiFi device %s appeared", path)
        step.update(devices={**model.devices, path: parse_device(path, interfaces[IWD_DEVICE_INTERFACE])})
    if IWD_STATION_INTERFACE in interfaces:
        station = parse_station(path, interfaces[IWD_STATION_INTERFACE])
        step.update(stations={**step.model.stations, path: station})
    if IWD_NETWORK_INTERFACE in interfaces:
        network = parse_network(path, interfaces[IWD_NETWORK_INTERFACE])
        step.update(network_objects={**step.model.network_objects, path: network})
    if IWD_KNOWN_NETWORK_INTERFACE in interfaces:
        known = parse_known_network(path, interfaces[IWD_KNOWN_NETWORK_INTERFACE])
        step.update(known={**step.model.known, path: known})

    if step.model.active_device is None:
        active = _pick_device(step.model.devices, step.model.stations, None)
        if active is not None:
            step.update(active_device=active)
            _refresh(step)
    elif IWD_STATION_INTERFACE in interfaces and path == step.model.active_device:
        _refresh(step)


def _object_removed(step: _Step, msg: ObjectRemoved) -> None:
    path = msg.path
    if IWD_NETWORK_INTERFACE in msg.interfaces:
        networks = dict(step.model.network_objects)
        networks.pop(path, None)
        signals = dict(step.model.signals)
        signals.pop(path, None)
        step.update(network_objects=networks, signals=signals)
    if IWD_KNOWN_NETWORK_INTERFACE in msg.interfaces:
        known = dict(step.model.known)
        known.pop(path, None)
        step.update(known=known)
    if IWD_STATION_INTERFACE in msg.interfaces:
        stations = dict(step.model.stations)
        stations.pop(path, None)
        if path == step.model.active_device:
            _abandon_attempt(step)
            step.update(signals={})
        step.update(stations=stations)
    if IWD_DEVICE_INTERFACE in msg.interfaces:
        _device_removed(step, path)


def _device_removed(step: _Step, path: str) -> None:
    model = step.model
    devices = dict(model.devices)
    devices.pop(path, None)
    stations = dict(model.stations)
    stations.pop(path, None)
    networks = {p: n for p, n in model.network_objects.items() if n.device != path}
    step.update(devices=devices, stations=stations, network_objects=networks)
    if path != model.active_device:
        return
    _LOGGER.warning("Active WiFi device %s was removed", path)
    _abandon_attempt(step)
    _release_credential(step, "adapter removed")
    step.update(active_device=None, signals={}, disconnecting=False)
    step.checkpoint()
    active = _pick_device(devices, stations, None)
    if active is not None:
        _LOGGER.info("Switching to WiFi device %s", active)
        step.update(active_device=active)
        _refresh(step)


def _property_changed(step: _Step, msg: PropertyDelta) -> None:
    model = step.model
    path = msg.path
    if msg.interface == IWD_DEVICE_INTERFACE and path in model.devices:
        step.update(devices={**model.devices, path: parse_device(path, msg.properties)})
    elif msg.interface == IWD_STATION_INTERFACE and path in model.stations:
        old = model.stations[path]
        new = parse_station(path, msg.properties)
        step.update(stations={**model.stations, path: new})
        if path == model.active_device:
            _station_changed(step, old, new)
    elif msg.interface == IWD_NETWORK_INTERFACE and path in model.network_objects:
        network = parse_network(path, msg.properties)
        step.update(network_objects={**model.network_objects, path: network})
    elif msg.interface == IWD_KNOWN_NETWORK_INTERFACE and path in model.known:
        step.update(known={**model.known, path: parse_known_network(path, msg.properties)})
    else:
        _LOGGER.debug("Ignoring %s.%s on %s", msg.interface, msg.name, path)


def _station_changed(step: _Step, old: StationStatus, new: StationStatus) -> None:
    if old.scanning and not new.scanning:
        _refresh(step)
    if new.state in _LINK_UP and old.state not in _LINK_UP:
        _refresh(step)
    attempt = step.model.attempt
    if attempt is not None and attempt.call_done and new.state == "disconnected":
        # Connect returned but the link never came up
        step.update(attempt=None)
        step.emit(
            ErrorRaised(ErrorKind.REMOTE_SERVICE, "Connection failed", Subsystem.WIFI, attempt.tag)
        )


# -------------------------------
# region Credentials
# -------------------------------


def _credential_inbound(step: _Step, msg: CredentialInbound) -> None:
    pending = step.model.pending_credential
    if pending is not None:
        _LOGGER.warning(
            "Rejecting passphrase request for %s, request %s for %s is still open",
            msg.network_path,
            pending.request_id,
            pending.network_path,
        )
        step.run(ResolveCredential(msg.request_id, CredentialOutcome.busy()))
        return
    network = step.model.network_objects.get(msg.network_path)
    name = network.name if network is not None else msg.network_path.rsplit("/", 1)[-1]
    step.update(
        pending_credential=PendingCredentialRequest(msg.request_id, msg.network_path, name)
    )
    step.emit(CredentialRequested(msg.request_id, msg.network_path, name))


def _credential_closed(step: _Step, request_id: int, reason: str) -> None:
    pending = step.model.pending_credential
    if pending is None or pending.request_id != request_id:
        return
    step.update(pending_credential=None)
    step.emit(CredentialRequestCancelled(request_id, pending.network_path, reason))


def _credential_cancelled(step: _Step, msg: CredentialCancelledByService) -> None:
    _credential_closed(step, msg.request_id, msg.reason)


def _credential_timed_out(step: _Step, msg: CredentialTimedOut) -> None:
    _credential_closed(step, msg.request_id, "timeout")


# -------------------------------
# region Commands
# -------------------------------


def _start_scan(step: _Step, command: cmd.StartScan) -> None:
    if not _guard(step, command.tag):
        return
    if step.model.scanning:
        _conflict(step, "A scan is already running", command.tag)
        return
    step.run(CallScan(step.model.station.path, tag=command.tag))


def _connect(step: _Step, command: cmd.ConnectNetwork) -> None:
    if not _guard(step, command.tag):
        return
    model = step.model
    if model.state is StationState.CONNECTING:
        _conflict(step, "Another connection attempt is in progress", command.tag)
        return
    if model.state is StationState.DISCONNECTING:
        _conflict(step, "Disconnect in progress", command.tag)
        return
    network = model.network_objects.get(command.network)
    if network is None or network.device != model.active_device:
        _conflict(step, "Network is not in range", command.tag)
        return
    if model.state is StationState.CONNECTED and model.current_network == command.network:
        step.emit(Connected(command.network, command.tag))
        return
    attempt = ConnectAttempt(model.next_attempt_id, command.network, command.tag)
    step.update(attempt=attempt, next_attempt_id=model.next_attempt_id + 1)
    step.run(CallConnect(attempt.attempt_id, command.network, tag=command.tag))


def _disconnect(step: _Step, command: cmd.DisconnectNetwork) -> None:
    if not _guard(step, command.tag):
        return
    if step.model.state in (
        StationState.IDLE,
        StationState.SCANNING,
        StationState.DISCONNECTING,
    ):
        step.emit(CommandCompleted(command.tag))
        return
    _cancel_attempt(step)
    step.update(disconnecting=True)
    step.run(CallDisconnect(step.model.station.path, tag=command.tag))


def _forget(step: _Step, command: cmd.ForgetNetwork | cmd.ForgetKnownNetwork) -> None:
    if not step.model.available:
        _guard(step, command.tag)
        return
    if isinstance(command, cmd.ForgetKnownNetwork):
        known_path = command.network if command.network in step.model.known else None
    else:
        known_path = _known_path_for(step.model, command.network)
    if known_path is None:
        _conflict(step, "Network is not saved", command.tag)
        return
    step.run(CallForget(known_path, tag=command.tag))


def _set_auto_connect(step: _Step, command: cmd.SetAutoConnect) -> None:
    if not step.model.available:
        _guard(step, command.tag)
        return
    known_path = _known_path_for(step.model, command.network)
    if known_path is None:
        _conflict(step, "Network is not saved", command.tag)
        return
    if step.model.known[known_path].auto_connect == command.enabled:
        step.emit(CommandCompleted(command.tag))
        return
    step.run(CallSetAutoConnect(known_path, command.enabled, tag=command.tag))


def _set_powered(step: _Step, command: cmd.SetWifiPowered) -> None:
    if not _guard(step, command.tag, need_station=False):
        return
    model = step.model
    if model.powered == command.powered:
        step.emit(CommandCompleted(command.tag))
        return
    if not command.powered and model.state in (StationState.CONNECTED, StationState.CONNECTING):
        _cancel_attempt(step)
        step.update(disconnecting=True)
    step.run(CallSetWifiPowered(model.active_device, command.powered, tag=command.tag))


def _select_adapter(step: _Step, command: cmd.SelectAdapter) -> None:
    model = step.model
    if not model.available:
        _guard(step, command.tag)
        return
    if command.device not in model.devices:
        _conflict(step, "Unknown WiFi adapter", command.tag)
        return
    if command.device == model.active_device:
        step.emit(CommandCompleted(command.tag))
        return
    if model.state in (StationState.CONNECTING, StationState.DISCONNECTING):
        _conflict(step, "Cannot switch adapters while a connection is changing", command.tag)
        return
    _LOGGER.info("Switching to WiFi device %s", command.device)
    step.update(active_device=command.device, signals={})
    _refresh(step)
    step.emit(CommandCompleted(command.tag))


def _submit_passphrase(step: _Step, command: cmd.SubmitPassphrase) -> None:
    pending = step.model.pending_credential
    if pending is None:
        _conflict(step, "No password request is open", command.tag)
        return
    step.run(ResolveCredential(pending.request_id, CredentialOutcome.answer(command.passphrase)))
    step.update(pending_credential=None)
    step.emit(CredentialResponseApplied(pending.request_id, pending.network_path))
    step.emit(CommandCompleted(command.tag))


def _decline_credential(step: _Step, command: cmd.DeclineCredential) -> None:
    pending = step.model.pending_credential
    if pending is None:
        _conflict(step, "No password request is open", command.tag)
        return
    step.run(ResolveCredential(pending.request_id, CredentialOutcome.declined()))
    step.update(pending_credential=None)
    step.emit(CredentialResponseApplied(pending.request_id, pending.network_path, declined=True))
    attempt = step.model.attempt
    if attempt is not None and attempt.network_path == pending.network_path:
        step.update(attempt=None)
        step.emit(
            ErrorRaised(
                ErrorKind.CREDENTIAL_DECLINED,
                "Connection cancelled",
                Subsystem.WIFI,
                attempt.tag,
            )
        )
    step.emit(CommandCompleted(command.tag))


# -------------------------------
# region Call results
# -------------------------------


def _effect_completed(step: _Step, msg: EffectCompleted) -> None:
    effect = msg.effect
    error = msg.error
    if isinstance(effect, CallConnect):
        _connect_completed(step, effect, error)
    elif isinstance(effect, RefreshNetworks):
        _networks_refreshed(step, effect, msg.result, error)
    elif isinstance(effect, RegisterAgent):
        if error is not None:
            _LOGGER.error("Cannot register passphrase agent: %s", error)
            event = error_event(error, Subsystem.WIFI, None, describe_iwd_error)
            step.emit(replace(event, message=f"Cannot register password agent: {event.message}"))
    elif error is not None:
        if isinstance(effect, (CallDisconnect, CallSetWifiPowered)):
            step.update(disconnecting=False)
        step.emit(error_event(error, Subsystem.WIFI, effect.tag, describe_iwd_error))
    elif effect.tag is not None:
        step.emit(CommandCompleted(effect.tag))


def _connect_completed(
    step: _Step, effect: CallConnect, error: WlControlError | None
) -> None:
    attempt = step.model.attempt
    if attempt is None or attempt.attempt_id != effect.attempt_id:
        _LOGGER.debug("Ignoring result of connect attempt %s", effect.attempt_id)
        return
    if error is None:
        # Connected is reported by the station signal
        step.update(attempt=replace(attempt, call_done=True))
        return
    _LOGGER.info("Connecting to %s failed: %s", attempt.network_path, error)
    step.update(attempt=None)
    step.emit(error_event(error, Subsystem.WIFI, attempt.tag, describe_iwd_error))


def _networks_refreshed(
    step: _Step,
    effect: RefreshNetworks,
    result: list[tuple[str, int]] | None,
    error: WlControlError | None,
) -> None:
    if error is not None:
        _LOGGER.warning("Cannot list networks: %s", error)
        return
    if step.model.station is None or step.model.station.path != effect.station:
        return
    step.update(signals=dict(result or []))


_HANDLERS: dict[type, Callable[[_Step, Any], None]] = {
    Resynchronized: _resynchronized,
    ServiceLost: _service_lost,
    ObjectAdded: _object_added,
    ObjectRemoved: _object_removed,
    PropertyDelta: _property_changed,
    CredentialInbound: _credential_inbound,
    CredentialCancelledByService: _credential_cancelled,
    CredentialTimedOut: _credential_timed_out,
    EffectCompleted: _effect_completed,
    cmd.StartScan: _start_scan,
    cmd.ConnectNetwork: _connect,
    cmd.DisconnectNetwork: _disconnect,
    cmd.ForgetNetwork: _forget,
    cmd.ForgetKnownNetwork: _forget,
    cmd.SetAutoConnect: _set_auto_connect,
    cmd.SetWifiPowered: _set_powered,
    cmd.SelectAdapter: _select_adapter,
    cmd.SubmitPassphrase: _submit_passphrase,
    cmd.DeclineCredential: _decline_credential,
}


def reduce_wifi(model: WifiModel, message: Any) -> Transition[WifiModel]:
    """Apply one inbox message to the WiFi model."""
    handler = _HANDLERS.get(type(message))
    if handler is None:
        _LOGGER.debug("No WiFi handler for %s", type(message).__name__)
        return Transition(model)
    step = _Step(model)
    handler(step, message)
    return step.finish()
