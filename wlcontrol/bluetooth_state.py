"""Bluetooth state machine.

Mirrors the WiFi reducer with a smaller state set. Per-device commands run
concurrently; only pairing is limited to one device at a time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
import logging
from typing import Any

from . import commands as cmd
from .bluez import describe_bluez_error, is_does_not_exist, parse_adapter, parse_device
from .const import BLUEZ_ADAPTER_INTERFACE, BLUEZ_BATTERY_INTERFACE, BLUEZ_DEVICE_INTERFACE
from .data import (
    BluetoothAdapter,
    BluetoothDevice,
    BluetoothModel,
    BluetoothState,
    CredentialOutcome,
    DeviceCategory,
    ErrorKind,
    OutcomeKind,
    PairingKind,
    PendingPairingRequest,
    Subsystem,
)
from .effects import (
    CallDeviceConnect,
    CallDeviceDisconnect,
    CallPair,
    CallRemoveDevice,
    CallSetAdapterPowered,
    CallSetAlias,
    CallSetDiscoverable,
    CallSetTrusted,
    CallStartDiscovery,
    CallStopDiscovery,
    RegisterPairingAgent,
    ResolvePairing,
    ScheduleDiscoveryTimeout,
    Transition,
)
from .events import (
    BatteryLevelChanged,
    BluetoothAdapterChanged,
    BluetoothDevicesChanged,
    CommandCompleted,
    ErrorRaised,
    PairingRequestCancelled,
    PairingRequested,
    PairingResponseApplied,
    ServiceAvailabilityChanged,
    error_event,
)
from .exceptions import RemoteServiceError
from .inputs import (
    DiscoveryTimeout,
    EffectCompleted,
    ObjectAdded,
    ObjectRemoved,
    PairingCancelledByService,
    PairingInbound,
    PairingTimedOut,
    PropertyDelta,
    Resynchronized,
    ServiceLost,
)

_LOGGER = logging.getLogger(__name__)

_CATEGORY_ORDER = {
    DeviceCategory.CONNECTED: 0,
    DeviceCategory.PAIRED: 1,
    DeviceCategory.DISCOVERED: 2,
}


def project_devices(model: BluetoothModel) -> tuple[BluetoothDevice, ...]:
    """Return the devices of the active adapter worth showing, grouped by category."""
    if model.state is BluetoothState.ABSENT:
        return ()
    devices = [
        device
        for device in model.devices.values()
        if device.adapter in (None, model.active_adapter) and not device.is_noise
    ]
    devices.sort(key=lambda d: (_CATEGORY_ORDER[d.category], d.display_name.lower(), d.path))
    return tuple(devices)


def devices_in(model: BluetoothModel, category: DeviceCategory) -> tuple[BluetoothDevice, ...]:
    """Return the visible devices of one category."""
    return tuple(d for d in project_devices(model) if d.category is category)


def _pick_adapter(adapters: dict[str, BluetoothAdapter], current: str | None) -> str | None:
    if current in adapters:
        return current
    paths = sorted(adapters)
    return paths[0] if paths else None


def _diff(before: BluetoothModel, after: BluetoothModel) -> list[Any]:
    events: list[Any] = []
    if before.available != after.available:
        events.append(ServiceAvailabilityChanged(Subsystem.BLUETOOTH, after.available))
    if (before.state, before.adapter) != (after.state, after.adapter):
        events.append(BluetoothAdapterChanged(after.state, after.adapter))
    old_devices = project_devices(before)
    new_devices = project_devices(after)
    if old_devices != new_devices:
        events.append(BluetoothDevicesChanged(new_devices))
    for path, device in after.devices.items():
        previous = before.devices.get(path)
        if previous is not None and previous.battery != device.battery:
            events.append(BatteryLevelChanged(path, device.battery))
    return events


class _Step:
    """Collects one reducer step."""

    def __init__(self, model: BluetoothModel) -> None:
        self.before = model
        self.model = model
        self.events: list[Any] = []
        self.effects: list[Any] = []

    def update(self, **changes: Any) -> None:
        self.model = replace(self.model, **changes)

    def emit(self, event: Any) -> None:
        self.events.append(event)

    def run(self, effect: Any) -> None:
        self.effects.append(effect)

    def finish(self) -> Transition[BluetoothModel]:
        return Transition(self.model, _diff(self.before, self.model) + self.events, self.effects)


def _conflict(step: _Step, message: str, tag: str | None) -> None:
    _LOGGER.debug("Rejecting command: %s", message)
    step.emit(ErrorRaised(ErrorKind.COMMAND_CONFLICT, message, Subsystem.BLUETOOTH, tag))


def _guard(step: _Step, tag: str | None, need_power: bool = True) -> bool:
    model = step.model
    if not model.available:
        step.emit(
            ErrorRaised(
                ErrorKind.SERVICE_UNAVAILABLE,
                "Bluetooth service is not running",
                Subsystem.BLUETOOTH,
                tag,
            )
        )
        return False
    if model.adapter is None:
        _conflict(step, "No Bluetooth adapter", tag)
        return False
    if need_power and not model.adapter.powered:
        _conflict(step, "Bluetooth is turned off", tag)
        return False
    return True


def _device(step: _Step, path: str, tag: str | None) -> BluetoothDevice | None:
    device = step.model.devices.get(path)
    if device is None:
        _conflict(step, "Unknown Bluetooth device", tag)
    return device


# -------------------------------
# region Service lifecycle
# -------------------------------


def _resynchronized(step: _Step, msg: Resynchronized) -> None:
    adapters = {}
    devices = {}
    for path, interfaces in msg.objects.items():
        if BLUEZ_ADAPTER_INTERFACE in interfaces:
            adapters[path] = parse_adapter(path, interfaces[BLUEZ_ADAPTER_INTERFACE])
        if BLUEZ_DEVICE_INTERFACE in interfaces:
            devices[path] = parse_device(path, interfaces)
    _LOGGER.info("BlueZ resynchronized: %d adapters, %d devices", len(adapters), len(devices))
    _release_pairing(step, "service restarted")
    step.update(
        available=True,
        adapters=adapters,
        devices=devices,
        active_adapter=_pick_adapter(adapters, step.model.active_adapter),
        pairing=None,
        discovery_token=step.model.discovery_token + 1,
    )
    step.run(RegisterPairingAgent())


def _service_lost(step: _Step, msg: ServiceLost) -> None:
    _LOGGER.warning("BlueZ is gone")
    _release_pairing(step, "service lost")
    step.model = BluetoothModel(available=False, discovery_token=step.model.discovery_token + 1)


def _object_added(step: _Step, msg: ObjectAdded) -> None:
    path = msg.path
    if BLUEZ_ADAPTER_INTERFACE in msg.interfaces:
        _LOGGER.info("Bluetooth adapter %s appeared", path)
        adapters = {
            **step.model.adapters,
            path: parse_adapter(path, msg.interfaces[BLUEZ_ADAPTER_INTERFACE]),
        }
        step.update(adapters=adapters, active_adapter=_pick_adapter(adapters, step.model.active_adapter))
    if BLUEZ_DEVICE_INTERFACE in msg.interfaces:
        step.update(devices={**step.model.devices, path: parse_device(path, msg.interfaces)})
    elif BLUEZ_BATTERY_INTERFACE in msg.interfaces and path in step.model.devices:
        level = msg.interfaces[BLUEZ_BATTERY_INTERFACE].get("Percentage")
        device = replace(step.model.devices[path], battery=level)
        step.update(devices={**step.model.devices, path: device})


def _object_removed(step: _Step, msg: ObjectRemoved) -> None:
    path = msg.path
    model = step.model
    if BLUEZ_ADAPTER_INTERFACE in msg.interfaces:
        adapters = dict(model.adapters)
        adapters.pop(path, None)
        devices = {p: d for p, d in model.devices.items() if d.adapter != path}
        step.update(adapters=adapters, devices=devices)
        if path == model.active_adapter:
            _LOGGER.warning("Active Bluetooth adapter %s was removed", path)
            step.update(active_adapter=_pick_adapter(adapters, None), pairing=None)
            _release_pairing(step, "adapter removed")
        return
    device = model.devices.get(path)
    if device is None:
        return
    if BLUEZ_DEVICE_INTERFACE in msg.interfaces:
        # the object is gone, paired or not; a device that is still paired
        # comes back through InterfacesAdded
        devices = dict(model.devices)
        devices.pop(path)
        step.update(devices=devices)
        if model.pairing == path:
            step.update(pairing=None)
        _release_pairing_for(step, path, "device removed")
    elif BLUEZ_BATTERY_INTERFACE in msg.interfaces:
        step.update(devices={**model.devices, path: replace(device, battery=None)})


def _property_changed(step: _Step, msg: PropertyDelta) -> None:
    model = step.model
    path = msg.path
    if msg.interface == BLUEZ_ADAPTER_INTERFACE and path in model.adapters:
        step.update(adapters={**model.adapters, path: parse_adapter(path, msg.properties)})
    elif msg.interface == BLUEZ_DEVICE_INTERFACE and path in model.devices:
        battery = model.devices[path].battery
        device = parse_device(path, {BLUEZ_DEVICE_INTERFACE: msg.properties})
        step.update(devices={**model.devices, path: replace(device, battery=battery)})
    elif msg.interface == BLUEZ_BATTERY_INTERFACE and path in model.devices:
        level = msg.properties.get("Percentage")
        step.update(devices={**model.devices, path: replace(model.devices[path], battery=level)})
    else:
        _LOGGER.debug("Ignoring %s.%s on %s", msg.interface, msg.name, path)


def _discovery_timeout(step: _Step, msg: DiscoveryTimeout) -> None:
    adapter = step.model.adapter
    if msg.token != step.model.discovery_token or adapter is None or not adapter.discovering:
        return
    _LOGGER.info("Stopping discovery after timeout")
    step.run(CallStopDiscovery(adapter.path))


# -------------------------------
# region Commands
# -------------------------------


def _start_discovery(step: _Step, command: cmd.StartDiscovery) -> None:
    if not _guard(step, command.tag):
        return
    if step.model.adapter.discovering:
        step.emit(CommandCompleted(command.tag))
        return
    step.run(CallStartDiscovery(step.model.active_adapter, tag=command.tag))


def _stop_discovery(step: _Step, command: cmd.StopDiscovery) -> None:
    if not _guard(step, command.tag, need_power=False):
        return
    if not step.model.adapter.discovering:
        step.emit(CommandCompleted(command.tag))
        return
    step.run(CallStopDiscovery(step.model.active_adapter, tag=command.tag))


def _connect_device(step: _Step, command: cmd.ConnectDevice) -> None:
    if _guard(step, command.tag) and _device(step, command.device, command.tag):
        step.run(CallDeviceConnect(command.device, tag=command.tag))


def _disconnect_device(step: _Step, command: cmd.DisconnectDevice) -> None:
    if _guard(step, command.tag) and _device(step, command.device, command.tag):
        step.run(CallDeviceDisconnect(command.device, tag=command.tag))


def _pair_device(step: _Step, command: cmd.PairDevice) -> None:
    if not _guard(step, command.tag):
        return
    device = _device(step, command.device, command.tag)
    if device is None:
        return
    if step.model.pairing is not None:
        _conflict(step, "Another pairing is in progress", command.tag)
        return
    if device.paired:
        step.emit(CommandCompleted(command.tag))
        return
    step.update(pairing=command.device)
    step.run(CallPair(command.device, tag=command.tag))


def _remove_device(step: _Step, command: cmd.RemoveDevice) -> None:
    if _guard(step, command.tag, need_power=False) and _device(step, command.device, command.tag):
        step.run(CallRemoveDevice(step.model.active_adapter, command.device, tag=command.tag))


def _set_trusted(step: _Step, command: cmd.SetDeviceTrusted) -> None:
    if _guard(step, command.tag, need_power=False) and _device(step, command.device, command.tag):
        step.run(CallSetTrusted(command.device, command.trusted, tag=command.tag))


def _set_alias(step: _Step, command: cmd.SetDeviceAlias) -> None:
    if _guard(step, command.tag, need_power=False) and _device(step, command.device, command.tag):
        step.run(CallSetAlias(command.device, command.alias, tag=command.tag))


def _set_powered(step: _Step, command: cmd.SetBluetoothPowered) -> None:
    if not _guard(step, command.tag, need_power=False):
        return
    if step.model.adapter.powered == command.powered:
        step.emit(CommandCompleted(command.tag))
        return
    step.run(CallSetAdapterPowered(step.model.active_adapter, command.powered, tag=command.tag))


def _set_discoverable(step: _Step, command: cmd.SetDiscoverable) -> None:
    if not _guard(step, command.tag):
        return
    if step.model.adapter.discoverable == command.discoverable:
        step.emit(CommandCompleted(command.tag))
        return
    step.run(
        CallSetDiscoverable(step.model.active_adapter, command.discoverable, tag=command.tag)
    )


# -------------------------------
# region Pairing prompts
# -------------------------------


def _release_pairing(step: _Step, reason: str) -> None:
    pending = step.model.pending_pairing
    if pending is None:
        return
    if pending.kind.needs_answer:
        step.run(ResolvePairing(pending.request_id, CredentialOutcome.cancelled(reason)))
    step.emit(PairingRequestCancelled(pending.request_id, pending.device, reason))
    step.update(pending_pairing=None)


def _release_pairing_for(step: _Step, device: str, reason: str) -> None:
    pending = step.model.pending_pairing
    if pending is not None and pending.device == device:
        _release_pairing(step, reason)


def _pairing_inbound(step: _Step, msg: PairingInbound) -> None:
    pending = step.model.pending_pairing
    if pending is not None and pending.kind.needs_answer:
        if msg.kind.needs_answer:
            _LOGGER.warning(
                "Rejecting %s for %s, request %s for %s is still open",
                msg.kind,
                msg.device,
                pending.request_id,
                pending.device,
            )
            step.run(ResolvePairing(msg.request_id, CredentialOutcome.busy()))
            return
        # the open question stays; the code is still shown
        step.emit(PairingRequested(msg.request_id, msg.device, msg.kind, msg.code))
        return
    _LOGGER.info("Pairing %s for %s", msg.kind, msg.device)
    # a code still on screen is closed before the next prompt
    _release_pairing(step, "replaced")
    step.update(pending_pairing=PendingPairingRequest(msg.request_id, msg.device, msg.kind, msg.code))
    step.emit(PairingRequested(msg.request_id, msg.device, msg.kind, msg.code))


def _pairing_closed(step: _Step, request_id: int, reason: str) -> None:
    pending = step.model.pending_pairing
    if pending is None or pending.request_id != request_id:
        return
    step.update(pending_pairing=None)
    step.emit(PairingRequestCancelled(request_id, pending.device, reason))


def _pairing_cancelled(step: _Step, msg: PairingCancelledByService) -> None:
    _pairing_closed(step, msg.request_id, msg.reason)


def _pairing_timed_out(step: _Step, msg: PairingTimedOut) -> None:
    _pairing_closed(step, msg.request_id, "timeout")


def _answer_pairing(
    step: _Step,
    tag: str | None,
    kinds: tuple[PairingKind, ...],
    outcome: CredentialOutcome,
) -> None:
    pending = step.model.pending_pairing
    if pending is None or pending.kind not in kinds:
        _conflict(step, "No pairing prompt is waiting for this answer", tag)
        return
    if pending.kind.needs_answer:
        step.run(ResolvePairing(pending.request_id, outcome))
    step.update(pending_pairing=None)
    declined = outcome.kind is OutcomeKind.DECLINED
    step.emit(PairingResponseApplied(pending.request_id, pending.device, declined=declined))
    step.emit(CommandCompleted(tag))


def _pairing_response(step: _Step, command: cmd.PairingResponse) -> None:
    # a display prompt can only be dismissed
    outcome = CredentialOutcome.accepted() if command.accept else CredentialOutcome.declined()
    kinds = (
        PairingKind.CONFIRM_PASSKEY,
        PairingKind.AUTHORIZE,
        PairingKind.DISPLAY_PASSKEY,
        PairingKind.DISPLAY_PIN,
    )
    _answer_pairing(step, command.tag, kinds, outcome)


def _pairing_pin_response(step: _Step, command: cmd.PairingPinResponse) -> None:
    if command.pin is None:
        outcome = CredentialOutcome.declined()
    else:
        outcome = CredentialOutcome.answer(command.pin)
    _answer_pairing(step, command.tag, (PairingKind.REQUEST_PIN,), outcome)


def _pairing_passkey_response(step: _Step, command: cmd.PairingPasskeyResponse) -> None:
    if command.passkey is None:
        outcome = CredentialOutcome.declined()
    else:
        outcome = CredentialOutcome.answer(str(command.passkey))
    _answer_pairing(step, command.tag, (PairingKind.REQUEST_PASSKEY,), outcome)


# -------------------------------
# region Call results
# -------------------------------


def _effect_completed(step: _Step, msg: EffectCompleted) -> None:
    effect = msg.effect
    error = msg.error
    if isinstance(effect, CallPair):
        step.update(pairing=None)
        _release_pairing_for(step, effect.device, "pairing finished")
        if error is None:
            step.run(CallSetTrusted(effect.device, True))
    if isinstance(effect, RegisterPairingAgent):
        if error is not None:
            _LOGGER.error("Cannot register pairing agent: %s", error)
            event = error_event(error, Subsystem.BLUETOOTH, None, describe_bluez_error)
            step.emit(replace(event, message=f"Cannot register pairing agent: {event.message}"))
        return
    if isinstance(effect, CallRemoveDevice):
        if error is None or (isinstance(error, RemoteServiceError) and is_does_not_exist(error)):
            devices = dict(step.model.devices)
            devices.pop(effect.device, None)
            step.update(devices=devices)
            error = None
    if error is not None:
        _LOGGER.info("%s failed: %s", type(effect).__name__, error)
        step.emit(error_event(error, Subsystem.BLUETOOTH, effect.tag, describe_bluez_error))
        return
    if isinstance(effect, CallStartDiscovery):
        token = step.model.discovery_token + 1
        step.update(discovery_token=token)
        step.run(ScheduleDiscoveryTimeout(token))
    if effect.tag is not None:
        step.emit(CommandCompleted(effect.tag))


_HANDLERS: dict[type, Callable[[_Step, Any], None]] = {
    Resynchronized: _resynchronized,
    ServiceLost: _service_lost,
    ObjectAdded: _object_added,
    ObjectRemoved: _object_removed,
    PropertyDelta: _property_changed,
    DiscoveryTimeout: _discovery_timeout,
    EffectCompleted: _effect_completed,
    PairingInbound: _pairing_inbound,
    PairingCancelledByService: _pairing_cancelled,
    PairingTimedOut: _pairing_timed_out,
    cmd.StartDiscovery: _start_discovery,
    cmd.StopDiscovery: _stop_discovery,
    cmd.ConnectDevice: _connect_device,
    cmd.DisconnectDevice: _disconnect_device,
    cmd.PairDevice: _pair_device,
    cmd.RemoveDevice: _remove_device,
    cmd.SetDeviceTrusted: _set_trusted,
    cmd.SetDeviceAlias: _set_alias,
    cmd.SetBluetoothPowered: _set_powered,
    cmd.SetDiscoverable: _set_discoverable,
    cmd.PairingResponse: _pairing_response,
    cmd.PairingPinResponse: _pairing_pin_response,
    cmd.PairingPasskeyResponse: _pairing_passkey_response,
}


def reduce_bluetooth(model: BluetoothModel, message: Any) -> Transition[BluetoothModel]:
    """Apply one inbox message to the Bluetooth model."""
    handler = _HANDLERS.get(type(message))
    if handler is None:
        _LOGGER.debug("No Bluetooth handler for %s", type(message).__name__)
        return Transition(model)
    step = _Step(model)
    handler(step, message)
    return step.finish()
