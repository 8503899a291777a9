"""Side effects requested by the state reducers.

Reducers never touch the bus. They return effects and the coordinator
performs them; remote calls re-enter the inbox as EffectCompleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .data import CredentialOutcome, Subsystem

ModelT = TypeVar("ModelT")


@dataclass
class Transition(Generic[ModelT]):
    """Result of one reducer step."""

    model: ModelT
    events: list[Any] = field(default_factory=list)
    effects: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class Effect:
    """Base class for effects."""

    tag: str | None = field(default=None, kw_only=True)

    subsystem = Subsystem.WIFI


# -------------------------------
# region WiFi
# -------------------------------


@dataclass(frozen=True)
class CallScan(Effect):
    """Station.Scan."""

    station: str


@dataclass(frozen=True)
class CallConnect(Effect):
    """Network.Connect for a numbered attempt."""

    attempt_id: int
    network: str


@dataclass(frozen=True)
class CallDisconnect(Effect):
    """Station.Disconnect."""

    station: str


@dataclass(frozen=True)
class CallForget(Effect):
    """KnownNetwork.Forget."""

    known_network: str


@dataclass(frozen=True)
class CallSetAutoConnect(Effect):
    """Set KnownNetwork.AutoConnect."""

    known_network: str
    enabled: bool


@dataclass(frozen=True)
class CallSetWifiPowered(Effect):
    """Set Device.Powered."""

    device: str
    powered: bool


@dataclass(frozen=True)
class RefreshNetworks(Effect):
    """Station.GetOrderedNetworks."""

    station: str


@dataclass(frozen=True)
class RegisterAgent(Effect):
    """AgentManager.RegisterAgent."""


@dataclass(frozen=True)
class ResolveCredential(Effect):
    """Hand an outcome to the agent call waiting on a request."""

    request_id: int
    outcome: CredentialOutcome


# -------------------------------
# region Bluetooth
# -------------------------------


@dataclass(frozen=True)
class BluetoothEffect(Effect):
    """Base class for Bluetooth effects."""

    subsystem = Subsystem.BLUETOOTH


@dataclass(frozen=True)
class CallStartDiscovery(BluetoothEffect):
    """Adapter1.StartDiscovery."""

    adapter: str


@dataclass(frozen=True)
class CallStopDiscovery(BluetoothEffect):
    """Adapter1.StopDiscovery."""

    adapter: str


@dataclass(frozen=True)
class ScheduleDiscoveryTimeout(BluetoothEffect):
    """Post DiscoveryTimeout(token) after a delay."""

    token: int


@dataclass(frozen=True)
class CallSetAdapterPowered(BluetoothEffect):
    """Set Adapter1.Powered."""

    adapter: str
    powered: bool


@dataclass(frozen=True)
class CallSetDiscoverable(BluetoothEffect):
    """Set Adapter1.Discoverable."""

    adapter: str
    discoverable: bool


@dataclass(frozen=True)
class CallDeviceConnect(BluetoothEffect):
    """Device1.Connect."""

    device: str


@dataclass(frozen=True)
class CallDeviceDisconnect(BluetoothEffect):
    """Device1.Disconnect."""

    device: str


@dataclass(frozen=True)
class CallPair(BluetoothEffect):
    """Device1.Pair."""

    device: str


@dataclass(frozen=True)
class CallSetTrusted(BluetoothEffect):
    """Set Device1.Trusted."""

    device: str
    trusted: bool


@dataclass(frozen=True)
class CallSetAlias(BluetoothEffect):
    """Set Device1.Alias."""

    device: str
    alias: str


@dataclass(frozen=True)
class CallRemoveDevice(BluetoothEffect):
    """Adapter1.RemoveDevice."""

    adapter: str
    device: str


@dataclass(frozen=True)
class RegisterPairingAgent(BluetoothEffect):
    """AgentManager1.RegisterAgent and RequestDefaultAgent."""


@dataclass(frozen=True)
class ResolvePairing(BluetoothEffect):
    """Hand an outcome to the pairing agent call waiting on a request."""

    request_id: int
    outcome: CredentialOutcome
