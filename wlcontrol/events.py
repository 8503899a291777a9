"""Events the coordinator emits to the UI."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .data import (
    BluetoothAdapter,
    BluetoothDevice,
    BluetoothState,
    ErrorKind,
    PairingKind,
    StationState,
    Subsystem,
    WifiDevice,
    WirelessNetwork,
)
from .exceptions import RemoteServiceError, ServiceUnavailable, WlControlError


@dataclass(frozen=True)
class Event:
    """Base class for coordinator events."""


@dataclass(frozen=True)
class ServiceAvailabilityChanged(Event):
    """iwd or BlueZ appeared on or vanished from the bus."""

    subsystem: Subsystem
    available: bool


@dataclass(frozen=True)
class CommandCompleted(Event):
    """A command finished successfully."""

    tag: str | None


@dataclass(frozen=True)
class ErrorRaised(Event):
    """A command or background operation failed."""

    kind: ErrorKind
    message: str
    subsystem: Subsystem
    tag: str | None = None


# -------------------------------
# region WiFi
# -------------------------------


@dataclass(frozen=True)
class WifiStateChanged(Event):
    """The station state changed."""

    state: StationState
    network: str | None = None


@dataclass(frozen=True)
class WifiAdaptersChanged(Event):
    """WiFi devices were added, removed, changed or switched."""

    devices: tuple[WifiDevice, ...]
    active: str | None


@dataclass(frozen=True)
class WifiPoweredChanged(Event):
    """The active WiFi device was powered on or off."""

    device: str
    powered: bool


@dataclass(frozen=True)
class ScanningChanged(Event):
    """The active station started or finished scanning."""

    scanning: bool


@dataclass(frozen=True)
class NetworksChanged(Event):
    """The full network list changed."""

    networks: tuple[WirelessNetwork, ...]


@dataclass(frozen=True)
class Connecting(Event):
    """The station started connecting to a network."""

    network: str
    tag: str | None = None


@dataclass(frozen=True)
class Connected(Event):
    """The station is connected to a network."""

    network: str
    tag: str | None = None


@dataclass(frozen=True)
class Disconnected(Event):
    """The station lost or dropped its connection."""

    network: str


@dataclass(frozen=True)
class ConnectionAbandoned(Event):
    """A connect attempt lost its adapter or service before it resolved."""

    network: str
    tag: str | None = None


@dataclass(frozen=True)
class KnownStatusChanged(Event):
    """A visible network was saved or forgotten."""

    network: str
    known: bool


@dataclass(frozen=True)
class CredentialRequested(Event):
    """iwd asks for the passphrase of a network."""

    request_id: int
    network: str
    name: str


@dataclass(frozen=True)
class CredentialRequestCancelled(Event):
    """The pending passphrase request was closed without a UI answer."""

    request_id: int
    network: str
    reason: str


@dataclass(frozen=True)
class CredentialResponseApplied(Event):
    """The UI answered or declined the pending passphrase request."""

    request_id: int
    network: str
    declined: bool = False


# -------------------------------
# region Bluetooth
# -------------------------------


@dataclass(frozen=True)
class BluetoothAdapterChanged(Event):
    """The active adapter or its flags changed."""

    state: BluetoothState
    adapter: BluetoothAdapter | None


@dataclass(frozen=True)
class BluetoothDevicesChanged(Event):
    """The device list changed."""

    devices: tuple[BluetoothDevice, ...]


@dataclass(frozen=True)
class BatteryLevelChanged(Event):
    """A device reported a new battery level."""

    device: str
    level: int | None


@dataclass(frozen=True)
class PairingRequested(Event):
    """BlueZ asks the user to confirm, enter or look at a pairing code."""

    request_id: int
    device: str
    kind: PairingKind
    code: str = ""


@dataclass(frozen=True)
class PairingRequestCancelled(Event):
    """The pairing prompt was closed without a UI answer."""

    request_id: int
    device: str
    reason: str


@dataclass(frozen=True)
class PairingResponseApplied(Event):
    """The UI answered or rejected the pairing prompt."""

    request_id: int
    device: str
    declined: bool = False


def error_event(
    err: WlControlError,
    subsystem: Subsystem,
    tag: str | None,
    describe: Callable[[RemoteServiceError], str],
) -> ErrorRaised:
    """Classify an exception from a remote call into the event the UI sees."""
    if isinstance(err, ServiceUnavailable):
        return ErrorRaised(ErrorKind.SERVICE_UNAVAILABLE, str(err), subsystem, tag)
    if isinstance(err, RemoteServiceError):
        return ErrorRaised(ErrorKind.REMOTE_SERVICE, describe(err), subsystem, tag)
    return ErrorRaised(ErrorKind.REMOTE_SERVICE, str(err), subsystem, tag)
