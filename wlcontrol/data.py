"""Holds the data that is owned by the wlcontrol coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .const import (
    DEFAULT_AGENT_PATH,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CREDENTIAL_TIMEOUT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_PAIRING_AGENT_PATH,
)

# -------------------------------
# region Enums
# -------------------------------


class Subsystem(StrEnum):
    """Radio subsystem a message belongs to."""

    WIFI = "wifi"
    BLUETOOTH = "bluetooth"


class StationState(StrEnum):
    """Connection state of the active WiFi station."""

    NO_ADAPTER = "no_adapter"
    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class BluetoothState(StrEnum):
    """State of the active Bluetooth adapter."""

    ABSENT = "absent"
    OFF = "off"
    ON = "on"
    DISCOVERING = "discovering"


class DeviceCategory(StrEnum):
    """View a Bluetooth device is listed under."""

    CONNECTED = "connected"
    PAIRED = "paired"
    DISCOVERED = "discovered"


class ErrorKind(StrEnum):
    """Classification of an error surfaced to the UI."""

    REMOTE_SERVICE = "remote_service"
    SERVICE_UNAVAILABLE = "service_unavailable"
    COMMAND_CONFLICT = "command_conflict"
    CREDENTIAL_DECLINED = "credential_declined"


class PairingKind(StrEnum):
    """Interaction BlueZ asks for while pairing."""

    CONFIRM_PASSKEY = "confirm-passkey"
    REQUEST_PIN = "request-pin"
    REQUEST_PASSKEY = "request-passkey"
    DISPLAY_PASSKEY = "display-passkey"
    DISPLAY_PIN = "display-pin"
    AUTHORIZE = "authorize"

    @property
    def needs_answer(self) -> bool:
        """Return True if BlueZ waits for the user, False if the code is only shown."""
        return self not in (PairingKind.DISPLAY_PASSKEY, PairingKind.DISPLAY_PIN)


# -------------------------------
# region WiFi
# -------------------------------


@dataclass(frozen=True)
class WirelessNetwork:
    """One WiFi network as presented to the UI."""

    path: str
    name: str
    security: str
    signal_dbm: int | None = None
    connected: bool = False
    connecting: bool = False
    known: bool = False
    auto_connect: bool = False
    known_path: str | None = None
    offline: bool = False


@dataclass(frozen=True)
class NetworkObject:
    """A net.connman.iwd.Network object from the service tree."""

    path: str
    name: str
    security: str
    device: str
    connected: bool = False
    known_network: str | None = None


@dataclass(frozen=True)
class KnownNetwork:
    """A network iwd has saved credentials for."""

    path: str
    name: str
    security: str
    auto_connect: bool = True
    last_connected: str | None = None


@dataclass(frozen=True)
class WifiDevice:
    """A WiFi network interface."""

    path: str
    name: str
    address: str
    powered: bool
    mode: str
    adapter: str | None = None


@dataclass(frozen=True)
class StationStatus:
    """Properties of a net.connman.iwd.Station object."""

    path: str
    state: str = "disconnected"
    scanning: bool = False
    connected_network: str | None = None


@dataclass(frozen=True)
class ConnectAttempt:
    """A connect call the coordinator issued and has not resolved yet."""

    attempt_id: int
    network_path: str
    tag: str | None = None
    call_done: bool = False


@dataclass(frozen=True)
class PendingCredentialRequest:
    """The single outstanding passphrase request from iwd."""

    request_id: int
    network_path: str
    network_name: str


class OutcomeKind(StrEnum):
    """How an agent request was closed."""

    PASSPHRASE = "passphrase"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    BUSY = "busy"


@dataclass(frozen=True)
class CredentialOutcome:
    """Answer handed back to a waiting agent call.

    An empty passphrase is a valid answer and is not the same as declining.
    PIN and passkey answers travel in `passphrase` as text.
    """

    kind: OutcomeKind
    passphrase: str | None = None
    reason: str = ""

    @classmethod
    def answer(cls, passphrase: str) -> CredentialOutcome:
        """Return an outcome carrying a passphrase."""
        return cls(OutcomeKind.PASSPHRASE, passphrase=passphrase)

    @classmethod
    def accepted(cls) -> CredentialOutcome:
        """Return an outcome confirming a pairing prompt."""
        return cls(OutcomeKind.ACCEPTED)

    @classmethod
    def declined(cls) -> CredentialOutcome:
        """Return an outcome for a prompt the user closed."""
        return cls(OutcomeKind.DECLINED, reason="declined")

    @classmethod
    def cancelled(cls, reason: str) -> CredentialOutcome:
        """Return an outcome for a request that was released."""
        return cls(OutcomeKind.CANCELLED, reason=reason)

    @classmethod
    def busy(cls) -> CredentialOutcome:
        """Return an outcome for a request rejected while another is open."""
        return cls(OutcomeKind.BUSY, reason="busy")


@dataclass(frozen=True)
class WifiModel:
    """Normalized WiFi state owned by the coordinator.

    Mappings are replaced, never mutated, when the model changes.
    """

    available: bool = False
    state: StationState = StationState.NO_ADAPTER
    current_network: str | None = None
    devices: dict[str, WifiDevice] = field(default_factory=dict)
    stations: dict[str, StationStatus] = field(default_factory=dict)
    active_device: str | None = None
    network_objects: dict[str, NetworkObject] = field(default_factory=dict)
    signals: dict[str, int] = field(default_factory=dict)
    known: dict[str, KnownNetwork] = field(default_factory=dict)
    attempt: ConnectAttempt | None = None
    disconnecting: bool = False
    pending_credential: PendingCredentialRequest | None = None
    next_attempt_id: int = 1

    @property
    def station(self) -> StationStatus | None:
        """Return the station of the active device, if it has one."""
        if self.active_device is None:
            return None
        return self.stations.get(self.active_device)

    @property
    def scanning(self) -> bool:
        """Return True if the active station is scanning."""
        return self.station is not None and self.station.scanning

    @property
    def powered(self) -> bool:
        """Return True if the active device is powered."""
        device = self.devices.get(self.active_device or "")
        return device is not None and device.powered


# -------------------------------
# region Bluetooth
# -------------------------------


@dataclass(frozen=True)
class BluetoothAdapter:
    """A BlueZ adapter."""

    path: str
    name: str
    address: str
    powered: bool = False
    discoverable: bool = False
    discovering: bool = False


@dataclass(frozen=True)
class BluetoothDevice:
    """A BlueZ device."""

    path: str
    address: str
    name: str = ""
    alias: str = ""
    icon: str = ""
    device_class: int = 0
    paired: bool = False
    trusted: bool = False
    connected: bool = False
    battery: int | None = None
    rssi: int | None = None
    adapter: str | None = None

    @property
    def category(self) -> DeviceCategory:
        """Return the list this device belongs to."""
        if self.connected:
            return DeviceCategory.CONNECTED
        if self.paired:
            return DeviceCategory.PAIRED
        return DeviceCategory.DISCOVERED

    @property
    def display_name(self) -> str:
        """Return the best human readable name."""
        return self.alias or self.name or self.address

    @property
    def is_noise(self) -> bool:
        """Return True for unnamed advertisers that only expose their address."""
        if self.paired or self.connected or self.name:
            return False
        return self.alias.replace("-", ":").upper() == self.address.upper()


@dataclass(frozen=True)
class PendingPairingRequest:
    """A pairing prompt from BlueZ shown to the user.

    `code` is the passkey or PIN to compare or type on the remote device.
    """

    request_id: int
    device: str
    kind: PairingKind
    code: str = ""


@dataclass(frozen=True)
class BluetoothModel:
    """Normalized Bluetooth state owned by the coordinator."""

    available: bool = False
    adapters: dict[str, BluetoothAdapter] = field(default_factory=dict)
    active_adapter: str | None = None
    devices: dict[str, BluetoothDevice] = field(default_factory=dict)
    pairing: str | None = None
    pending_pairing: PendingPairingRequest | None = None
    discovery_token: int = 0

    @property
    def adapter(self) -> BluetoothAdapter | None:
        """Return the active adapter."""
        if self.active_adapter is None:
            return None
        return self.adapters.get(self.active_adapter)

    @property
    def state(self) -> BluetoothState:
        """Return the adapter state derived from its properties."""
        adapter = self.adapter
        if not self.available or adapter is None:
            return BluetoothState.ABSENT
        if not adapter.powered:
            return BluetoothState.OFF
        if adapter.discovering:
            return BluetoothState.DISCOVERING
        return BluetoothState.ON


# -------------------------------
# region Configuration
# -------------------------------


@dataclass(frozen=True)
class CoordinatorConfig:
    """Runtime options of the coordinator."""

    agent_path: str = DEFAULT_AGENT_PATH
    pairing_agent_path: str = DEFAULT_PAIRING_AGENT_PATH
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    credential_timeout: float = DEFAULT_CREDENTIAL_TIMEOUT
