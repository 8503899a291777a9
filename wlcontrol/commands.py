"""Commands the UI sends to the coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field

from .data import Subsystem


@dataclass(frozen=True)
class Command:
    """Base class for UI commands.

    The optional tag is echoed on the command's terminal outcome event.
    """

    tag: str | None = field(default=None, kw_only=True)

    subsystem = Subsystem.WIFI


# -------------------------------
# region WiFi
# -------------------------------


@dataclass(frozen=True)
class StartScan(Command):
    """Ask the active station to scan."""


@dataclass(frozen=True)
class ConnectNetwork(Command):
    """Connect the active station to a network."""

    network: str


@dataclass(frozen=True)
class DisconnectNetwork(Command):
    """Disconnect the active station."""


@dataclass(frozen=True)
class ForgetNetwork(Command):
    """Forget the saved credentials of a visible or offline network."""

    network: str


@dataclass(frozen=True)
class ForgetKnownNetwork(Command):
    """Forget a known network by its KnownNetwork path."""

    network: str


@dataclass(frozen=True)
class SetAutoConnect(Command):
    """Enable or disable autoconnect for a known network."""

    network: str
    enabled: bool


@dataclass(frozen=True)
class SetWifiPowered(Command):
    """Power the active WiFi device on or off."""

    powered: bool


@dataclass(frozen=True)
class SelectAdapter(Command):
    """Make another WiFi device the active one."""

    device: str


@dataclass(frozen=True)
class SubmitPassphrase(Command):
    """Answer the pending credential request."""

    passphrase: str


@dataclass(frozen=True)
class DeclineCredential(Command):
    """Close the pending credential request without answering."""


# -------------------------------
# region Bluetooth
# -------------------------------


@dataclass(frozen=True)
class BluetoothCommand(Command):
    """Base class for Bluetooth commands."""

    subsystem = Subsystem.BLUETOOTH


@dataclass(frozen=True)
class StartDiscovery(BluetoothCommand):
    """Start device discovery on the active adapter."""


@dataclass(frozen=True)
class StopDiscovery(BluetoothCommand):
    """Stop device discovery."""


@dataclass(frozen=True)
class ConnectDevice(BluetoothCommand):
    """Connect a device."""

    device: str


@dataclass(frozen=True)
class DisconnectDevice(BluetoothCommand):
    """Disconnect a device."""

    device: str


@dataclass(frozen=True)
class PairDevice(BluetoothCommand):
    """Pair and trust a device."""

    device: str


@dataclass(frozen=True)
class RemoveDevice(BluetoothCommand):
    """Remove a device from the adapter."""

    device: str


@dataclass(frozen=True)
class SetDeviceTrusted(BluetoothCommand):
    """Change the trusted flag of a device."""

    device: str
    trusted: bool


@dataclass(frozen=True)
class SetDeviceAlias(BluetoothCommand):
    """Rename a device."""

    device: str
    alias: str


@dataclass(frozen=True)
class SetBluetoothPowered(BluetoothCommand):
    """Power the active adapter on or off."""

    powered: bool


@dataclass(frozen=True)
class SetDiscoverable(BluetoothCommand):
    """Make the active adapter visible to other devices."""

    discoverable: bool


@dataclass(frozen=True)
class PairingResponse(BluetoothCommand):
    """Accept or reject a passkey comparison or an authorization prompt."""

    accept: bool


@dataclass(frozen=True)
class PairingPinResponse(BluetoothCommand):
    """Answer a PIN prompt. None rejects the pairing."""

    pin: str | None


@dataclass(frozen=True)
class PairingPasskeyResponse(BluetoothCommand):
    """Answer a passkey prompt. None rejects the pairing."""

    passkey: int | None
