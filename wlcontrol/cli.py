"""Interactive terminal front end for the wlcontrol coordinator."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import dbus_fast

from .commands import (
    Command,
    DeclineCredential,
    PairingPasskeyResponse,
    PairingPinResponse,
    PairingResponse,
    StartDiscovery,
    StartScan,
    SubmitPassphrase,
)
from .const import (
    CONF_CREDENTIAL_TIMEOUT,
    CONF_DISCOVERY_TIMEOUT,
    DEFAULT_CREDENTIAL_TIMEOUT,
    DEFAULT_DISCOVERY_TIMEOUT,
)
from .coordinator import Coordinator, create_coordinator
from .data import PairingKind
from .diagnostics import build_diagnostics
from .events import (
    BluetoothDevicesChanged,
    CredentialRequested,
    ErrorRaised,
    Event,
    NetworksChanged,
    PairingRequested,
)
from .exceptions import WlControlError
from .services import command_names, parse_command, validate_config

_LOGGER = logging.getLogger(__name__)

_PAIRING_PROMPTS = {
    PairingKind.CONFIRM_PASSKEY: "does the device show {code}? Type: confirm or reject",
    PairingKind.REQUEST_PIN: "enter the PIN. Type: pin <code> or reject",
    PairingKind.REQUEST_PASSKEY: "enter the passkey. Type: passkey <number> or reject",
    PairingKind.DISPLAY_PASSKEY: "type {code} on the device",
    PairingKind.DISPLAY_PIN: "type PIN {code} on the device",
    PairingKind.AUTHORIZE: "allow the device to pair? Type: confirm or reject",
}


class WlControlCLI:
    """Prints coordinator events and turns typed lines into commands."""

    def __init__(self, options: dict[str, Any]) -> None:
        """Initialize the CLI."""
        self.options = options
        self.coordinator: Coordinator | None = None

    def print_header(self) -> None:
        """Print CLI header with version info."""
        print("=" * 70)
        print("wlcontrol WiFi / Bluetooth Coordinator CLI")
        print("=" * 70)
        try:
            import importlib.metadata

            dbus_version = importlib.metadata.version("dbus-fast")
        except Exception:  # noqa: BLE001
            dbus_version = getattr(dbus_fast, "__version__", "Unknown")
        print(f"dbus-fast Version: {dbus_version}")
        print(f"Python Version: {sys.version.split()[0]}")
        print(f"Platform: {sys.platform}")
        print()

    def print_help(self) -> None:
        """Print the accepted input forms."""
        print("Short commands:")
        print("  scan          Scan for WiFi networks")
        print("  discover      Start Bluetooth discovery")
        print("  networks      List WiFi networks")
        print("  devices       List Bluetooth devices")
        print("  diag          Print diagnostics")
        print("  pass <text>   Answer a password prompt")
        print("  decline       Decline a password prompt")
        print("  confirm       Accept a Bluetooth pairing prompt")
        print("  reject        Reject a Bluetooth pairing prompt")
        print("  pin <text>    Answer a Bluetooth PIN prompt")
        print("  passkey <n>   Answer a Bluetooth passkey prompt")
        print("  quit          Exit")
        print()
        print('JSON commands, e.g. {"command": "connect", "network": "/net/connman/iwd/0/3/..."}')
        print(f"  known commands: {', '.join(command_names())}")

    def on_event(self, event: Event) -> None:
        """Print one coordinator event."""
        if isinstance(event, NetworksChanged):
            print(f"<- NetworksChanged ({len(event.networks)} networks)")
        elif isinstance(event, BluetoothDevicesChanged):
            print(f"<- BluetoothDevicesChanged ({len(event.devices)} devices)")
        elif isinstance(event, ErrorRaised):
            print(f"<- ✗ {event.subsystem} error [{event.kind}]: {event.message}")
        elif isinstance(event, CredentialRequested):
            print(f"<- Password required for '{event.name}'. Type: pass <password> or decline")
        elif isinstance(event, PairingRequested):
            prompt = _PAIRING_PROMPTS[event.kind].format(code=event.code)
            print(f"<- Pairing {event.device}: {prompt}")
        else:
            print(f"<- {event}")

    def coordinator_ready(self) -> bool:
        """Return True once the coordinator is running, else tell the user."""
        if self.coordinator is None:
            print("✗ Coordinator is not running")
            return False
        return True

    def show_networks(self) -> None:
        """Print the WiFi network list."""
        if not self.coordinator_ready():
            return
        print(f"\n--- WiFi: {self.coordinator.wifi.state} ---")
        for network in self.coordinator.networks:
            signal = "offline" if network.signal_dbm is None else f"{network.signal_dbm} dBm"
            flags = [
                flag
                for flag, enabled in (
                    ("connected", network.connected),
                    ("connecting", network.connecting),
                    ("known", network.known),
                    ("autoconnect", network.auto_connect),
                )
                if enabled
            ]
            print(f"  {network.name:<32} {network.security:<5} {signal:>9}  {' '.join(flags)}")
            print(f"      {network.path}")

    def show_devices(self) -> None:
        """Print the Bluetooth device list."""
        if not self.coordinator_ready():
            return
        print(f"\n--- Bluetooth: {self.coordinator.bluetooth.state} ---")
        for device in self.coordinator.bluetooth_devices:
            battery = "" if device.battery is None else f" battery {device.battery}%"
            print(f"  [{device.category}] {device.display_name}{battery}")
            print(f"      {device.path}")

    def pairing_rejection(self) -> Command:
        """Return the command that rejects the open pairing prompt."""
        pending = self.coordinator.bluetooth.pending_pairing
        kind = pending.kind if pending is not None else None
        if kind is PairingKind.REQUEST_PIN:
            return PairingPinResponse(None)
        if kind is PairingKind.REQUEST_PASSKEY:
            return PairingPasskeyResponse(None)
        return PairingResponse(False)

    async def handle_line(self, line: str) -> bool:
        """Handle one input line. Returns False when the user wants to exit."""
        word, _, rest = line.partition(" ")
        if word in ("quit", "exit", "q"):
            return False
        if not self.coordinator_ready():
            return True
        if word == "help":
            self.print_help()
        elif word == "networks":
            self.show_networks()
        elif word == "devices":
            self.show_devices()
        elif word == "diag":
            print(json.dumps(build_diagnostics(self.coordinator), indent=2, default=str))
        elif word == "scan":
            self.coordinator.submit(StartScan())
        elif word == "discover":
            self.coordinator.submit(StartDiscovery())
        elif word == "pass":
            self.coordinator.submit(SubmitPassphrase(rest))
        elif word == "decline":
            self.coordinator.submit(DeclineCredential())
        elif word == "confirm":
            self.coordinator.submit(PairingResponse(True))
        elif word == "reject":
            self.coordinator.submit(self.pairing_rejection())
        elif word == "pin":
            self.coordinator.submit(PairingPinResponse(rest))
        elif word == "passkey":
            self.coordinator.submit(PairingPasskeyResponse(int(rest)))
        elif line.startswith("{"):
            command = parse_command(json.loads(line))
            tag = self.coordinator.submit(command)
            print(f"-> {type(command).__name__} as {tag}")
        elif line:
            print("Unknown input, type 'help'.")
        return True

    async def run(self) -> None:
        """Run the CLI."""
        self.print_header()
        loop = asyncio.get_running_loop()
        _LOGGER.debug("Starting CLI with options %s", self.options)
        try:
            self.coordinator = await create_coordinator(validate_config(self.options))
            self.coordinator.add_listener(self.on_event)
            self.print_help()
            while True:
                line = (await loop.run_in_executor(None, input, "> ")).strip()
                try:
                    if not await self.handle_line(line):
                        break
                except (WlControlError, ValueError) as e:
                    print(f"\n✗ Error: {e}")
        except (KeyboardInterrupt, EOFError):
            print("\n\nInterrupted by user")
        finally:
            if self.coordinator is not None:
                await self.coordinator.stop()


def build_parser() -> argparse.ArgumentParser:
    """Return the command line parser."""
    parser = argparse.ArgumentParser(prog="wlcontrol", description=__doc__)
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument(
        "--credential-timeout",
        type=float,
        default=DEFAULT_CREDENTIAL_TIMEOUT,
        help="seconds to wait for a password answer",
    )
    parser.add_argument(
        "--discovery-timeout",
        type=float,
        default=DEFAULT_DISCOVERY_TIMEOUT,
        help="seconds before Bluetooth discovery is stopped",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = WlControlCLI(
        {
            CONF_CREDENTIAL_TIMEOUT: args.credential_timeout,
            CONF_DISCOVERY_TIMEOUT: args.discovery_timeout,
        }
    )
    try:
        asyncio.run(cli.run())
    except KeyboardInterrupt:
        pass
