"""Validation of UI command payloads and coordinator configuration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from . import commands as cmd
from .const import (
    ATTR_ACCEPT,
    ATTR_ALIAS,
    ATTR_COMMAND,
    ATTR_DEVICE,
    ATTR_DISCOVERABLE,
    ATTR_ENABLED,
    ATTR_NETWORK,
    ATTR_PASSPHRASE,
    ATTR_PASSKEY,
    ATTR_PIN,
    ATTR_POWERED,
    ATTR_TAG,
    ATTR_TRUSTED,
    CONF_AGENT_PATH,
    CONF_CONNECT_TIMEOUT,
    CONF_CREDENTIAL_TIMEOUT,
    CONF_DISCOVERY_TIMEOUT,
    CONF_PAIRING_AGENT_PATH,
    DEFAULT_AGENT_PATH,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CREDENTIAL_TIMEOUT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_PAIRING_AGENT_PATH,
)
from .data import CoordinatorConfig
from .exceptions import InvalidCommand

_LOGGER = logging.getLogger(__name__)


def _validate_object_path(value: Any) -> str:
    """Validate a D-Bus object path."""
    if not isinstance(value, str) or not value.startswith("/"):
        raise vol.Invalid("Must be a D-Bus object path")
    if value != "/" and (value.endswith("/") or "//" in value):
        raise vol.Invalid("Malformed D-Bus object path")
    return value


_NETWORK = {vol.Required(ATTR_NETWORK): _validate_object_path}
_DEVICE = {vol.Required(ATTR_DEVICE): _validate_object_path}

# command name -> (command class, payload fields)
_COMMANDS: dict[str, tuple[type[cmd.Command], dict[Any, Any]]] = {
    "scan": (cmd.StartScan, {}),
    "connect": (cmd.ConnectNetwork, _NETWORK),
    "disconnect": (cmd.DisconnectNetwork, {}),
    "forget": (cmd.ForgetNetwork, _NETWORK),
    "forget_known": (cmd.ForgetKnownNetwork, _NETWORK),
    "set_autoconnect": (
        cmd.SetAutoConnect,
        {**_NETWORK, vol.Required(ATTR_ENABLED): vol.Boolean()},
    ),
    "set_wifi_powered": (cmd.SetWifiPowered, {vol.Required(ATTR_POWERED): vol.Boolean()}),
    "select_adapter": (cmd.SelectAdapter, _DEVICE),
    "passphrase": (cmd.SubmitPassphrase, {vol.Required(ATTR_PASSPHRASE): str}),
    "decline": (cmd.DeclineCredential, {}),
    "start_discovery": (cmd.StartDiscovery, {}),
    "stop_discovery": (cmd.StopDiscovery, {}),
    "bt_connect": (cmd.ConnectDevice, _DEVICE),
    "bt_disconnect": (cmd.DisconnectDevice, _DEVICE),
    "bt_pair": (cmd.PairDevice, _DEVICE),
    "bt_remove": (cmd.RemoveDevice, _DEVICE),
    "bt_trust": (cmd.SetDeviceTrusted, {**_DEVICE, vol.Required(ATTR_TRUSTED): vol.Boolean()}),
    "bt_alias": (
        cmd.SetDeviceAlias,
        {**_DEVICE, vol.Required(ATTR_ALIAS): vol.All(str, vol.Length(min=1, max=248))},
    ),
    "set_bt_powered": (cmd.SetBluetoothPowered, {vol.Required(ATTR_POWERED): vol.Boolean()}),
    "set_discoverable": (
        cmd.SetDiscoverable,
        {vol.Required(ATTR_DISCOVERABLE): vol.Boolean()},
    ),
    "bt_pairing_response": (cmd.PairingResponse, {vol.Required(ATTR_ACCEPT): vol.Boolean()}),
    # None rejects the pairing
    "bt_pairing_pin": (
        cmd.PairingPinResponse,
        {vol.Required(ATTR_PIN): vol.Any(None, vol.All(str, vol.Length(min=1, max=16)))},
    ),
    "bt_pairing_passkey": (
        cmd.PairingPasskeyResponse,
        {
            vol.Required(ATTR_PASSKEY): vol.Any(
                None, vol.All(vol.Coerce(int), vol.Range(min=0, max=999999))
            )
        },
    ),
}

COMMAND_SCHEMAS = {
    name: vol.Schema(
        {
            vol.Required(ATTR_COMMAND): name,
            vol.Optional(ATTR_TAG): vol.Any(None, str),
            **fields,
        }
    )
    for name, (_, fields) in _COMMANDS.items()
}

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_AGENT_PATH, default=DEFAULT_AGENT_PATH): _validate_object_path,
        vol.Optional(
            CONF_PAIRING_AGENT_PATH, default=DEFAULT_PAIRING_AGENT_PATH
        ): _validate_object_path,
        vol.Optional(CONF_CONNECT_TIMEOUT, default=DEFAULT_CONNECT_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=1)
        ),
        vol.Optional(CONF_DISCOVERY_TIMEOUT, default=DEFAULT_DISCOVERY_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=1, max=600)
        ),
        vol.Optional(CONF_CREDENTIAL_TIMEOUT, default=DEFAULT_CREDENTIAL_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=1)
        ),
    }
)


def command_names() -> list[str]:
    """Return the names accepted by parse_command."""
    return list(_COMMANDS)


def parse_command(payload: Any) -> cmd.Command:
    """Validate a UI payload and build the command it describes.

    Raises:
        InvalidCommand: The payload is not a known, well-formed command.
    """
    if not isinstance(payload, dict):
        raise InvalidCommand("Command must be an object")
    name = payload.get(ATTR_COMMAND)
    if name not in _COMMANDS:
        raise InvalidCommand(f"Unknown command: {name}")
    try:
        data = COMMAND_SCHEMAS[name](payload)
    except vol.Invalid as err:
        _LOGGER.debug("Rejected %s payload %s: %s", name, payload, err)
        raise InvalidCommand(f"Invalid {name} command: {err}") from err
    command_cls, _ = _COMMANDS[name]
    data.pop(ATTR_COMMAND)
    return command_cls(**data)


def validate_config(data: dict[str, Any] | None = None) -> CoordinatorConfig:
    """Validate raw options and build the coordinator configuration."""
    try:
        options = CONFIG_SCHEMA(data or {})
    except vol.Invalid as err:
        raise InvalidCommand(f"Invalid configuration: {err}") from err
    return CoordinatorConfig(**options)
