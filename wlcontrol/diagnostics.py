"""Diagnostics support for wlcontrol."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .coordinator import Coordinator

REDACTED = "**REDACTED**"
TO_REDACT = {"address", "code", "passphrase"}

# BlueZ device paths embed the hardware address
_DEVICE_PATH = re.compile(r"dev(_[0-9A-Fa-f]{2}){6}")


def redact_data(data: Any, to_redact: set[str]) -> Any:
    """Return a copy of data with the given keys and device paths redacted."""
    if isinstance(data, dict):
        return {
            _redact_path(key) if isinstance(key, str) else key: (
                REDACTED if key in to_redact and value is not None else redact_data(value, to_redact)
            )
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_data(item, to_redact) for item in data]
    if isinstance(data, str):
        return _redact_path(data)
    return data


def _redact_path(value: str) -> str:
    return _DEVICE_PATH.sub("dev_" + REDACTED, value)


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


def build_diagnostics(coordinator: Coordinator) -> dict[str, Any]:
    """Return diagnostics for a running coordinator."""
    wifi = _plain(coordinator.wifi)
    pending = coordinator.wifi.pending_credential
    wifi["pending_credential"] = None if pending is None else {"network": pending.network_name}

    bluetooth = _plain(coordinator.bluetooth)
    bluetooth["state"] = coordinator.bluetooth.state
    # keyed by path, which would collapse once redacted
    bluetooth["devices"] = list(bluetooth["devices"].values())

    return redact_data(
        {
            "config": _plain(coordinator.config),
            "wifi": wifi,
            "networks": [_plain(network) for network in coordinator.networks],
            "bluetooth": bluetooth,
            "bluetooth_devices": [_plain(device) for device in coordinator.bluetooth_devices],
        },
        TO_REDACT,
    )
