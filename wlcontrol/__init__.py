"""Backend coordinator for iwd WiFi and BlueZ Bluetooth."""

from __future__ import annotations

from .coordinator import Coordinator, create_coordinator
from .data import CoordinatorConfig
from .services import parse_command, validate_config

__all__ = [
    "Coordinator",
    "CoordinatorConfig",
    "create_coordinator",
    "parse_command",
    "validate_config",
]
