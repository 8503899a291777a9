"""Messages that enter the coordinator inbox from the bus side."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .data import PairingKind
from .exceptions import WlControlError

# Interfaces and properties of one object: {interface: {property: value}}
InterfaceMap = Mapping[str, Mapping[str, Any]]


@dataclass(frozen=True)
class PropertyDelta:
    """One property of a remote object changed.

    `properties` holds every cached property of the interface after the change.
    """

    service: str
    path: str
    interface: str
    name: str
    value: Any
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Resynchronized:
    """A service (re)appeared; carries its complete object tree."""

    service: str
    objects: Mapping[str, InterfaceMap]


@dataclass(frozen=True)
class ServiceLost:
    """A service lost its bus name."""

    service: str


@dataclass(frozen=True)
class ObjectAdded:
    """Interfaces were added to an object."""

    service: str
    path: str
    interfaces: InterfaceMap


@dataclass(frozen=True)
class ObjectRemoved:
    """Interfaces were removed from an object."""

    service: str
    path: str
    interfaces: tuple[str, ...]


@dataclass(frozen=True)
class CredentialInbound:
    """iwd called RequestPassphrase on the agent."""

    request_id: int
    network_path: str


@dataclass(frozen=True)
class CredentialCancelledByService:
    """iwd called Cancel on the agent."""

    request_id: int
    reason: str


@dataclass(frozen=True)
class CredentialTimedOut:
    """Nobody answered a passphrase request in time."""

    request_id: int


@dataclass(frozen=True)
class PairingInbound:
    """BlueZ called the pairing agent.

    Display requests carry the code to show and expect no answer.
    """

    request_id: int
    device: str
    kind: PairingKind
    code: str = ""


@dataclass(frozen=True)
class PairingCancelledByService:
    """BlueZ called Cancel on the pairing agent."""

    request_id: int
    reason: str


@dataclass(frozen=True)
class PairingTimedOut:
    """Nobody answered a pairing prompt in time."""

    request_id: int


@dataclass(frozen=True)
class EffectCompleted:
    """A remote call issued for an effect returned or failed."""

    effect: Any
    result: Any = None
    error: WlControlError | None = None


@dataclass(frozen=True)
class DiscoveryTimeout:
    """The discovery timer of the given token expired."""

    token: int
