"""Agents that iwd and BlueZ call when they need an answer from the user."""

import asyncio
from collections.abc import Callable
import itertools
import logging
from typing import Any

from dbus_fast import DBusError
from dbus_fast.service import ServiceInterface, method

from .const import (
    BLUEZ_AGENT_CANCELED_ERROR,
    BLUEZ_AGENT_INTERFACE,
    BLUEZ_AGENT_REJECTED_ERROR,
    IWD_AGENT_CANCELED_ERROR,
    IWD_AGENT_INTERFACE,
)
from .data import CredentialOutcome, OutcomeKind, PairingKind
from .inputs import (
    CredentialCancelledByService,
    CredentialInbound,
    CredentialTimedOut,
    PairingCancelledByService,
    PairingInbound,
    PairingTimedOut,
)

_LOGGER = logging.getLogger(__name__)


class CredentialMailbox:
    """Bridges agent calls into the coordinator inbox.

    Each inbound request gets an id and a response slot. The coordinator
    decides what to do with it and answers through resolve(). The message
    types posted for a new, cancelled or expired request are configurable
    so the iwd and BlueZ agents can share the same mailbox logic.
    """

    def __init__(
        self,
        post: Callable[[Any], None],
        timeout: float | None,
        *,
        inbound: Callable[..., Any] = CredentialInbound,
        cancelled: Callable[..., Any] = CredentialCancelledByService,
        timed_out: Callable[..., Any] = CredentialTimedOut,
    ) -> None:
        """Initialize the mailbox.

        Args:
            post: Puts a message into the coordinator inbox.
            timeout: Seconds to wait for an answer before giving up.
            inbound: Builds the message for a new request.
            cancelled: Builds the message for a request the service withdrew.
            timed_out: Builds the message for a request nobody answered.
        """
        self._post = post
        self._timeout = timeout
        self._inbound = inbound
        self._cancelled = cancelled
        self._timed_out = timed_out
        self._ids = itertools.count(1)
        self._slots: dict[int, asyncio.Future[CredentialOutcome]] = {}

    @property
    def open_requests(self) -> list[int]:
        """Return the ids of requests still waiting for an answer."""
        return list(self._slots)

    async def request(self, path: str, *details: Any) -> CredentialOutcome:
        """Open a slot for path and wait until it is resolved."""
        request_id = next(self._ids)
        slot: asyncio.Future[CredentialOutcome] = asyncio.get_running_loop().create_future()
        self._slots[request_id] = slot
        _LOGGER.debug("Agent request %s for %s", request_id, path)
        self._post(self._inbound(request_id, path, *details))
        try:
            return await asyncio.wait_for(slot, self._timeout)
        except TimeoutError:
            _LOGGER.warning("Agent request %s timed out", request_id)
            self._post(self._timed_out(request_id))
            return CredentialOutcome.cancelled("timeout")
        finally:
            self._slots.pop(request_id, None)

    def notify(self, path: str, *details: Any) -> int:
        """Post a request that expects no answer and return its id."""
        request_id = next(self._ids)
        _LOGGER.debug("Agent notification %s for %s", request_id, path)
        self._post(self._inbound(request_id, path, *details))
        return request_id

    def resolve(self, request_id: int, outcome: CredentialOutcome) -> bool:
        """Answer a waiting request. Returns False if it is no longer waiting."""
        slot = self._slots.get(request_id)
        if slot is None or slot.done():
            _LOGGER.debug("Agent request %s is no longer waiting", request_id)
            return False
        slot.set_result(outcome)
        return True

    def cancel(self, reason: str) -> None:
        """Release every waiting request because the service cancelled it."""
        for request_id, slot in list(self._slots.items()):
            if slot.done():
                continue
            slot.set_result(CredentialOutcome.cancelled(reason))
            self._post(self._cancelled(request_id, reason))


def pairing_mailbox(post: Callable[[Any], None], timeout: float | None) -> CredentialMailbox:
    """Return a mailbox that posts pairing messages."""
    return CredentialMailbox(
        post,
        timeout,
        inbound=PairingInbound,
        cancelled=PairingCancelledByService,
        timed_out=PairingTimedOut,
    )


# -------------------------------
# region iwd
# -------------------------------


class IwdAgentInterface(ServiceInterface):
    """The net.connman.iwd.Agent object exported on the bus."""

    def __init__(self, mailbox: CredentialMailbox) -> None:
        """Initialize the agent interface."""
        super().__init__(IWD_AGENT_INTERFACE)
        self._mailbox = mailbox

    async def request_passphrase(self, network_path: str) -> str:
        """Return the passphrase for a network or raise the agent's Canceled error."""
        outcome = await self._mailbox.request(network_path)
        if outcome.kind is OutcomeKind.PASSPHRASE and outcome.passphrase is not None:
            return outcome.passphrase
        _LOGGER.debug("Passphrase request for %s closed: %s", network_path, outcome.reason)
        raise DBusError(IWD_AGENT_CANCELED_ERROR, outcome.reason)

    def cancel(self, reason: str) -> None:
        """Handle iwd withdrawing its request."""
        _LOGGER.debug("iwd cancelled the passphrase request: %s", reason)
        self._mailbox.cancel(reason)

    @method()
    async def RequestPassphrase(self, network: "o") -> "s":
        return await self.request_passphrase(network)

    @method()
    def Cancel(self, reason: "s"):
        self.cancel(reason)

    @method()
    def Release(self):
        _LOGGER.info("iwd released the passphrase agent")


# -------------------------------
# region BlueZ
# -------------------------------


def _pairing_error(outcome: CredentialOutcome) -> DBusError:
    if outcome.kind is OutcomeKind.DECLINED:
        return DBusError(BLUEZ_AGENT_REJECTED_ERROR, "Rejected by user")
    return DBusError(BLUEZ_AGENT_CANCELED_ERROR, outcome.reason or "Canceled")


class BluezAgentInterface(ServiceInterface):
    """The org.bluez.Agent1 object BlueZ calls while pairing.

    Prompts go through the same mailbox machinery as iwd passphrases.
    Display requests are posted without a slot since BlueZ does not wait
    for them.
    """

    def __init__(self, mailbox: CredentialMailbox) -> None:
        """Initialize the agent interface."""
        super().__init__(BLUEZ_AGENT_INTERFACE)
        self._mailbox = mailbox

    async def request_answer(self, device: str, kind: PairingKind, code: str = "") -> str:
        """Wait for a text answer to a PIN or passkey prompt."""
        outcome = await self._mailbox.request(device, kind, code)
        if outcome.kind is OutcomeKind.PASSPHRASE and outcome.passphrase is not None:
            return outcome.passphrase
        _LOGGER.debug("Pairing %s for %s closed: %s", kind, device, outcome.reason)
        raise _pairing_error(outcome)

    async def request_confirmation(self, device: str, kind: PairingKind, code: str = "") -> None:
        """Wait for the user to accept a prompt. Raises unless accepted."""
        outcome = await self._mailbox.request(device, kind, code)
        if outcome.kind is OutcomeKind.ACCEPTED:
            return
        _LOGGER.debug("Pairing %s for %s closed: %s", kind, device, outcome.reason)
        raise _pairing_error(outcome)

    def display(self, device: str, kind: PairingKind, code: str) -> None:
        """Show a code the user types on the remote device."""
        self._mailbox.notify(device, kind, code)

    def cancel(self) -> None:
        """Handle BlueZ withdrawing its request."""
        _LOGGER.debug("BlueZ cancelled the pairing request")
        self._mailbox.cancel("cancelled")

    @method()
    def Release(self):
        _LOGGER.info("BlueZ released the pairing agent")

    @method()
    async def RequestPinCode(self, device: "o") -> "s":
        return await self.request_answer(device, PairingKind.REQUEST_PIN)

    @method()
    def DisplayPinCode(self, device: "o", pincode: "s"):
        self.display(device, PairingKind.DISPLAY_PIN, pincode)

    @method()
    async def RequestPasskey(self, device: "o") -> "u":
        return int(await self.request_answer(device, PairingKind.REQUEST_PASSKEY))

    @method()
    def DisplayPasskey(self, device: "o", passkey: "u", entered: "q"):
        # BlueZ calls again for every typed digit
        if entered == 0:
            self.display(device, PairingKind.DISPLAY_PASSKEY, f"{passkey:06}")

    @method()
    async def RequestConfirmation(self, device: "o", passkey: "u"):
        await self.request_confirmation(device, PairingKind.CONFIRM_PASSKEY, f"{passkey:06}")

    @method()
    async def RequestAuthorization(self, device: "o"):
        await self.request_confirmation(device, PairingKind.AUTHORIZE)

    @method()
    def AuthorizeService(self, device: "o", uuid: "s"):
        _LOGGER.info("Rejecting service %s for %s", uuid, device)
        raise DBusError(BLUEZ_AGENT_REJECTED_ERROR, "Service authorization is not supported")

    @method()
    def Cancel(self):
        self.cancel()
