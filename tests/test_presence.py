"""Tests for service presence tracking."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from wlcontrol.const import (
    DBUS_INTERFACE,
    DBUS_OBJECT_MANAGER_INTERFACE,
    IWD_NETWORK_INTERFACE,
    IWD_SERVICE,
    IWD_STATION_INTERFACE,
)
from wlcontrol.inputs import ObjectAdded, ObjectRemoved, Resynchronized, ServiceLost
from wlcontrol.presence import PresenceWatcher
from wlcontrol.proxy import DBusServiceProxy

from .conftest import DEVICE, HOME, make_reply, make_signal

OWNER = ":1.7"
TREE = {DEVICE: {IWD_STATION_INTERFACE: {"State": "disconnected"}}}


def _bus(owner=None, tree=None):
    bus = MagicMock()

    async def call(msg):
        if msg.member == "GetNameOwner":
            if owner is None:
                return make_reply(error_name="org.freedesktop.DBus.Error.NameHasNoOwner")
            return make_reply([owner])
        if msg.member == "GetManagedObjects":
            return make_reply([tree or {}])
        return make_reply()

    bus.call = AsyncMock(side_effect=call)
    return bus


@pytest.fixture(name="post")
def post_fixture():
    """Return a mock inbox."""
    return MagicMock()


async def test_start_with_service_running(post):
    """Test a running service is enumerated into Resynchronized."""
    bus = _bus(owner=OWNER, tree=TREE)
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)

    await watcher.start()

    post.assert_called_once_with(Resynchronized(IWD_SERVICE, TREE))
    assert watcher.present
    assert proxy.owner == OWNER


async def test_start_without_service(post):
    """Test a missing service is reported as lost."""
    bus = _bus()
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)

    await watcher.start()

    post.assert_called_once_with(ServiceLost(IWD_SERVICE))
    assert not watcher.present


async def test_enumeration_failure_is_lost(post):
    """Test a failing GetManagedObjects is reported as lost."""
    bus = _bus(owner=OWNER)
    original = bus.call.side_effect

    async def call(msg):
        if msg.member == "GetManagedObjects":
            return make_reply(["Timeout"], error_name="org.freedesktop.DBus.Error.NoReply")
        return await original(msg)

    bus.call.side_effect = call
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)

    await watcher.start()

    post.assert_called_once_with(ServiceLost(IWD_SERVICE))
    assert not watcher.present


async def test_name_owner_changes(post):
    """Test the service vanishing and coming back."""
    bus = _bus(owner=OWNER, tree=TREE)
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)
    await watcher.start()
    post.reset_mock()

    watcher._handle_message(
        make_signal(
            "org.freedesktop.DBus",
            "/org/freedesktop/DBus",
            DBUS_INTERFACE,
            "NameOwnerChanged",
            [IWD_SERVICE, OWNER, ""],
        )
    )
    post.assert_called_once_with(ServiceLost(IWD_SERVICE))
    assert proxy.objects == {}

    post.reset_mock()
    watcher._handle_message(
        make_signal(
            "org.freedesktop.DBus",
            "/org/freedesktop/DBus",
            DBUS_INTERFACE,
            "NameOwnerChanged",
            [IWD_SERVICE, "", ":1.8"],
        )
    )
    await watcher._task
    post.assert_called_once_with(Resynchronized(IWD_SERVICE, TREE))
    assert proxy.owner == ":1.8"


async def test_other_names_are_ignored(post):
    """Test ownership changes of other services are ignored."""
    bus = _bus(owner=OWNER, tree=TREE)
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)
    await watcher.start()
    post.reset_mock()

    watcher._handle_message(
        make_signal(
            "org.freedesktop.DBus",
            "/org/freedesktop/DBus",
            DBUS_INTERFACE,
            "NameOwnerChanged",
            ["org.bluez", ":1.3", ""],
        )
    )

    post.assert_not_called()


async def test_membership_signals_are_posted(post):
    """Test InterfacesAdded and InterfacesRemoved reach the inbox."""
    bus = _bus(owner=OWNER, tree=TREE)
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)
    await watcher.start()
    post.reset_mock()

    proxy._handle_message(
        make_signal(
            OWNER,
            "/",
            DBUS_OBJECT_MANAGER_INTERFACE,
            "InterfacesAdded",
            [HOME, {IWD_NETWORK_INTERFACE: {"Name": "Home-5G"}}],
        )
    )
    proxy._handle_message(
        make_signal(
            OWNER,
            "/",
            DBUS_OBJECT_MANAGER_INTERFACE,
            "InterfacesRemoved",
            [HOME, [IWD_NETWORK_INTERFACE]],
        )
    )

    assert post.call_args_list[0].args[0] == ObjectAdded(
        IWD_SERVICE, HOME, {IWD_NETWORK_INTERFACE: {"Name": "Home-5G"}}
    )
    assert post.call_args_list[1].args[0] == ObjectRemoved(
        IWD_SERVICE, HOME, (IWD_NETWORK_INTERFACE,)
    )


async def test_stop_removes_handlers(post):
    """Test stopping removes both message handlers."""
    bus = _bus()
    proxy = DBusServiceProxy(bus, IWD_SERVICE)
    watcher = PresenceWatcher(bus, proxy, post)
    await watcher.start()

    watcher.stop()

    assert bus.remove_message_handler.call_count == 2
