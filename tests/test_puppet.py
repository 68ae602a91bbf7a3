"""Tests for the Puppet contract: lifecycle, guards, events, watchdog wiring."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from chatpuppet.errors import (
    PuppetNotReadyError,
    PuppetOperationError,
    PuppetStateError,
    UnknownEventError,
)
from chatpuppet.models.events import ErrorEvent, PuppetEvent, ScanEvent, WatchdogEvent
from chatpuppet.models.options import PuppetOptions
from chatpuppet.platforms.mock_puppet import MockContact, MockMessage, MockPuppet, MockRoom
from chatpuppet.services.state_switch import PuppetState

from conftest import WATCHDOG_TIMEOUT

# (public method, hook, args)
GUARDED_OPERATIONS = [
    ("say", "_say", ("hi",)),
    ("send", "_send", (MockMessage("m1", "hi"),)),
    ("forward", "_forward", (MockMessage("m1", "hi"), MockContact("bob"))),
    ("friend_request_send", "_friend_request_send", (MockContact("bob"), "hello")),
    ("friend_request_accept", "_friend_request_accept", (MockContact("bob"), "ticket")),
    ("room_create", "_room_create", ([MockContact("a"), MockContact("b")], "topic")),
    ("room_add", "_room_add", (MockRoom("r1", []), MockContact("bob"))),
    ("room_del", "_room_del", (MockRoom("r1", []), MockContact("bob"))),
    ("room_topic", "_room_topic_query", (MockRoom("r1", []),)),
    ("room_topic", "_room_topic_update", (MockRoom("r1", []), "new")),
    ("room_find_all", "_room_find_all", ()),
    ("contact_alias", "_contact_alias_query", (MockContact("bob"),)),
    ("contact_alias", "_contact_alias_update", (MockContact("bob"), None)),
    ("contact_find_all", "_contact_find_all", ()),
    ("ding", "_ding", ()),
    ("logout", "_logout", ()),
]


@pytest.mark.asyncio
async def test_scenario_start_ding_timeout_stop():
    puppet = MockPuppet(PuppetOptions(name="scenario", watchdog_timeout=1.0))
    barks = []
    states = []
    puppet.on(PuppetEvent.WATCHDOG, barks.append)
    puppet.on(PuppetEvent.LOGIN, lambda event: states.append(puppet.state.state))

    assert puppet.state.state is PuppetState.OFF

    await puppet.start()
    # The backend logs in while the switch is still pending
    assert states == [PuppetState.PENDING]
    assert puppet.state.state is PuppetState.ON

    assert await puppet.ding("are you there") == "dong"
    assert puppet.watchdog.last_food.data == "are you there"

    await asyncio.sleep(1.5)
    assert len(barks) == 1
    assert isinstance(barks[0], WatchdogEvent)

    with patch.object(puppet.state, "confirm_off", wraps=puppet.state.confirm_off) as confirm_off:
        await puppet.stop()
        confirm_off.assert_called_once()
    assert puppet.state.state is PuppetState.OFF
    assert not puppet.watchdog.running


@pytest.mark.asyncio
@pytest.mark.parametrize("method,hook,args", GUARDED_OPERATIONS)
async def test_operations_fail_while_off_without_backend_io(puppet, method, hook, args):
    with patch.object(puppet, hook, new=AsyncMock()) as backend:
        with pytest.raises(PuppetNotReadyError) as exc_info:
            await getattr(puppet, method)(*args)

    assert exc_info.value.operation == method
    backend.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("method,hook,args", GUARDED_OPERATIONS)
async def test_operations_fail_while_pending_without_backend_io(puppet, method, hook, args):
    puppet.state.request_on()
    with patch.object(puppet, hook, new=AsyncMock()) as backend:
        with pytest.raises(PuppetNotReadyError):
            await getattr(puppet, method)(*args)

    backend.assert_not_called()


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(puppet):
    await puppet.start()
    with patch.object(puppet, "_start", new=AsyncMock()) as backend_start:
        await puppet.start()
    backend_start.assert_not_called()
    assert puppet.state.is_on()

    await puppet.stop()
    with patch.object(puppet, "_stop", new=AsyncMock()) as backend_stop:
        await puppet.stop()
    backend_stop.assert_not_called()
    assert puppet.state.is_off()


@pytest.mark.asyncio
async def test_start_while_pending_is_a_state_error(puppet):
    puppet.state.request_on()
    with pytest.raises(PuppetStateError):
        await puppet.start()
    assert puppet.state.is_pending()


@pytest.mark.asyncio
async def test_failed_start_reverts_to_off(puppet, recorder):
    puppet.on(PuppetEvent.ERROR, recorder)
    with patch.object(puppet, "_start", new=AsyncMock(side_effect=ConnectionError("refused"))):
        with pytest.raises(PuppetOperationError) as exc_info:
            await puppet.start()

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert puppet.state.is_off()
    assert not puppet.watchdog.running
    assert isinstance(recorder.events[0], ErrorEvent)


@pytest.mark.asyncio
async def test_failed_stop_still_settles_off(started_puppet, recorder):
    started_puppet.on(PuppetEvent.ERROR, recorder)
    with patch.object(started_puppet, "_stop", new=AsyncMock(side_effect=RuntimeError("socket stuck"))):
        with pytest.raises(PuppetOperationError):
            await started_puppet.stop()

    assert started_puppet.state.is_off()
    assert len(recorder) == 1


@pytest.mark.asyncio
async def test_backend_failure_is_wrapped(started_puppet):
    with patch.object(started_puppet, "_say", new=AsyncMock(side_effect=TimeoutError("slow network"))):
        with pytest.raises(PuppetOperationError) as exc_info:
            await started_puppet.say("hello")

    assert exc_info.value.operation == "say"
    assert isinstance(exc_info.value.__cause__, TimeoutError)


@pytest.mark.asyncio
async def test_room_topic_query_and_update(started_puppet, alice, bob, recorder):
    room = await started_puppet.room_create([alice, bob], "weekend plans")
    started_puppet.on(PuppetEvent.ROOM_TOPIC, recorder)

    assert await started_puppet.room_topic(room) == "weekend plans"
    assert len(recorder) == 0

    assert await started_puppet.room_topic(room, "new") is None
    assert await started_puppet.room_topic(room) == "new"

    (event,) = recorder.events
    assert (event.topic, event.old_topic) == ("new", "weekend plans")
    assert event.changer == started_puppet.self_contact()


@pytest.mark.asyncio
async def test_rejected_room_topic_leaves_room_untouched(started_puppet, alice, bob, recorder):
    room = await started_puppet.room_create([alice, bob], "old")
    started_puppet.on(PuppetEvent.ROOM_TOPIC, recorder)

    with pytest.raises(PuppetOperationError):
        await started_puppet.room_topic(room, None)

    assert await started_puppet.room_topic(room) == "old"
    assert len(recorder) == 0


@pytest.mark.asyncio
async def test_room_topic_hooks_are_split(started_puppet, alice, bob):
    room = await started_puppet.room_create([alice, bob])
    with patch.object(started_puppet, "_room_topic_update", new=AsyncMock()) as update, patch.object(
        started_puppet, "_room_topic_query", new=AsyncMock(return_value="t")
    ) as query:
        await started_puppet.room_topic(room)
        query.assert_awaited_once_with(room)
        update.assert_not_called()

        await started_puppet.room_topic(room, "")
        update.assert_awaited_once_with(room, "")


@pytest.mark.asyncio
async def test_contact_alias_query_set_and_clear(started_puppet, alice):
    assert await started_puppet.contact_alias(alice) is None

    assert await started_puppet.contact_alias(alice, "Al") is None
    assert await started_puppet.contact_alias(alice) == "Al"

    await started_puppet.contact_alias(alice, None)
    assert await started_puppet.contact_alias(alice) is None


@pytest.mark.asyncio
async def test_ding_feeds_watchdog(started_puppet):
    with patch.object(started_puppet.watchdog, "feed", wraps=started_puppet.watchdog.feed) as feed:
        assert await started_puppet.ding({"seq": 1}) == "dong"
    feed.assert_called_once()
    assert started_puppet.watchdog.last_food.data == {"seq": 1}


@pytest.mark.asyncio
async def test_heartbeat_keeps_watchdog_quiet(started_puppet, recorder):
    started_puppet.on(PuppetEvent.WATCHDOG, recorder)
    for i in range(6):
        await asyncio.sleep(WATCHDOG_TIMEOUT / 3)
        started_puppet.heartbeat(i)

    assert len(recorder) == 0
    assert started_puppet.watchdog.last_food.data == 5


@pytest.mark.asyncio
async def test_silence_emits_watchdog_event(started_puppet, recorder):
    started_puppet.on(PuppetEvent.WATCHDOG, recorder)
    await asyncio.sleep(WATCHDOG_TIMEOUT * 1.5)

    assert len(recorder) == 1
    # Reporting only: the puppet stays on
    assert started_puppet.state.is_on()


def test_unknown_event_rejected_by_puppet(puppet, recorder):
    for kind in PuppetEvent:
        puppet.on(kind, recorder)

    with pytest.raises(UnknownEventError):
        puppet.emit("reconnect")
    with pytest.raises(UnknownEventError):
        puppet.on("reconnect", recorder)

    assert len(recorder) == 0


def test_on_returns_puppet_for_chaining(puppet, recorder):
    assert puppet.on(PuppetEvent.SCAN, recorder).on(PuppetEvent.LOGIN, recorder) is puppet


@pytest.mark.asyncio
async def test_login_and_logout_events(puppet, recorder):
    puppet.on(PuppetEvent.LOGIN, recorder)
    puppet.on(PuppetEvent.LOGOUT, recorder)

    await puppet.start()
    assert puppet.logonoff() is True
    me = puppet.self_contact()

    await puppet.logout()
    assert puppet.logonoff() is False
    await puppet.stop()

    assert [event.kind for event in recorder.events] == [PuppetEvent.LOGIN, PuppetEvent.LOGOUT]
    assert recorder.events[0].user == me
    assert recorder.events[1].user == me


def test_on_accepts_payload_class(puppet, recorder):
    puppet.on(ScanEvent, recorder)
    puppet.scan("https://login.example/qr/xyz")

    (event,) = recorder.events
    assert isinstance(event, ScanEvent)


def test_heartbeat_wiring_is_not_a_listener(puppet):
    assert puppet.events.listener_count(PuppetEvent.HEARTBEAT) == 0


@pytest.mark.asyncio
async def test_heartbeat_feeds_watchdog_after_remove_all_listeners(started_puppet):
    started_puppet.events.remove_all_listeners()
    started_puppet.heartbeat("still alive")
    assert started_puppet.watchdog.last_food.data == "still alive"
