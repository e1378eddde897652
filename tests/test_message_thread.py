import asyncio
import random

import pytest

from fakes import ME, FakeMessagesApi, at, make_message
from rental_client.core.errors import NetworkError, NotFoundError, SendFailed, ValidationError
from rental_client.stores.identity import ConfirmedId
from rental_client.stores.message_thread import MessageThreadStore, ThreadStatus


def _keys(store: MessageThreadStore) -> list[tuple]:
    return [(entry.message.created_at, entry.identity.value) for entry in store.messages]


def _assert_sorted(store: MessageThreadStore) -> None:
    keys = [entry.sort_key for entry in store.messages]
    assert keys == sorted(keys)


def _thread_with_history() -> tuple[FakeMessagesApi, MessageThreadStore]:
    api = FakeMessagesApi()
    api.add_server_message(make_message("m-1", 1))
    api.add_server_message(make_message("m-2", 2, sender_id=ME))
    store = MessageThreadStore(api, user_id=ME, clock=lambda: at(50))
    return api, store


def test_open_loads_history_in_time_order():
    api = FakeMessagesApi()
    api.add_server_message(make_message("m-2", 20))
    api.add_server_message(make_message("m-1", 10))
    store = MessageThreadStore(api, user_id=ME)

    asyncio.run(store.open("c-1"))

    assert [entry.message.id for entry in store.messages] == ["m-1", "m-2"]
    assert store.status is ThreadStatus.IDLE
    assert store.conversation_id == "c-1"


def test_equal_timestamps_are_ordered_by_id():
    api = FakeMessagesApi()
    api.add_server_message(make_message("m-b", 5))
    api.add_server_message(make_message("m-a", 5))
    store = MessageThreadStore(api)

    asyncio.run(store.open("c-1"))

    assert [entry.message.id for entry in store.messages] == ["m-a", "m-b"]


def test_open_failure_sets_error_status_and_raises():
    api = FakeMessagesApi()
    api.fail("get_messages", NotFoundError("Conversation not found", status_code=404))
    store = MessageThreadStore(api)

    with pytest.raises(NotFoundError):
        asyncio.run(store.open("c-404"))

    assert store.status is ThreadStatus.ERROR
    assert store.messages == ()


def test_send_swaps_pending_message_for_server_record():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        gate = api.hold("send_message")
        task = asyncio.create_task(store.send("  Is parking included?  "))
        await asyncio.sleep(0)

        assert store.pending_count == 1
        pending = store.messages[-1]
        assert pending.is_pending
        assert pending.message.content == "Is parking included?"
        assert pending.is_own("someone-else")

        gate.set()
        return await task

    confirmed = asyncio.run(scenario())

    assert store.pending_count == 0
    assert len(store.messages) == 3
    last = store.messages[-1]
    assert last.identity == ConfirmedId(confirmed.id)
    assert last.message.content == "Is parking included?"
    _assert_sorted(store)


def test_failed_send_rolls_back_and_returns_content():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        before = store.messages
        api.fail("send_message", NetworkError("connection reset"))
        with pytest.raises(SendFailed) as exc_info:
            await store.send("hello")
        return before, exc_info.value

    before, error = asyncio.run(scenario())

    assert store.messages == before
    assert error.content == "hello"
    assert error.retryable is True
    assert isinstance(error.cause, NetworkError)


def test_send_rejects_blank_content_without_network_call():
    api, store = _thread_with_history()
    asyncio.run(store.open("c-1"))

    with pytest.raises(ValidationError):
        asyncio.run(store.send("   "))

    assert not any(call[0] == "send_message" for call in api.calls)


def test_send_rejects_content_over_limit():
    api = FakeMessagesApi()
    store = MessageThreadStore(api, max_length=10)
    asyncio.run(store.open("c-1"))

    with pytest.raises(ValidationError):
        asyncio.run(store.send("x" * 11))


def test_send_without_open_thread_is_rejected():
    store = MessageThreadStore(FakeMessagesApi())

    with pytest.raises(ValidationError):
        asyncio.run(store.send("hello"))


def test_refresh_appends_new_messages_and_is_idempotent():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        api.add_server_message(make_message("m-3", 3))
        first = await store.refresh()
        snapshot = _keys(store)
        second = await store.refresh()
        return first, snapshot, second

    first, snapshot, second = asyncio.run(scenario())

    assert first == 1
    assert second == 0
    assert _keys(store) == snapshot
    assert [entry.message.id for entry in store.messages] == ["m-1", "m-2", "m-3"]


def test_refresh_keeps_messages_missing_from_fetch():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        api.threads["c-1"] = [api.threads["c-1"][0]]
        await store.refresh()

    asyncio.run(scenario())

    assert [entry.message.id for entry in store.messages] == ["m-1", "m-2"]


def test_refresh_takes_over_read_flag_only():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        server_copy = api.threads["c-1"][1].model_copy(
            update={"read": True, "read_at": at(60), "content": "edited"}
        )
        api.threads["c-1"][1] = server_copy
        await store.refresh()

    asyncio.run(scenario())

    own = store.messages[1].message
    assert own.read is True
    assert own.read_at == at(60)
    assert own.content == "message m-2"


def test_refresh_racing_send_does_not_duplicate():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        release_send = api.hold("send_message")
        send_task = asyncio.create_task(store.send("on my way"))
        await asyncio.sleep(0)
        # Server persisted it; a poll sees it before the send call returns
        api.add_server_message(make_message("m-77", 77, sender_id=ME, content="on my way"))
        added = await store.refresh()
        mid_race = [(entry.message.content, entry.is_pending) for entry in store.messages]
        api.threads["c-1"].pop()
        api._next_id = 76
        release_send.set()
        await send_task
        return added, mid_race

    added, mid_race = asyncio.run(scenario())

    assert added == 0
    assert mid_race == [("message m-1", False), ("message m-2", False), ("on my way", False)]

    ids = [entry.message.id for entry in store.messages]
    assert ids.count("m-77") == 1
    assert store.pending_count == 0


def test_send_while_opening_keeps_pending_message():
    api, store = _thread_with_history()

    async def scenario():
        loading = api.hold("get_messages")
        open_task = asyncio.create_task(store.open("c-1"))
        await asyncio.sleep(0)
        sending = api.hold("send_message")
        send_task = asyncio.create_task(store.send("hello"))
        await asyncio.sleep(0)
        loading.set()
        await open_task
        after_open = [(entry.message.content, entry.is_pending) for entry in store.messages]
        sending.set()
        await send_task
        return after_open

    after_open = asyncio.run(scenario())

    assert after_open == [("message m-1", False), ("message m-2", False), ("hello", True)]
    assert store.status is ThreadStatus.IDLE
    assert store.pending_count == 0
    assert [entry.message.content for entry in store.messages] == [
        "message m-1",
        "message m-2",
        "hello",
    ]


def test_partner_message_with_same_text_does_not_replace_pending():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        sending = api.hold("send_message")
        send_task = asyncio.create_task(store.send("see you at 5"))
        await asyncio.sleep(0)
        api.add_server_message(make_message("m-91", 91, content="see you at 5"))
        await store.refresh()
        mid_race = (store.pending_count, [entry.identity.value for entry in store.messages][-1])
        sending.set()
        confirmed = await send_task
        return mid_race, confirmed

    (pending, newest), confirmed = asyncio.run(scenario())

    assert pending == 1
    assert newest == "m-91"
    assert [entry.message.id for entry in store.messages][-2:] == ["m-91", confirmed.id]
    assert store.pending_count == 0
    _assert_sorted(store)


def test_results_for_abandoned_thread_are_discarded():
    api = FakeMessagesApi()
    api.add_server_message(make_message("a-1", 1, conversation_id="c-a"))
    api.add_server_message(make_message("b-1", 1, conversation_id="c-b"))
    store = MessageThreadStore(api)

    async def scenario():
        slow = api.hold("get_messages")
        first = asyncio.create_task(store.open("c-a"))
        await asyncio.sleep(0)
        await store.open("c-b")
        slow.set()
        await first

    asyncio.run(scenario())

    assert store.conversation_id == "c-b"
    assert [entry.message.id for entry in store.messages] == ["b-1"]


def test_refresh_vetoed_after_cancellation_leaves_state_alone():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        api.add_server_message(make_message("m-3", 3))
        return await store.refresh(still_wanted=lambda: False)

    added = asyncio.run(scenario())

    assert added == 0
    assert len(store.messages) == 2


def test_close_drops_thread_and_ignores_late_send():
    api, store = _thread_with_history()

    async def scenario():
        await store.open("c-1")
        gate = api.hold("send_message")
        task = asyncio.create_task(store.send("late"))
        await asyncio.sleep(0)
        store.close()
        gate.set()
        await task

    asyncio.run(scenario())

    assert store.messages == ()
    assert store.conversation_id is None


def test_random_interleavings_keep_thread_sorted():
    rng = random.Random(20260105)
    api = FakeMessagesApi()
    store = MessageThreadStore(api, user_id=ME, clock=lambda: at(rng.uniform(0, 400)))

    async def scenario():
        await store.open("c-1")
        for step in range(60):
            action = rng.choice(["incoming", "refresh", "send", "fail"])
            if action == "incoming":
                api.add_server_message(make_message(f"in-{step}", rng.uniform(0, 400)))
            elif action == "refresh":
                await store.refresh()
            elif action == "send":
                await store.send(f"reply {step}")
            else:
                api.fail("send_message", NetworkError("offline"))
                with pytest.raises(SendFailed):
                    await store.send(f"lost {step}")
            _assert_sorted(store)

        await store.refresh()
        _assert_sorted(store)
        ids = [entry.message.id for entry in store.messages]
        assert len(ids) == len(set(ids))
        assert store.pending_count == 0

    asyncio.run(scenario())
