import asyncio

from storefront.services.remote import MockRemoteStore


def test_create_assigns_id_and_timestamps():
    store = MockRemoteStore()

    async def scenario():
        created = await store.create("menuItems", {"name": "Osh", "id": "ignored", "createdAt": "x"})
        listed = await store.list_documents("menuItems")
        return created, listed

    created, listed = asyncio.run(scenario())

    assert created.success
    assert created.value and created.value != "ignored"
    [document] = listed.value
    assert document["id"] == created.value
    assert document["name"] == "Osh"
    assert document["createdAt"] != "x"
    assert document["updatedAt"] == document["createdAt"]


def test_create_keeps_requested_id():
    store = MockRemoteStore()

    result = asyncio.run(store.create("categories", {"name": "Soups"}, doc_id="soups"))

    assert result.value == "soups"


def test_list_orders_by_creation():
    store = MockRemoteStore()

    async def scenario():
        for name in ("first", "second", "third"):
            await store.create("menuItems", {"name": name})
        ascending = await store.list_documents("menuItems")
        descending = await store.list_documents("menuItems", descending=True)
        return ascending.value, descending.value

    ascending, descending = asyncio.run(scenario())

    assert [d["name"] for d in ascending] == ["first", "second", "third"]
    assert [d["name"] for d in descending] == ["third", "second", "first"]


def test_update_merges_and_reports_missing_documents():
    store = MockRemoteStore()

    async def scenario():
        doc_id = (await store.create("menuItems", {"name": "Osh", "price": 25000})).value
        updated = await store.update("menuItems", doc_id, {"price": 30000})
        missing = await store.update("menuItems", "nope", {"price": 1})
        return (await store.list_documents("menuItems")).value, updated, missing

    documents, updated, missing = asyncio.run(scenario())

    assert updated.success
    assert documents[0]["name"] == "Osh"
    assert documents[0]["price"] == 30000
    assert not missing.success
    assert missing.error_code == "not_found"


def test_delete_is_idempotent():
    store = MockRemoteStore()

    async def scenario():
        doc_id = (await store.create("menuItems", {"name": "Osh"})).value
        first = await store.delete("menuItems", doc_id)
        second = await store.delete("menuItems", doc_id)
        return first, second, (await store.list_documents("menuItems")).value

    first, second, remaining = asyncio.run(scenario())

    assert first.success and second.success
    assert remaining == []


def test_offline_store_fails_every_call():
    store = MockRemoteStore(online=False)

    async def scenario():
        return [
            await store.create("menuItems", {"name": "Osh"}),
            await store.update("menuItems", "a", {}),
            await store.delete("menuItems", "a"),
            await store.list_documents("menuItems"),
        ], await store.health_check()

    results, healthy = asyncio.run(scenario())

    assert all(not r.success for r in results)
    assert all(r.error_code == "unavailable" for r in results)
    assert healthy is False
    assert not store.subscribe("menuItems", False, lambda docs: None, lambda e: None).success


def test_failure_rate_one_always_fails():
    store = MockRemoteStore(failure_rate=1.0)

    result = asyncio.run(store.list_documents("menuItems"))

    assert not result.success
    assert "Simulated" in result.error_message


def test_subscribe_delivers_initial_and_subsequent_snapshots():
    store = MockRemoteStore()
    snapshots = []

    result = store.subscribe("categories", False, snapshots.append, lambda e: None)
    asyncio.run(store.create("categories", {"name": "Osh"}))

    assert result.success
    assert snapshots[0] == []
    assert [d["name"] for d in snapshots[1]] == ["Osh"]


def test_unsubscribe_stops_updates():
    store = MockRemoteStore()
    snapshots = []

    stop = store.subscribe("categories", False, snapshots.append, lambda e: None).value
    stop()
    stop()
    asyncio.run(store.create("categories", {"name": "Osh"}))

    assert len(snapshots) == 1
    assert store.feed_count("categories") == 0


def test_going_offline_breaks_feeds_once():
    store = MockRemoteStore()
    errors = []
    store.subscribe("menuItems", True, lambda docs: None, errors.append)

    store.set_online(False)
    store.set_online(False)

    assert len(errors) == 1
    assert store.feed_count("menuItems") == 0
