import asyncio

from conftest import FlakyCreateRemoteStore, UnreachableRemoteStore

from storefront.schemas import Category, CategoryColor, MenuItem
from storefront.services.defaults import DEFAULT_CATEGORIES, DEFAULT_MENU_ITEMS
from storefront.services.remote import MockRemoteStore
from storefront.services.sync import MenuSyncService, category_slug_id, time_based_id


def item_document(name="Lagman", price=28000, category="Soups"):
    return {"name": name, "price": price, "category": category, "description": "", "isAvailable": True}


# =============================================================================
# create / list
# =============================================================================

def test_create_when_reachable_is_listed(service):
    async def scenario():
        item_id = await service.menu_items.create(item_document())
        return item_id, await service.menu_items.list_records()

    item_id, items = asyncio.run(scenario())

    assert item_id
    assert [item.id for item in items] == [item_id]
    assert isinstance(items[0], MenuItem)


def test_create_when_unreachable_lands_in_local_snapshot(offline_service, local, settings):
    item_id = asyncio.run(offline_service.menu_items.create(item_document()))

    assert item_id.isdigit()
    snapshot = offline_service.menu_items.local_snapshot()
    assert [item.id for item in snapshot] == [item_id]
    stored = local.load_list(settings.menu_items_key)[0]
    assert stored["createdAt"] == stored["updatedAt"]


def test_offline_menu_item_ids_are_unique(offline_service):
    async def scenario():
        return [await offline_service.menu_items.create(item_document(name=f"dish {n}")) for n in range(5)]

    ids = asyncio.run(scenario())

    assert len(set(ids)) == 5


def test_offline_category_id_is_slug_and_replaces_same_name(offline_service):
    async def scenario():
        first = await offline_service.categories.create(Category(name="Hot  Soups", color=CategoryColor.RED))
        second = await offline_service.categories.create({"name": "hot soups", "color": "blue"})
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == "hot-soups"
    [category] = offline_service.categories.local_snapshot()
    assert category.color == CategoryColor.BLUE


def test_id_factories():
    assert category_slug_id({"name": "Cold Drinks"}, set()) == "cold-drinks"
    taken = {time_based_id({}, set())}
    assert time_based_id({}, taken) not in taken


def test_list_orders_items_newest_first_and_categories_oldest_first(service):
    async def scenario():
        for name in ("Osh", "Salads", "Drinks"):
            await service.categories.create({"name": name})
            await service.menu_items.create(item_document(name=name))
        return await service.categories.list_records(), await service.menu_items.list_records()

    categories, items = asyncio.run(scenario())

    assert [c.name for c in categories] == ["Osh", "Salads", "Drinks"]
    assert [i.name for i in items] == ["Drinks", "Salads", "Osh"]


def test_unreachable_list_seeds_defaults(offline_service, local, settings):
    categories = asyncio.run(offline_service.categories.list_records())

    assert [c.id for c in categories] == [c["id"] for c in DEFAULT_CATEGORIES]
    assert len(local.load_list(settings.categories_key)) == len(DEFAULT_CATEGORIES)
    assert len(offline_service.menu_items.local_snapshot()) == len(DEFAULT_MENU_ITEMS)


def test_reachable_list_writes_through_to_local(service, local, settings):
    async def scenario():
        item_id = await service.menu_items.create(item_document())
        local.save(settings.menu_items_key, [])
        await service.menu_items.list_records()
        return item_id

    item_id = asyncio.run(scenario())

    assert [doc["id"] for doc in local.load_list(settings.menu_items_key)] == [item_id]


def test_malformed_documents_are_skipped(offline_service, local, settings):
    local.save(settings.menu_items_key, [{"id": "broken"}, {"id": "ok", **item_document()}])

    items = asyncio.run(offline_service.menu_items.list_records())

    assert [item.id for item in items] == ["ok"]


# =============================================================================
# update / delete
# =============================================================================

def test_update_changes_only_named_field(service):
    async def scenario():
        item_id = await service.menu_items.create(item_document())
        await service.menu_items.update(item_id, {"price": 30000})
        return (await service.menu_items.list_records())[0]

    item = asyncio.run(scenario())

    assert item.price == 30000
    assert item.name == "Lagman"
    assert item.category == "Soups"


def test_update_accepts_snake_case_field_names(service):
    async def scenario():
        item_id = await service.menu_items.create(item_document())
        await service.menu_items.update(item_id, {"preparation_time": 25, "id": "hijack"})
        return (await service.menu_items.list_records())[0], item_id

    item, item_id = asyncio.run(scenario())

    assert item.preparation_time == 25
    assert item.id == item_id


def test_offline_update_changes_only_named_field(offline_service):
    async def scenario():
        item_id = await offline_service.menu_items.create(item_document())
        await offline_service.menu_items.update(item_id, {"description": "Hand-pulled noodles"})
        await offline_service.menu_items.update("missing", {"description": "x"})
        return offline_service.menu_items.local_snapshot()

    [item] = asyncio.run(scenario())

    assert item.description == "Hand-pulled noodles"
    assert item.price == 28000


def test_update_of_remotely_missing_record_falls_back_to_local(service, local, settings):
    local.save(settings.menu_items_key, [{"id": "local-only", **item_document()}])

    asyncio.run(service.toggle_availability("local-only", False))

    assert local.load_list(settings.menu_items_key)[0]["isAvailable"] is False


def test_delete_removes_and_is_idempotent(service):
    async def scenario():
        item_id = await service.menu_items.create(item_document())
        await service.menu_items.delete(item_id)
        await service.menu_items.delete(item_id)
        return await service.menu_items.list_records()

    assert asyncio.run(scenario()) == []


def test_offline_delete_removes_and_is_idempotent(offline_service):
    async def scenario():
        keep = await offline_service.menu_items.create(item_document(name="Keep"))
        drop = await offline_service.menu_items.create(item_document(name="Drop"))
        await offline_service.menu_items.delete(drop)
        await offline_service.menu_items.delete(drop)
        return keep, offline_service.menu_items.local_snapshot()

    keep, items = asyncio.run(scenario())

    assert [item.id for item in items] == [keep]


def test_mark_sold_out(service):
    async def scenario():
        item_id = await service.menu_items.create(item_document())
        await service.mark_sold_out(item_id)
        return (await service.menu_items.list_records())[0]

    assert asyncio.run(scenario()).is_available is False


# =============================================================================
# subscribe
# =============================================================================

def test_subscribe_delivers_remote_snapshots_and_caches_them(service, local, settings):
    received = []

    subscription = service.categories.subscribe(received.append)
    asyncio.run(service.categories.create({"name": "Osh", "color": "yellow"}))

    assert subscription.live and subscription.active
    assert received[0] == []
    assert [c.name for c in received[-1]] == ["Osh"]
    assert [doc["name"] for doc in local.load_list(settings.categories_key)] == ["Osh"]
    subscription.unsubscribe()


def test_failed_subscription_calls_back_once_with_local_snapshot(offline_service):
    received = []

    subscription = offline_service.menu_items.subscribe(received.append)

    assert len(received) == 1
    assert [item.id for item in received[0]] == [doc["id"] for doc in DEFAULT_MENU_ITEMS]
    assert not subscription.live
    subscription.unsubscribe()
    subscription.unsubscribe()
    subscription()
    assert len(received) == 1


def test_broken_feed_falls_back_to_local_snapshot(remote, local, settings):
    service = MenuSyncService(remote, local, settings)
    received = []
    subscription = service.menu_items.subscribe(received.append)
    asyncio.run(service.menu_items.create(item_document()))

    remote.set_online(False)

    assert [item.name for item in received[-1]] == ["Lagman"]
    assert len(received) == 3
    assert subscription.live and not subscription.active
    subscription.unsubscribe()


def test_unsubscribe_stops_callbacks(service, remote):
    received = []
    subscription = service.categories.subscribe(received.append)

    subscription.unsubscribe()
    subscription.unsubscribe()
    asyncio.run(service.categories.create({"name": "Osh"}))

    assert len(received) == 1
    assert remote.feed_count(service.CATEGORIES) == 0


# =============================================================================
# access check / defaults / sync
# =============================================================================

class ExplodingRemoteStore(MockRemoteStore):
    async def health_check(self):
        raise RuntimeError("socket closed")


def test_check_access_never_raises(local, settings):
    assert asyncio.run(MenuSyncService(ExplodingRemoteStore(), local, settings).check_access()) is False
    assert asyncio.run(MenuSyncService(UnreachableRemoteStore(), local, settings).check_access()) is False
    assert asyncio.run(MenuSyncService(MockRemoteStore(), local, settings).check_access()) is True


def test_initialize_default_categories_only_when_empty(service):
    async def scenario():
        await service.initialize_default_categories()
        await service.initialize_default_categories()
        return await service.categories.list_records()

    categories = asyncio.run(scenario())

    assert [c.name for c in categories] == [c["name"] for c in DEFAULT_CATEGORIES]


def test_sync_replays_offline_records_once(local, settings):
    remote = MockRemoteStore(online=False)
    service = MenuSyncService(remote, local, settings)

    async def scenario():
        category_id = await service.categories.create({"name": "Soups", "color": "red"})
        item_id = await service.menu_items.create(item_document())
        remote.set_online(True)
        first = await service.sync_local_to_remote()
        second = await service.sync_local_to_remote()
        remote_items = (await remote.list_documents(service.MENU_ITEMS)).value
        return category_id, item_id, first, second, remote_items

    category_id, item_id, first, second, remote_items = asyncio.run(scenario())

    assert first
    assert first.synced == [f"categories/{category_id}", f"menuItems/{item_id}"]
    assert first.failed == []
    assert second.synced == []
    assert [doc["id"] for doc in remote_items] == [item_id]


def test_sync_isolates_failing_records(local, settings):
    remote = FlakyCreateRemoteStore(reject_ids={"bad"})
    service = MenuSyncService(remote, local, settings)
    # A live feed rewrites the local copy after each successful create
    service.menu_items.subscribe(lambda items: None)
    local.save(settings.menu_items_key, [
        {"id": "good", **item_document(name="Good")},
        {"id": "bad", **item_document(name="Bad")},
    ])

    result = asyncio.run(service.sync_local_to_remote())

    assert result.success
    assert result.synced == ["menuItems/good"]
    assert result.failed == ["menuItems/bad"]
    local_ids = {doc["id"] for doc in local.load_list(settings.menu_items_key)}
    assert local_ids == {"good", "bad"}


def test_sync_reports_unreachable_remote(offline_service):
    result = asyncio.run(offline_service.sync_local_to_remote())

    assert not result
    assert result.error_message
    assert result.to_dict()["synced"] == []


# =============================================================================
# adapter errors / seeded records
# =============================================================================

class RaisingRemoteStore(MockRemoteStore):
    """Remote store whose driver raises instead of returning a result."""

    async def create(self, collection, data, doc_id=None):
        raise RuntimeError("transport closed")

    async def update(self, collection, doc_id, changes):
        raise RuntimeError("transport closed")

    async def delete(self, collection, doc_id):
        raise RuntimeError("transport closed")

    async def list_documents(self, collection, descending=False):
        raise RuntimeError("transport closed")

    def subscribe(self, collection, descending, on_snapshot, on_error):
        raise RuntimeError("feed setup failed")


def test_raising_subscribe_falls_back_once(local, settings):
    service = MenuSyncService(RaisingRemoteStore(), local, settings)
    received = []

    subscription = service.menu_items.subscribe(received.append)

    assert len(received) == 1
    assert [item.id for item in received[0]] == [doc["id"] for doc in DEFAULT_MENU_ITEMS]
    subscription.unsubscribe()
    subscription.unsubscribe()
    assert not subscription.live


def test_raising_remote_operations_fall_back_to_local(local, settings):
    service = MenuSyncService(RaisingRemoteStore(), local, settings)

    async def scenario():
        item_id = await service.menu_items.create(item_document())
        await service.menu_items.update(item_id, {"price": 30000})
        other_id = await service.menu_items.create(item_document(name="Shurpa"))
        await service.menu_items.delete(other_id)
        return item_id, await service.menu_items.list_records()

    item_id, items = asyncio.run(scenario())

    assert [(item.id, item.price) for item in items] == [(item_id, 30000)]
    assert [doc["id"] for doc in local.load_list(settings.menu_items_key)] == [item_id]


def test_sync_with_raising_remote_reports_failure(local, settings):
    class HealthyButRaising(RaisingRemoteStore):
        async def health_check(self):
            return True

    local.save(settings.menu_items_key, [{"id": "a", **item_document()}])
    service = MenuSyncService(HealthyButRaising(), local, settings)

    result = asyncio.run(service.sync_local_to_remote())

    assert not result
    assert "categories" in result.error_message


def test_seeded_defaults_stay_local_on_sync(local, settings):
    remote = MockRemoteStore(online=False)
    service = MenuSyncService(remote, local, settings)

    async def scenario():
        await service.categories.list_records()
        await service.menu_items.list_records()
        remote.set_online(True)
        result = await service.sync_local_to_remote()
        return (
            result,
            (await remote.list_documents(service.MENU_ITEMS)).value,
            (await remote.list_documents(service.CATEGORIES)).value,
        )

    result, remote_items, remote_categories = asyncio.run(scenario())

    assert result.success
    assert result.synced == []
    assert remote_items == []
    assert remote_categories == []


def test_edited_seed_record_is_synced(local, settings):
    remote = MockRemoteStore(online=False)
    service = MenuSyncService(remote, local, settings)
    seeded_id = DEFAULT_MENU_ITEMS[0]["id"]

    async def scenario():
        await service.menu_items.list_records()
        await service.mark_sold_out(seeded_id)
        remote.set_online(True)
        return await service.sync_local_to_remote()

    result = asyncio.run(scenario())

    assert result.synced == [f"menuItems/{seeded_id}"]
