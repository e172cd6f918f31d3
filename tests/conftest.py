import pytest

from storefront.core.config import LocalStoreBackend, Settings
from storefront.schemas import MenuItem, MenuItemVariant
from storefront.services.local import MemoryLocalStore
from storefront.services.remote import MockRemoteStore
from storefront.services.remote.base import RemoteResult
from storefront.services.sync import MenuSyncService


class UnreachableRemoteStore(MockRemoteStore):
    """Remote store that never answers."""

    def __init__(self):
        super().__init__(online=False)


class FlakyCreateRemoteStore(MockRemoteStore):
    """Online store that rejects creates for the listed document ids."""

    def __init__(self, reject_ids):
        super().__init__()
        self.reject_ids = set(reject_ids)

    async def create(self, collection, data, doc_id=None):
        if doc_id in self.reject_ids:
            return RemoteResult.failure(f"rejected {doc_id}")
        return await super().create(collection, data, doc_id=doc_id)


@pytest.fixture
def settings():
    return Settings(
        env_mode="development",
        debug=False,
        local_store_backend=LocalStoreBackend.MEMORY,
    )


@pytest.fixture
def local():
    return MemoryLocalStore()


@pytest.fixture
def remote():
    return MockRemoteStore()


@pytest.fixture
def service(remote, local, settings):
    return MenuSyncService(remote, local, settings)


@pytest.fixture
def offline_service(local, settings):
    return MenuSyncService(UnreachableRemoteStore(), local, settings)


@pytest.fixture
def osh():
    return MenuItem(
        id="osh-1",
        name="Wedding Osh",
        price=25000,
        category="Osh",
        image="/img/osh.jpg",
        variants=[
            MenuItemVariant(id="half", name="Half portion", price=15000, image="/img/osh-half.jpg"),
            MenuItemVariant(id="large", name="Large", price=35000),
        ],
    )


@pytest.fixture
def tea():
    return MenuItem(id="tea-1", name="Green tea", price=15000, category="Drinks", image="/img/tea.jpg")
