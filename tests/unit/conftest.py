"""
Shared fixtures for index and retrieval unit tests.
"""
import pytest

from compendium_index.config.settings import IndexCfg, Settings, StoreCfg
from compendium_index.index.cache import IndexCache
from compendium_index.persist.file_store import FileStore
from compendium_index.persist.index_store import IndexStore
from compendium_index.persist.paths import IndexPaths
from compendium_index.persist.sqlite_store import KVStore

from fakes import FakePack, FakeSource, MemoryStore, dnd_doc


@pytest.fixture
def kv(tmp_path):
    """Create a temporary KVStore instance."""
    store = KVStore(tmp_path / "index.db")
    yield store
    store.close()


@pytest.fixture
def file_store(tmp_path):
    return FileStore(tmp_path / "store")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def paths():
    return IndexPaths(world_id="test-world")


@pytest.fixture
def index_store(memory_store, paths):
    return IndexStore(memory_store, paths)


@pytest.fixture
def settings(tmp_path):
    """Default settings with the store under tmp_path."""
    return Settings(store=StoreCfg(root=str(tmp_path / "store"), world_id="test-world"))


@pytest.fixture
def index_cfg():
    return IndexCfg()


@pytest.fixture
def monsters():
    """A pack of dnd5e monsters across a few challenge ratings."""
    return FakePack(
        "dnd5e.monsters",
        label="Monsters",
        documents=[
            dnd_doc("m1", "Goblin", cr="1/4"),
            dnd_doc("m2", "Orc Warrior", cr=1),
            dnd_doc("m3", "Knight", cr=3),
            dnd_doc("m4", "Young Red Dragon", cr=10, creature_type="dragon"),
            dnd_doc("m5", "Ancient Red Dragon", cr=24, creature_type="dragon",
                    resources={"legact": {"value": 3, "max": 3}}),
        ],
    )


@pytest.fixture
def heroes():
    return FakePack(
        "world.heroes",
        label="Heroes",
        documents=[
            dnd_doc("h1", "Aria", cr=5, kind="character"),
            {"_id": "i1", "name": "Longsword", "type": "weapon"},
        ],
    )


@pytest.fixture
def source(monsters, heroes):
    scenes = FakePack("world.scenes", label="Scenes", document_type="Scene",
                      documents=[{"_id": "s1", "name": "Goblin Cave", "type": "base"}])
    items = FakePack("world.items", label="Items", document_type="Item",
                     documents=[{"_id": "w1", "name": "Goblin Dagger", "type": "weapon"}])
    return FakeSource([monsters, heroes, scenes, items])


@pytest.fixture
def cache(source, index_store, index_cfg):
    return IndexCache(source, index_store, index_cfg)
