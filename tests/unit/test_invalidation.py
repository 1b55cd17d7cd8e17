"""
Unit tests for compendium_index/index/invalidation.py and host/hooks.py
"""
import pytest

from compendium_index.config.settings import IndexCfg
from compendium_index.host.hooks import (
    CREATE_COMPENDIUM,
    CREATE_DOCUMENT,
    DELETE_COMPENDIUM,
    DELETE_DOCUMENT,
    UPDATE_DOCUMENT,
    Hooks,
)
from compendium_index.index.cache import IndexCache
from compendium_index.index.invalidation import InvalidationListener

# Mark all tests as async
pytestmark = pytest.mark.asyncio


NPC_IN_PACK = {"_id": "m1", "name": "Goblin", "type": "npc", "pack": "dnd5e.monsters"}


@pytest.fixture
def hooks():
    return Hooks()


async def test_hooks_call_in_order_and_isolate_failures():
    """Handlers run in registration order; one failing does not stop the rest."""
    bus = Hooks()
    seen = []

    def first(arg):
        seen.append(("first", arg))

    def broken(arg):
        raise RuntimeError("boom")

    async def last(arg):
        seen.append(("last", arg))

    bus.on("evt", first)
    bus.on("evt", broken)
    bus.on("evt", last)

    ok = await bus.call("evt", 1)

    assert ok == 2
    assert seen == [("first", 1), ("last", 1)]

    bus.off("evt", broken)
    assert len(bus.handlers("evt")) == 2


@pytest.mark.parametrize("event", [CREATE_DOCUMENT, UPDATE_DOCUMENT, DELETE_DOCUMENT])
async def test_document_events_invalidate(event, cache, hooks, index_store, memory_store):
    await cache.get_index()
    InvalidationListener(cache, hooks).register()

    await hooks.call(event, NPC_IN_PACK, {}, "user1")

    assert index_store.key not in memory_store.data
    assert cache.current is None


async def test_irrelevant_documents_are_ignored(cache, hooks, index_store, memory_store):
    await cache.get_index()
    listener = InvalidationListener(cache, hooks)
    listener.register()

    await hooks.call(UPDATE_DOCUMENT, {"_id": "w1", "name": "Sword", "type": "weapon", "pack": "world.items"})
    await hooks.call(UPDATE_DOCUMENT, {"_id": "a1", "name": "Loose Goblin", "type": "npc", "pack": None})

    assert index_store.key in memory_store.data
    assert listener.invalidations == 0


@pytest.mark.parametrize("event", [CREATE_COMPENDIUM, DELETE_COMPENDIUM])
async def test_pack_events_invalidate_only_tracked_type(event, cache, hooks, index_store, memory_store):
    await cache.get_index()
    InvalidationListener(cache, hooks).register()

    await hooks.call(event, {"id": "world.items", "type": "Item"})
    assert index_store.key in memory_store.data

    await hooks.call(event, {"id": "world.beasts", "type": "Actor"})
    assert index_store.key not in memory_store.data


async def test_auto_rebuild_off_does_nothing(source, index_store, memory_store, hooks):
    """With auto_rebuild disabled the listener leaves the artifact alone."""
    cfg = IndexCfg(auto_rebuild=False)
    cache = IndexCache(source, index_store, cfg)
    await cache.get_index()
    listener = InvalidationListener(cache, hooks, cfg)
    listener.register()

    await hooks.call(UPDATE_DOCUMENT, NPC_IN_PACK)

    assert index_store.key in memory_store.data
    assert cache.current is not None
    assert listener.invalidations == 0

    cfg.auto_rebuild = True
    await hooks.call(UPDATE_DOCUMENT, NPC_IN_PACK)
    assert index_store.key not in memory_store.data


async def test_register_is_idempotent(cache, hooks):
    listener = InvalidationListener(cache, hooks)
    listener.register()
    listener.register()

    assert len(hooks.handlers(UPDATE_DOCUMENT)) == 1

    await hooks.call(UPDATE_DOCUMENT, NPC_IN_PACK)
    assert listener.invalidations == 1


async def test_unregister_detaches(cache, hooks, index_store, memory_store):
    await cache.get_index()
    listener = InvalidationListener(cache, hooks)
    listener.register()
    listener.unregister()

    await hooks.call(DELETE_DOCUMENT, NPC_IN_PACK)

    assert not listener.registered
    assert index_store.key in memory_store.data


async def test_delete_failure_is_swallowed(cache, hooks, memory_store):
    await cache.get_index()
    InvalidationListener(cache, hooks).register()
    memory_store.fail_deletes = True

    ok = await hooks.call(UPDATE_DOCUMENT, NPC_IN_PACK)

    assert ok == 1
    assert cache.current is None
