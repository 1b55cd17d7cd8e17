"""
Unit tests for compendium_index/index/builder.py

Tests extraction coverage, failure recovery, the build latch and
persistence failures.
"""
import asyncio

import pytest

from compendium_index.config.settings import IndexCfg
from compendium_index.errors import BuildInProgressError, UnsupportedDialectError
from compendium_index.index.builder import BuildLatch, BuildState, IndexBuilder

from fakes import ExplodingDict, FakePack, FakeSource, dnd_doc

# Mark all tests as async
pytestmark = pytest.mark.asyncio


async def test_latch_test_and_set():
    """try_acquire succeeds once until released."""
    latch = BuildLatch()
    assert latch.state is BuildState.IDLE
    assert latch.try_acquire() is True
    assert latch.state is BuildState.BUILDING
    assert latch.try_acquire() is False
    latch.release()
    assert latch.try_acquire() is True


async def test_every_recognized_document_yields_one_profile(source, index_store):
    """No-loss: one profile per npc/character document, none for others."""
    builder = IndexBuilder(source, index_store, IndexCfg())

    report = await builder.build()

    names = sorted(p.name for p in report.profiles)
    assert names == ["Ancient Red Dragon", "Aria", "Goblin", "Knight", "Orc Warrior", "Young Red Dragon"]
    assert report.pack_count == 2
    assert report.error_count == 0
    assert report.persisted
    assert report.index.metadata.total_profiles == 6
    assert set(report.index.metadata.fingerprints) == {"dnd5e.monsters", "world.heroes"}
    assert report.index.metadata.fingerprints["dnd5e.monsters"].document_count == 5


async def test_one_failing_document_of_ten(index_store):
    """A failing document becomes one flagged placeholder; the build completes."""
    docs = [dnd_doc(f"d{i}", f"Creature {i}", cr=i) for i in range(9)]
    docs.insert(4, {"_id": "bad", "name": "Corrupt", "type": "npc", "system": ExplodingDict()})
    source = FakeSource([FakePack("p", documents=docs)])

    report = await IndexBuilder(source, index_store).build()

    assert len(report.profiles) == 10
    flagged = [p for p in report.profiles if p.extraction_error]
    assert [p.name for p in flagged] == ["Corrupt"]
    assert report.error_count == 1
    assert report.index.metadata.error_count == 1
    assert "(1 extraction errors)" in report.message


async def test_failing_pack_is_skipped(index_store, monsters):
    """A pack whose documents cannot load contributes nothing; others continue."""
    broken = FakePack("broken", documents=[dnd_doc("x", "X")], fail_documents=True)
    source = FakeSource([broken, monsters])

    report = await IndexBuilder(source, index_store).build()

    assert len(report.profiles) == 5
    assert report.error_count == 1
    assert report.failed_packs == ["broken"]
    assert "broken" in report.index.metadata.fingerprints


async def test_unsupported_dialect_aborts_before_touching_packs(source, index_store, memory_store, monsters):
    builder = IndexBuilder(source, index_store, IndexCfg(dialect="gurps"))

    with pytest.raises(UnsupportedDialectError):
        await builder.build()

    assert monsters.document_loads == 0
    assert memory_store.writes == 0
    assert not builder.in_progress


async def test_concurrent_builds_are_single_flight(source, index_store, memory_store):
    """Two concurrent non-forced builds: one succeeds, one raises."""
    builder = IndexBuilder(source, index_store)

    results = await asyncio.gather(builder.build(), builder.build(), return_exceptions=True)

    reports = [r for r in results if not isinstance(r, Exception)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(reports) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], BuildInProgressError)
    assert memory_store.writes == 1


async def test_forced_build_queues_behind_running_build(index_store, memory_store):
    """A forced build waits for the in-flight one, then runs its own."""
    slow = FakePack("slow", documents=[dnd_doc("a", "A")], delay=0.05)
    builder = IndexBuilder(FakeSource([slow]), index_store)

    first = asyncio.create_task(builder.build())
    await asyncio.sleep(0.01)
    assert builder.in_progress

    second = await builder.build(force=True)

    assert first.done()
    assert (await first).persisted
    assert second.persisted
    assert memory_store.writes == 2
    assert slow.document_loads == 2
    assert not builder.in_progress


async def test_persist_failure_keeps_previous_artifact(source, index_store, memory_store, monsters):
    """A failed write is reported, the old artifact survives, profiles are returned."""
    builder = IndexBuilder(source, index_store)
    await builder.build()
    previous = memory_store.data[index_store.key]

    monsters.documents.append(dnd_doc("m6", "Bandit Captain", cr=2))
    memory_store.fail_writes = True

    report = await builder.build()

    assert report.persist_error is not None
    assert not report.persisted
    assert "failed to save index" in report.message
    assert "Bandit Captain" in [p.name for p in report.profiles]
    assert memory_store.data[index_store.key] == previous
    assert (await index_store.load()).metadata.total_profiles == 6


async def test_progress_callback_per_pack(source, index_store):
    seen = []

    async def progress(done, total, label):
        seen.append((done, total, label))

    await IndexBuilder(source, index_store).build(progress=progress)

    assert seen == [(1, 2, "Monsters"), (2, 2, "Heroes")]


async def test_latch_released_after_failure(index_store):
    """The latch returns to idle even when the build raises."""

    class ExplodingSource(FakeSource):
        def list_packs(self, document_type=None):
            raise RuntimeError("host unavailable")

    builder = IndexBuilder(ExplodingSource(), index_store)
    with pytest.raises(RuntimeError):
        await builder.build()
    assert builder.latch.state is BuildState.IDLE
