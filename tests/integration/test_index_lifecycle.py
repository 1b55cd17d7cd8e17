"""
Integration test: the enhanced index over real pack files and a file store.

Covers build and persist, reload without rebuild, staleness after a pack
file changes, and invalidation through the hook bus.
"""
import json

import pytest

from compendium_index.api.data_access import CompendiumDataAccess
from compendium_index.config.settings import Settings, StoreCfg
from compendium_index.host.directory import DirectoryPackSource
from compendium_index.host.hooks import DELETE_DOCUMENT, Hooks

from fakes import dnd_doc, write_pack


@pytest.fixture
def settings(tmp_path):
    return Settings(store=StoreCfg(root=str(tmp_path / "store"), world_id="campaign"))


@pytest.fixture
def artifact(tmp_path):
    return tmp_path / "store" / "worlds" / "campaign" / "enhanced-creature-index.json"


@pytest.mark.asyncio
async def test_index_lifecycle(pack_dir, settings, artifact):
    hooks = Hooks()

    # First query builds and persists
    first = CompendiumDataAccess(DirectoryPackSource(pack_dir), settings, hooks=hooks)
    result = await first.list_creatures_by_criteria({"creatureType": "dragon"})

    assert result.names == ["Adult Red Dragon"]
    assert not result.used_fallback
    assert first.cache.last_report is not None
    assert artifact.exists()

    data = json.loads(artifact.read_text(encoding="utf-8"))
    assert data["metadata"]["total_profiles"] == 4
    assert data["metadata"]["dialect"] == "dnd5e"
    pairs = data["metadata"]["fingerprints"]
    assert isinstance(pairs, list)
    assert [pair[0] for pair in pairs] == ["dnd5e.monsters"]
    assert pairs[0][1]["document_count"] == 4
    first_bytes = artifact.read_bytes()

    # A fresh process loads the artifact instead of rebuilding
    second = CompendiumDataAccess(DirectoryPackSource(pack_dir), settings)
    result = await second.list_creatures_by_criteria({"challenge_rating": {"min": 1, "max": 3}})

    assert result.names == ["Goblin Boss", "Knight"]
    assert result.summary.total_indexed == 4
    assert second.cache.last_report is None
    assert artifact.read_bytes() == first_bytes

    # Editing a pack file makes the index stale
    monsters = json.loads((pack_dir / "monsters.json").read_text(encoding="utf-8"))
    monsters["documents"].append(dnd_doc("m5", "Hobgoblin Captain", cr=3))
    monsters["lastModified"] += 1000
    write_pack(pack_dir, "monsters", monsters)
    second.source.refresh()

    result = await second.list_creatures_by_criteria({"challenge_rating": 3})

    assert result.names == ["Hobgoblin Captain", "Knight"]
    assert second.cache.last_report is not None
    assert json.loads(artifact.read_text(encoding="utf-8"))["metadata"]["total_profiles"] == 5

    # A document event on a tracked pack removes the artifact
    await hooks.call(DELETE_DOCUMENT, {"_id": "m1", "name": "Goblin", "type": "npc", "pack": "dnd5e.monsters"})

    assert not artifact.exists()
    assert first.cache.current is None
    first.close()


@pytest.mark.asyncio
async def test_free_text_search_over_pack_files(pack_dir, settings):
    access = CompendiumDataAccess(DirectoryPackSource(pack_dir), settings)

    results = await access.search_compendium("goblin")
    assert [r.name for r in results] == ["Goblin", "Goblin Boss", "Goblin Dagger"]

    filtered = await access.search_compendium("dragon", "Actor", {"challenge_rating": {"min": 15}})
    assert [r.name for r in filtered] == ["Adult Red Dragon"]
    assert filtered[0].summary == "CR 17 dragon from Monsters"
