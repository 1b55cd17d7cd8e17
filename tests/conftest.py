"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from fakes import dnd_doc, write_pack


@pytest.fixture
def pack_dir(tmp_path) -> Path:
    """A directory with a monster pack, an item pack and a scene pack."""
    root = tmp_path / "packs"
    write_pack(root, "monsters", {
        "id": "dnd5e.monsters",
        "label": "Monsters",
        "type": "Actor",
        "lastModified": 1_700_000_000_000,
        "documents": [
            dnd_doc("m1", "Goblin", cr="1/4"),
            dnd_doc("m2", "Goblin Boss", cr=1),
            dnd_doc("m3", "Knight", cr=3),
            dnd_doc("m4", "Adult Red Dragon", cr=17, creature_type="dragon",
                    resources={"legact": {"value": 3, "max": 3}}),
        ],
    })
    write_pack(root, "items", {
        "id": "world.items",
        "label": "Items",
        "type": "Item",
        "documents": [{"_id": "i1", "name": "Goblin Dagger", "type": "weapon"}],
    })
    write_pack(root, "scenes", {
        "id": "world.scenes",
        "label": "Scenes",
        "type": "Scene",
        "documents": [{"_id": "s1", "name": "Goblin Cave", "type": "base"}],
    })
    return root
