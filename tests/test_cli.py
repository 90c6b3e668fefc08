import json
from pathlib import Path

from pokecheck.runner.cli import main
from pokecheck.storage.cache_manager import CACHE_KEY, now_ms


def seed_cache(cache_dir: Path) -> None:
    payload = [
        {
            "id": "ODDISH",
            "dexNr": 43,
            "generation": 1,
            "names": {"English": "Oddish"},
            "primaryType": {"names": {"English": "Grass"}},
            "secondaryType": {"names": {"English": "Poison"}},
            "evolutions": [{"id": "GLOOM", "candies": 25, "item": None, "quests": []}],
        },
        {
            "id": "GLOOM",
            "dexNr": 44,
            "generation": 1,
            "names": {"English": "Gloom"},
            "primaryType": {"names": {"English": "Grass"}},
            "secondaryType": {"names": {"English": "Poison"}},
            "evolutions": [{"id": "BELLOSSOM", "candies": 100, "item": "ITEM_SUN_STONE", "quests": []}],
        },
        {
            "id": "BELLOSSOM",
            "dexNr": 182,
            "generation": 2,
            "names": {"English": "Bellossom"},
            "primaryType": {"names": {"English": "Grass"}},
            "evolutions": [],
        },
    ]
    cache_dir.mkdir(parents=True, exist_ok=True)
    record = {"payload": payload, "timestamp": now_ms()}
    (cache_dir / f"{CACHE_KEY}.json").write_text(json.dumps(record))


def run(tmp_path, *argv):
    return main(["--env-file", str(tmp_path / "none.env"), "--cache-dir", str(tmp_path / "cache"), "--quiet", *argv])


def test_search_command(tmp_path, capsys):
    seed_cache(tmp_path / "cache")
    assert run(tmp_path, "search", "oo", "--gen", "1") == 0
    out = capsys.readouterr().out
    assert "Gloom" in out
    assert "Bellossom" not in out
    assert "page 1/1 (1 matches)" in out


def test_evolution_command(tmp_path, capsys):
    seed_cache(tmp_path / "cache")
    assert run(tmp_path, "evolution", "bellossom") == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "Oddish",
        "  -> Gloom  (25 candies)",
        "    -> Bellossom  (100 candies, item sun stone)",
    ]


def test_matchups_command(tmp_path, capsys):
    seed_cache(tmp_path / "cache")
    assert run(tmp_path, "matchups", "43") == 0
    out = capsys.readouterr().out
    assert "weak to:     Fire 2x, Flying 2x, Ice 2x, Psychic 2x" in out
    assert "Grass 0.25x" in out


def test_unknown_entity(tmp_path, capsys):
    seed_cache(tmp_path / "cache")
    assert run(tmp_path, "matchups", "mew") == 1
    assert "No entity matches 'mew'" in capsys.readouterr().out


def test_cache_commands(tmp_path, capsys):
    seed_cache(tmp_path / "cache")
    assert run(tmp_path, "cache", "info") == 0
    assert "state: fresh" in capsys.readouterr().out
    assert run(tmp_path, "cache", "clear") == 0
    assert not (tmp_path / "cache" / f"{CACHE_KEY}.json").exists()
    assert run(tmp_path, "cache", "info") == 0
    assert "state: empty" in capsys.readouterr().out
