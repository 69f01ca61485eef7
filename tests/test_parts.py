import json

import pytest

from leaderboards.performance.parts import (
    Bit,
    Blade,
    ComboParser,
    PartsCatalog,
    parse_combos,
    part_breakdown,
)


@pytest.fixture
def catalog() -> PartsCatalog:
    return PartsCatalog(
        blades=(
            Blade("Dran Sword", "Basic"),
            Blade("Wizard Rod", "Basic"),
            Blade("Cobalt Dragoon", "Unique"),
            Blade("Brave", "Custom"),
        ),
        ratchets=("3-60", "9-60", "1-60"),
        bits=(Bit("Flat", "F"), Bit("Low Flat", "LF"), Bit("Ball", "B")),
        lockchips=("Emperor",),
        assist_blades=("Slash",),
    )


def test_parse_standard_combo(catalog):
    parsed = ComboParser(catalog).parse("Dran Sword 3-60F")
    assert parsed.parts() == {"blade": "Dran Sword", "ratchet": "3-60", "bit": "F"}
    assert not parsed.is_custom


def test_longest_bit_shortcut_wins(catalog):
    parsed = ComboParser(catalog).parse("Dran Sword 3-60LF")
    assert parsed.bit == "LF"
    assert parsed.ratchet == "3-60"


def test_full_bit_name_is_reported_by_shortcut(catalog):
    parsed = ComboParser(catalog).parse("Wizard Rod 9-60 Ball")
    assert parsed.blade == "Wizard Rod"
    assert parsed.ratchet == "9-60"
    assert parsed.bit == "B"


def test_later_standard_line_is_tried(catalog):
    parsed = ComboParser(catalog).parse("Cobalt Dragoon 1-60F")
    assert parsed.blade == "Cobalt Dragoon"


def test_parse_custom_combo(catalog):
    parsed = ComboParser(catalog).parse("Emperor Brave Slash 3-60F")
    assert parsed.is_custom
    assert parsed.parts() == {
        "main_blade": "Brave",
        "ratchet": "3-60",
        "bit": "F",
        "lockchip": "Emperor",
        "assist_blade": "Slash",
    }
    assert parsed.blade is None


def test_unknown_combo_has_no_parts(catalog):
    parser = ComboParser(catalog)
    parsed = parser.parse("Hells Scythe 4-60T")
    assert not parsed.is_parsed
    assert parsed.part("blade") is None
    assert parser.parse("").parts() == {}
    with pytest.raises(ValueError):
        parsed.part("gear")
    with pytest.raises(ValueError):
        parser.extractor("gear")


def test_catalog_from_database_export(tmp_path):
    export = {
        "blades": [
            {"Blades": "Dran Sword", "Line": "Basic"},
            {"Blades": "Brave", "Line": "Custom"},
            {"Blades": "", "Line": "Basic"},
        ],
        "ratchets": [{"Ratchet": "3-60"}],
        "bits": [{"Bit": "Flat", "Shortcut": "F"}, {"Bit": "Orb", "Shortcut": ""}],
        "lockchips": [{"Lockchip": "Emperor"}],
        "assistBlades": [{"Assist Blade": "Slash"}],
    }
    path = tmp_path / "parts.json"
    path.write_text(json.dumps(export))

    catalog = PartsCatalog.from_json(path)
    assert catalog.blades_in_line("Basic") == ["Dran Sword"]
    assert catalog.bits == (Bit("Flat", "F"), Bit("Orb", None))
    assert catalog.assist_blades == ("Slash",)
    assert ComboParser(catalog).parse("Dran Sword 3-60Orb").bit == "Orb"


def test_parse_combos_table(catalog):
    table = parse_combos(ComboParser(catalog), ["Dran Sword 3-60F", "Nope"])
    assert table.get_column("is_parsed").to_list() == [True, False]
    assert table.get_column("blade").to_list() == ["Dran Sword", None]


def test_part_breakdown_stacks_one_block_per_part(catalog):
    matches = [
        {
            "participant_a": "A",
            "participant_b": "B",
            "winner": "A",
            "entity_a": "Dran Sword 3-60F",
            "entity_b": "Wizard Rod 3-60B",
            "points_awarded": 2,
        },
        {
            "participant_a": "A",
            "participant_b": "B",
            "winner": "A",
            "entity_a": "Dran Sword 9-60F",
            "entity_b": "Wizard Rod 3-60B",
            "points_awarded": 1,
        },
    ]
    result = part_breakdown(matches, ComboParser(catalog))
    rows = {
        (row["part_type"], row["entity"]): row
        for row in result.entities.iter_rows(named=True)
    }

    assert result.entities.columns[0] == "part_type"
    assert set(result.entities.get_column("part_type")) == {"blade", "ratchet", "bit"}
    assert rows[("blade", "Dran Sword")]["wins"] == 2
    assert rows[("blade", "Dran Sword")]["total_points"] == 3
    assert rows[("blade", "Wizard Rod")]["losses"] == 2
    assert rows[("ratchet", "3-60")]["total_matches"] == 3
    assert rows[("ratchet", "3-60")]["entity_count"] == 2
    assert rows[("ratchet", "9-60")]["wins"] == 1
    assert rows[("bit", "F")]["win_rate"] == 1.0
    assert rows[("bit", "B")]["win_rate"] == 0.0
