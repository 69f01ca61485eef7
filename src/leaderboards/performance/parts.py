"""
Combo name parsing and per-part performance.

A combo name such as ``"Dran Sword 3-60F"`` is the concatenation of a blade,
a ratchet and a bit. Custom-line combos are written as lockchip + main blade
+ assist blade + ratchet + bit. The parser resolves names against a
:class:`PartsCatalog` so that combo performance can be regrouped by part.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Sequence

import polars as pl

from leaderboards.core.config import PerformanceConfig, SelectionConfig
from leaderboards.core.constants import (
    CUSTOM_BLADE_LINE,
    PART_BIT,
    PART_BLADE,
    PART_RATCHET,
    PART_TYPE,
    PART_TYPES,
    STANDARD_BLADE_LINES,
)
from leaderboards.core.logging import get_logger
from leaderboards.core.results import PerformanceResult
from leaderboards.performance.aggregator import EntityPerformanceAggregator

if TYPE_CHECKING:
    from leaderboards.core.convert import MatchInput
    from leaderboards.performance.aggregator import AttributeExtractor

logger = get_logger(__name__)


@dataclass(frozen=True)
class Blade:
    name: str
    line: str


@dataclass(frozen=True)
class Bit:
    name: str
    shortcut: Optional[str] = None

    @property
    def label(self) -> str:
        """Name used in parsed combos: the shortcut when there is one."""
        return self.shortcut or self.name


def _names(rows: Iterable[Mapping[str, Any]], key: str) -> list[str]:
    names = []
    for row in rows:
        value = row.get(key)
        if isinstance(value, str) and value.strip():
            names.append(value.strip())
    return names


@dataclass(frozen=True)
class PartsCatalog:
    """Known part names, grouped by part type."""

    blades: tuple[Blade, ...] = ()
    ratchets: tuple[str, ...] = ()
    bits: tuple[Bit, ...] = ()
    lockchips: tuple[str, ...] = ()
    assist_blades: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Sequence[Mapping[str, Any]]]) -> PartsCatalog:
        """Build a catalog from a parts database export.

        Table keys may be snake_case (``blades``, ``ratchets``, ``bits``,
        ``lockchips``, ``assist_blades``) or the export's capitalized names.
        Rows use the database layout: ``{"Blades": ..., "Line": ...}``,
        ``{"Ratchet": ...}``, ``{"Bit": ..., "Shortcut": ...}``, ``{"Lockchip": ...}`` and
        ``{"Assist Blade": ...}``.
        """
        def rows(*keys: str) -> list[Mapping[str, Any]]:
            for key in keys:
                if data.get(key):
                    return list(data[key])
            return []

        blades = tuple(
            Blade(name=str(row["Blades"]).strip(), line=str(row.get("Line") or "").strip())
            for row in rows("blades", "Blades")
            if isinstance(row.get("Blades"), str) and row["Blades"].strip()
        )
        bits = tuple(
            Bit(
                name=str(row["Bit"]).strip(),
                shortcut=(str(row["Shortcut"]).strip() or None)
                if row.get("Shortcut")
                else None,
            )
            for row in rows("bits", "Bits")
            if isinstance(row.get("Bit"), str) and row["Bit"].strip()
        )
        return cls(
            blades=blades,
            ratchets=tuple(_names(rows("ratchets", "Ratchets"), "Ratchet")),
            bits=bits,
            lockchips=tuple(_names(rows("lockchips", "Lockchips"), "Lockchip")),
            assist_blades=tuple(
                _names(rows("assist_blades", "assistBlades", "Assist Blades"), "Assist Blade")
            ),
        )

    @classmethod
    def from_json(cls, path: str | Path) -> PartsCatalog:
        with open(path, encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))

    def blades_in_line(self, line: str) -> list[str]:
        return [blade.name for blade in self.blades if blade.line == line]


@dataclass(frozen=True)
class ParsedCombo:
    """Parts of one combo name. Unparseable names have no parts."""

    name: str
    blade: Optional[str] = None
    ratchet: Optional[str] = None
    bit: Optional[str] = None
    lockchip: Optional[str] = None
    main_blade: Optional[str] = None
    assist_blade: Optional[str] = None
    is_custom: bool = False

    @property
    def is_parsed(self) -> bool:
        return self.bit is not None

    def part(self, part_type: str) -> Optional[str]:
        """Return the named part, or None when this combo lacks it.

        Raises:
            ValueError: If ``part_type`` is not a known part type.
        """
        if part_type not in PART_TYPES:
            raise ValueError(
                f"Unknown part type: {part_type!r}; expected one of {PART_TYPES}"
            )
        return getattr(self, part_type)

    def parts(self) -> dict[str, str]:
        return {
            part_type: value
            for part_type in PART_TYPES
            if (value := getattr(self, part_type)) is not None
        }


def _longest_first(names: Iterable[str]) -> list[str]:
    return sorted(names, key=len, reverse=True)


@dataclass
class ComboParser:
    """Split combo names into parts using a :class:`PartsCatalog`.

    Standard lines are tried in order (Basic, Unique, X-Over) before the
    Custom line. Suffix parts are matched from the end of the name, longest
    candidate first; bit shortcuts are tried before full bit names. The
    blade must then equal what is left of the name exactly.

    Examples:
        >>> catalog = PartsCatalog(
        ...     blades=(Blade("Dran Sword", "Basic"),),
        ...     ratchets=("3-60",),
        ...     bits=(Bit("Flat", "F"),),
        ... )
        >>> ComboParser(catalog).parse("Dran Sword 3-60F").parts()
        {'blade': 'Dran Sword', 'ratchet': '3-60', 'bit': 'F'}
    """

    catalog: PartsCatalog
    _cache: dict[str, ParsedCombo] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        bits = sorted(
            self.catalog.bits, key=lambda bit: len(bit.label), reverse=True
        )
        self._bit_shortcuts = [(bit.shortcut, bit) for bit in bits if bit.shortcut]
        self._bit_names = [(bit.name, bit) for bit in bits]
        self._ratchets = _longest_first(self.catalog.ratchets)
        self._lockchips = _longest_first(self.catalog.lockchips)
        self._assist_blades = _longest_first(self.catalog.assist_blades)

    def _match_bit(self, text: str) -> tuple[str, str] | None:
        for candidates in (self._bit_shortcuts, self._bit_names):
            for matched, bit in candidates:
                if text.endswith(matched):
                    return text[: len(text) - len(matched)].strip(), bit.label
        return None

    @staticmethod
    def _match_suffix(text: str, names: Sequence[str]) -> tuple[str, str] | None:
        for name in names:
            if text.endswith(name):
                return text[: len(text) - len(name)].strip(), name
        return None

    def _parse_standard(self, name: str, line: str) -> ParsedCombo | None:
        bit_match = self._match_bit(name)
        if bit_match is None:
            return None
        remaining, bit = bit_match

        ratchet_match = self._match_suffix(remaining, self._ratchets)
        if ratchet_match is None:
            return None
        remaining, ratchet = ratchet_match

        if remaining not in self.catalog.blades_in_line(line):
            return None
        return ParsedCombo(name=name, blade=remaining, ratchet=ratchet, bit=bit)

    def _parse_custom(self, name: str) -> ParsedCombo | None:
        lockchip = next(
            (chip for chip in self._lockchips if name.startswith(chip)), None
        )
        if lockchip is None:
            return None
        remaining = name[len(lockchip):].strip()

        bit_match = self._match_bit(remaining)
        if bit_match is None:
            return None
        remaining, bit = bit_match

        ratchet_match = self._match_suffix(remaining, self._ratchets)
        if ratchet_match is None:
            return None
        remaining, ratchet = ratchet_match

        assist_match = self._match_suffix(remaining, self._assist_blades)
        if assist_match is None:
            return None
        remaining, assist_blade = assist_match

        if remaining not in self.catalog.blades_in_line(CUSTOM_BLADE_LINE):
            return None
        return ParsedCombo(
            name=name,
            ratchet=ratchet,
            bit=bit,
            lockchip=lockchip,
            main_blade=remaining,
            assist_blade=assist_blade,
            is_custom=True,
        )

    def parse(self, name: str | None) -> ParsedCombo:
        """Parse one combo name. Never raises on unknown names."""
        if name is None or not name.strip():
            return ParsedCombo(name=name or "")

        cached = self._cache.get(name)
        if cached is not None:
            return cached

        text = name.strip()
        parsed = None
        for line in STANDARD_BLADE_LINES:
            parsed = self._parse_standard(text, line)
            if parsed is not None:
                break
        if parsed is None:
            parsed = self._parse_custom(text)
        if parsed is None:
            logger.debug(f"Could not parse combo name {name!r}")
            parsed = ParsedCombo(name=name)
        else:
            parsed = replace(parsed, name=name)

        self._cache[name] = parsed
        return parsed

    def extractor(self, part_type: str) -> AttributeExtractor:
        """Return a ``group_by`` callable mapping a combo name to one part.

        Raises:
            ValueError: If ``part_type`` is not a known part type.
        """
        if part_type not in PART_TYPES:
            raise ValueError(
                f"Unknown part type: {part_type!r}; expected one of {PART_TYPES}"
            )

        def extract(entity: str) -> Optional[str]:
            return self.parse(entity).part(part_type)

        return extract


DEFAULT_BREAKDOWN_PARTS = (PART_BLADE, PART_RATCHET, PART_BIT)


def part_breakdown(
    matches: MatchInput,
    parser: ComboParser,
    parts: Sequence[str] | None = None,
    config: PerformanceConfig | None = None,
    *,
    per_owner: bool = False,
    selection: SelectionConfig | None = None,
) -> PerformanceResult:
    """Performance of every part used in ``matches``.

    Args:
        matches: Match records with combo names in ``entity_a``/``entity_b``.
        parser: Parser holding the parts catalog.
        parts: Part types to report. Defaults to blade, ratchet and bit.
        config: Performance configuration. Defaults to None.
        per_owner: Keep one row per (part, owner). Defaults to False.
        selection: Optional caller policy for practice exclusion and
            grouping filters. Defaults to None.

    Returns:
        PerformanceResult whose ``entities`` frame stacks one block per part
        type with a leading ``part_type`` column.

    Raises:
        ValueError: If a requested part type is unknown.
    """
    parts = tuple(parts) if parts is not None else DEFAULT_BREAKDOWN_PARTS
    extractors = {part_type: parser.extractor(part_type) for part_type in parts}

    aggregator = EntityPerformanceAggregator(config, selection=selection)
    result = aggregator.breakdown(
        matches, extractors, label=PART_TYPE, per_owner=per_owner
    )
    logger.info(
        f"Part breakdown over {', '.join(parts)}: {result.entities.height} rows"
    )
    return result


def parse_combos(parser: ComboParser, names: Iterable[str]) -> pl.DataFrame:
    """Tabulate parsed parts for a list of combo names, one row per name."""
    rows = []
    for name in names:
        parsed = parser.parse(name)
        rows.append(
            {
                "combo": name,
                "is_custom": parsed.is_custom,
                "is_parsed": parsed.is_parsed,
                **{part_type: parsed.part(part_type) for part_type in PART_TYPES},
            }
        )
    schema = {"combo": pl.Utf8, "is_custom": pl.Boolean, "is_parsed": pl.Boolean}
    schema.update({part_type: pl.Utf8 for part_type in PART_TYPES})
    return pl.DataFrame(rows, schema=schema)
