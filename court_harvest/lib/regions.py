"""Region name to federal district lookup.

The district table is a data asset (``court_harvest/data/regions.toml``)
so district membership can change without touching the selection logic.
A resolver can also be built from an in-memory mapping for tests.
"""

import tomllib
from pathlib import Path
from typing import Dict, Iterable, List, Optional

DEFAULT_DISTRICT = "Приволжский федеральный округ"
DEFAULT_REGION = "Республика Татарстан"

REGIONS_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "regions.toml"


def load_region_table(path: Optional[Path] = None) -> dict:
    """Read the district table TOML; returns the raw parsed document."""
    table_path = Path(path) if path else REGIONS_TABLE_PATH
    with open(table_path, "rb") as f:
        return tomllib.load(f)


class RegionResolver:
    """Resolve region names to federal districts and group region lists.

    Resolution order for a name: a district name (or one of its tree
    label variants) resolves to itself, then an exact region name, then a
    known alias, then case-insensitive containment either way against the
    canonical region names. Anything else falls back to the default
    district.
    """

    def __init__(self, table: Optional[dict] = None):
        data = table if table is not None else load_region_table()
        self.default_district: str = data.get("default_district") or DEFAULT_DISTRICT

        self._variants: Dict[str, List[str]] = {}
        self._region_to_district: Dict[str, str] = {}
        for district, entry in (data.get("districts") or {}).items():
            variants = list(entry.get("variants") or [])
            if district not in variants:
                variants.insert(0, district)
            self._variants[district] = variants
            for region in entry.get("regions") or []:
                self._region_to_district[region] = district

        self._aliases: Dict[str, str] = dict(data.get("aliases") or {})
        self._variant_to_district: Dict[str, str] = {
            v.lower(): d for d, vs in self._variants.items() for v in vs
        }

    # lookups

    @property
    def districts(self) -> List[str]:
        return list(self._variants.keys())

    def is_district(self, name: str) -> bool:
        return (name or "").strip().lower() in self._variant_to_district

    def district_variants(self, district: str) -> List[str]:
        """Labels to try, in order, when locating a district node in the tree."""
        return list(self._variants.get(district, [district]))

    def regions_of(self, district: str) -> List[str]:
        return [r for r, d in self._region_to_district.items() if d == district]

    def all_regions(self) -> Dict[str, List[str]]:
        return {d: self.regions_of(d) for d in self.districts}

    def canonical_name(self, name: str) -> Optional[str]:
        """Return the canonical region name for `name`, or None if unknown."""
        key = (name or "").strip()
        if not key:
            return None
        if key in self._region_to_district:
            return key
        if key in self._aliases:
            return self._aliases[key]
        lowered = key.lower()
        for alias, canonical in self._aliases.items():
            if alias.lower() == lowered:
                return canonical
        for region in self._region_to_district:
            r = region.lower()
            if lowered == r or lowered in r or r in lowered:
                return region
        return None

    def resolve(self, name: str) -> str:
        """Return the federal district for a region (or district) name."""
        key = (name or "").strip()
        district = self._variant_to_district.get(key.lower())
        if district:
            return district
        canonical = self.canonical_name(key)
        if canonical:
            return self._region_to_district[canonical]
        return self.default_district

    def group_by_district(self, regions: Iterable[str]) -> Dict[str, List[str]]:
        """Partition `regions` by district, keeping first-seen district order.

        Each input name lands in exactly one group, unchanged.
        """
        grouped: Dict[str, List[str]] = {}
        for region in regions:
            grouped.setdefault(self.resolve(region), []).append(region)
        return grouped


_default_resolver: Optional[RegionResolver] = None


def get_resolver() -> RegionResolver:
    """Shared resolver backed by the packaged table."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = RegionResolver()
    return _default_resolver
