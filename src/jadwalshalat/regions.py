from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from jadwalshalat.cache_store import Cache, CacheMiss
from jadwalshalat.errors import InvalidRegion, ParseError

REGION_CATALOG_KEY = "bimas-daerah"

_FIELDS = ("provinsi", "provinsi_token", "kabupaten", "kabupaten_token")


@dataclass(frozen=True)
class Region:
    province: str
    province_token: str
    regency: str
    regency_token: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "provinsi": self.province,
            "provinsi_token": self.province_token,
            "kabupaten": self.regency,
            "kabupaten_token": self.regency_token,
        }


def region_from_dict(payload: Any) -> Region:
    if not isinstance(payload, dict):
        raise ParseError("Region entry must be a mapping")
    try:
        values = [payload[name] for name in _FIELDS]
    except KeyError as exc:
        raise ParseError(f"Missing field in region entry: {exc.args[0]}") from exc
    if not all(isinstance(value, str) for value in values):
        raise ParseError(f"Region entry fields must be strings: {payload!r}")
    return Region(
        province=values[0],
        province_token=values[1],
        regency=values[2],
        regency_token=values[3],
    )


class RegionCatalog:
    """Regions in the order the remote enumerated them, provinces first."""

    def __init__(self, regions: Iterable[Region]) -> None:
        self._regions: Tuple[Region, ...] = tuple(regions)

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegionCatalog):
            return NotImplemented
        return self._regions == other._regions

    def __repr__(self) -> str:
        return f"RegionCatalog({len(self._regions)} regions)"

    @property
    def regions(self) -> Tuple[Region, ...]:
        return self._regions

    def find(self, province: str, regency: str) -> Region:
        # Stored names are upper-case; inputs are matched as-is otherwise.
        wanted = (province.upper(), regency.upper())
        for region in self._regions:
            if (region.province, region.regency) == wanted:
                return region
        raise InvalidRegion(f"Region '{wanted[0]} {wanted[1]}' does not exist in catalog")

    def provinces(self) -> List[str]:
        seen: Dict[str, None] = {}
        for region in self._regions:
            seen.setdefault(region.province, None)
        return list(seen)

    def regencies(self, province: Optional[str] = None) -> List[Region]:
        if province is None:
            return list(self._regions)
        wanted = province.upper()
        return [region for region in self._regions if region.province == wanted]

    def to_document(self) -> List[Dict[str, str]]:
        return [region.to_dict() for region in self._regions]


def catalog_from_document(document: Any) -> RegionCatalog:
    if not isinstance(document, list):
        raise ParseError("Region catalog document must be a list")
    return RegionCatalog(region_from_dict(item) for item in document)


class RegionSource(Protocol):
    def fetch_all(self) -> Sequence[Region]:
        ...


class RegionCatalogResolver:
    def __init__(self, *, cache: Cache, source: RegionSource) -> None:
        self._cache = cache
        self._source = source
        self._logger = logging.getLogger(self.__class__.__name__)

    def resolve(self) -> RegionCatalog:
        try:
            cached = self._cache.get(REGION_CATALOG_KEY)
        except CacheMiss:
            pass
        else:
            return catalog_from_document(cached)

        self._logger.info("Region catalog not cached, downloading now")
        catalog = RegionCatalog(self._source.fetch_all())
        try:
            self._cache.put(REGION_CATALOG_KEY, catalog.to_document())
        except OSError as exc:
            self._logger.warning("Could not persist region catalog: %s", exc)
        return catalog
