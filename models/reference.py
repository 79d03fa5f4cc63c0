from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Generic, Iterator, List, Mapping, Tuple, TypeVar

from core.errors import ReferenceNotFoundError

# Reference keys are namespaced so they never collide with tree-node keys
KEY_PREFIX = ":"
UNKNOWN_KEY = "unknown"


def namespaced(key: str) -> str:
    """Return ``key`` with the reference-table prefix, adding it if missing."""
    return key if key.startswith(KEY_PREFIX) else KEY_PREFIX + key


@dataclass(frozen=True)
class ApplicationType:
    key: str
    name: str


@dataclass(frozen=True)
class DeviceType:
    key: str
    name: str


@dataclass(frozen=True)
class BrowserType:
    key: str
    name: str


@dataclass(frozen=True)
class RenderingEngine:
    key: str
    name: str


@dataclass(frozen=True)
class Manufacturer:
    """A vendor; its id is the high byte of its browsers' and systems' ids."""
    id: int
    key: str
    name: str


@dataclass(frozen=True)
class Application:
    """A known application. Loaded with the rule set but never matched against."""
    id: int
    key: str
    name: str
    aliases: Tuple[str, ...] = field(default_factory=tuple)
    application_type: str = ""
    manufacturer: str = ""


R = TypeVar("R")


class ReferenceTable(Generic[R]):
    """Immutable lookup of reference records by namespaced key."""

    def __init__(self, kind: str, records: List[R], zero: R):
        """
        Args:
            kind: Human readable table name used in error messages
            records: Records in configuration order
            zero: Record returned by ``unknown`` when none is keyed "unknown"
        """
        self.kind = kind
        by_key: Dict[str, R] = {}
        for record in records:
            by_key[namespaced(record.key)] = record
        self._records: Mapping[str, R] = MappingProxyType(by_key)
        self._zero = zero

    def get(self, key: str) -> R:
        """Look up a record, raising ReferenceNotFoundError if it is not registered."""
        try:
            return self._records[namespaced(key)]
        except KeyError:
            raise ReferenceNotFoundError(self.kind, key) from None

    @property
    def unknown(self) -> R:
        """Record used when nothing in an ancestry chain sets this attribute."""
        return self._records.get(namespaced(UNKNOWN_KEY), self._zero)

    def keys(self) -> List[str]:
        return list(self._records.keys())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and namespaced(key) in self._records

    def __iter__(self) -> Iterator[R]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"ReferenceTable({self.kind!r}, {len(self)} records)"


def empty_table(kind: str, zero: R) -> ReferenceTable[R]:
    return ReferenceTable(kind, [], zero)


@dataclass(frozen=True)
class ReferenceTables:
    """All reference tables of a rule set."""
    application_types: ReferenceTable[ApplicationType] = field(
        default_factory=lambda: empty_table("application type", ApplicationType("", ""))
    )
    device_types: ReferenceTable[DeviceType] = field(
        default_factory=lambda: empty_table("device type", DeviceType("", ""))
    )
    browser_types: ReferenceTable[BrowserType] = field(
        default_factory=lambda: empty_table("browser type", BrowserType("", ""))
    )
    rendering_engines: ReferenceTable[RenderingEngine] = field(
        default_factory=lambda: empty_table("rendering engine", RenderingEngine("", ""))
    )
    manufacturers: ReferenceTable[Manufacturer] = field(
        default_factory=lambda: empty_table("manufacturer", Manufacturer(0, "", ""))
    )
    applications: ReferenceTable[Application] = field(
        default_factory=lambda: empty_table("application", Application(0, "", ""))
    )
