"""Browser and operating system taxonomy trees.

Nodes of one forest live in a single arena (``Forest``) and refer to their
parent and children by index. Attributes a node leaves unset (manufacturer,
browser/device type, rendering engine, version pattern) are resolved lazily by
walking up the parent chain on every query.
"""
from dataclasses import dataclass, field
from typing import Generic, Iterator, List, Optional, Pattern, Sequence, Tuple, TypeVar

from core.version_utils import Version, extract_version
from models.reference import (
    BrowserType,
    DeviceType,
    Manufacturer,
    ReferenceTables,
    RenderingEngine,
)

# Manufacturer id occupies the high byte of a node id
ID_SHIFT = 8
MAX_BYTE_ID = 0xFF


def compose_id(manufacturer_id: int, local_id: int) -> int:
    """Build a node id from its manufacturer id and its configured local id."""
    return (manufacturer_id << ID_SHIFT) | local_id


@dataclass(frozen=True, eq=False)
class TaxonomyNode:
    """Common shape of browsers and operating systems."""
    index: int
    key: str
    name: str = ""
    local_id: int = 0
    aliases: Tuple[str, ...] = ()
    exclude_list: Tuple[str, ...] = ()
    manufacturer_key: Optional[str] = None
    parent_index: Optional[int] = None
    children_indices: Tuple[int, ...] = ()
    id: int = 0
    forest: Optional["Forest"] = field(default=None, repr=False)

    @property
    def parent(self) -> Optional["TaxonomyNode"]:
        if self.parent_index is None:
            return None
        return self.forest.node(self.parent_index)

    @property
    def children(self) -> List["TaxonomyNode"]:
        return [self.forest.node(i) for i in self.children_indices]

    @property
    def is_root(self) -> bool:
        return self.parent_index is None

    def ancestry(self) -> Iterator["TaxonomyNode"]:
        """Yield this node, then its parent, and so on up to the root."""
        node = self
        while node is not None:
            yield node
            node = node.parent

    def _resolve(self, attribute: str):
        for node in self.ancestry():
            value = getattr(node, attribute)
            if value:
                return value
        return None

    def resolved_manufacturer(self) -> Manufacturer:
        """Own manufacturer, else the nearest ancestor's, else the unknown record."""
        manufacturers = self.forest.tables.manufacturers
        key = self._resolve("manufacturer_key")
        return manufacturers.get(key) if key else manufacturers.unknown

    def display_group(self) -> str:
        """Family name: the root ancestor's name, e.g. "Safari" for "Mobile Safari"."""
        root = self
        while root.parent is not None:
            root = root.parent
        return root.name


@dataclass(frozen=True, eq=False)
class Browser(TaxonomyNode):
    browser_type_key: Optional[str] = None
    rendering_engine_key: Optional[str] = None
    version_pattern: Optional[Pattern] = None

    def resolved_browser_type(self) -> BrowserType:
        browser_types = self.forest.tables.browser_types
        key = self._resolve("browser_type_key")
        return browser_types.get(key) if key else browser_types.unknown

    def resolved_rendering_engine(self) -> RenderingEngine:
        rendering_engines = self.forest.tables.rendering_engines
        key = self._resolve("rendering_engine_key")
        return rendering_engines.get(key) if key else rendering_engines.unknown

    def resolved_version_pattern(self) -> Optional[Pattern]:
        return self._resolve("version_pattern")

    def extract_version(self, user_agent: str) -> Optional[Version]:
        """
        Extract this browser's version from a user agent.

        Returns None when no pattern is set on the node or its ancestors, or
        when the pattern does not match.
        """
        return extract_version(self.resolved_version_pattern(), user_agent)


@dataclass(frozen=True, eq=False)
class OperatingSystem(TaxonomyNode):
    device_type_key: Optional[str] = None

    def resolved_device_type(self) -> DeviceType:
        device_types = self.forest.tables.device_types
        key = self._resolve("device_type_key")
        return device_types.get(key) if key else device_types.unknown


N = TypeVar("N", bound=TaxonomyNode)


class Forest(Generic[N]):
    """Arena owning every node of one taxonomy, roots kept in configuration order."""

    def __init__(
        self,
        nodes: Sequence[N],
        root_indices: Sequence[int],
        unknown_index: int,
        tables: ReferenceTables,
    ):
        self._nodes: Tuple[N, ...] = tuple(nodes)
        self._root_indices: Tuple[int, ...] = tuple(root_indices)
        self._unknown_index = unknown_index
        self._tables = tables
        # Nodes are frozen: the back-reference and the composed id are the only
        # fields set after construction, and only here
        for node in self._nodes:
            object.__setattr__(node, "forest", self)
        # Ids need every ancestor in place, whatever the document order
        for node in self._nodes:
            object.__setattr__(node, "id", compose_id(node.resolved_manufacturer().id, node.local_id))

    @property
    def tables(self) -> ReferenceTables:
        return self._tables

    def node(self, index: int) -> N:
        return self._nodes[index]

    @property
    def roots(self) -> List[N]:
        return [self._nodes[i] for i in self._root_indices]

    @property
    def unknown(self) -> N:
        """Sentinel returned when nothing in the forest matches."""
        return self._nodes[self._unknown_index]

    def walk(self) -> Iterator[N]:
        """Depth-first traversal in configuration order."""
        stack = list(reversed(self._root_indices))
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children_indices))

    def find(self, key: str) -> Optional[N]:
        """First node with ``key`` in traversal order."""
        for node in self.walk():
            if node.key == key:
                return node
        return None

    def __iter__(self) -> Iterator[N]:
        return self.walk()

    def __len__(self) -> int:
        return len(self._nodes)
