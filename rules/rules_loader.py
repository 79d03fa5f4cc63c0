"""Loads a user-agent rule set from YAML into a ClassificationModel."""
import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml

from core.errors import RulesError
from core.model import ClassificationModel
from core.version_utils import compile_version_pattern
from models.reference import (
    Application,
    ApplicationType,
    BrowserType,
    DeviceType,
    Manufacturer,
    ReferenceTable,
    ReferenceTables,
    RenderingEngine,
    UNKNOWN_KEY,
)
from models.taxonomy import (
    MAX_BYTE_ID,
    Browser,
    Forest,
    OperatingSystem,
    TaxonomyNode,
)

logger = logging.getLogger(__name__)

DEFAULT_RULES_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "useragent.yml")

REFERENCE_SECTIONS = (
    "application_types",
    "device_types",
    "browser_types",
    "rendering_engines",
    "manufacturers",
    "applications",
)
FOREST_SECTIONS = ("browsers", "operating_systems")

NODE_KEYS = {"id", "name", "aliases", "exclude_list", "manufacturer", "children"}
BROWSER_KEYS = NODE_KEYS | {"browser_type", "rendering_engine", "version_regex"}
OPERATING_SYSTEM_KEYS = NODE_KEYS | {"device_type"}
MANUFACTURER_KEYS = {"id", "name"}
APPLICATION_KEYS = {"id", "name", "aliases", "application_type", "manufacturer"}


def _expect_mapping(value: Any, where: str) -> Dict[Any, Any]:
    if not isinstance(value, dict):
        raise RulesError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _expect_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise RulesError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _expect_id(value: Any, where: str) -> int:
    # bool is an int subclass; "id: yes" is a typo, not an id
    if isinstance(value, bool) or not isinstance(value, int):
        raise RulesError(f"{where}: expected an integer id, got {type(value).__name__}")
    if not 0 <= value <= MAX_BYTE_ID:
        raise RulesError(f"{where}: id {value} does not fit in a byte")
    return value


def _expect_strings(value: Any, where: str) -> Tuple[str, ...]:
    """Read a sequence of strings, skipping empty (null) entries."""
    if not isinstance(value, list):
        raise RulesError(f"{where}: expected a sequence, got {type(value).__name__}")
    return tuple(_expect_str(item, where) for item in value if item is not None)


def _expect_reference(table: ReferenceTable, value: Any, where: str) -> str:
    key = _expect_str(value, where)
    if key not in table:
        raise RulesError(f"{where}: unknown {table.kind} '{key}'")
    return key


def _entries(section: Any, where: str) -> List[Tuple[str, Any]]:
    """Key/value pairs of a mapping section, in document order."""
    return [(_expect_str(key, f"{where} key"), value) for key, value in _expect_mapping(section, where).items()]


def _check_keys(entry: Dict[Any, Any], allowed: set, where: str) -> None:
    for key in entry:
        if key not in allowed:
            raise RulesError(f"{where}: unknown key '{key}'")


def _load_named_records(record_type: Type, section: Any, where: str) -> List[Any]:
    return [
        record_type(key=key, name=_expect_str(name, f"{where}.{key}"))
        for key, name in _entries(section, where)
    ]


def _load_manufacturers(section: Any) -> List[Manufacturer]:
    manufacturers = []
    for key, entry in _entries(section, "manufacturers"):
        where = f"manufacturers.{key}"
        entry = _expect_mapping(entry, where)
        _check_keys(entry, MANUFACTURER_KEYS, where)
        manufacturers.append(
            Manufacturer(
                id=_expect_id(entry.get("id", 0), f"{where}.id"),
                key=key,
                name=_expect_str(entry.get("name", ""), f"{where}.name"),
            )
        )
    return manufacturers


def _load_applications(section: Any, tables: ReferenceTables) -> List[Application]:
    applications = []
    for key, entry in _entries(section, "applications"):
        where = f"applications.{key}"
        entry = _expect_mapping(entry, where)
        _check_keys(entry, APPLICATION_KEYS, where)
        application_type = entry.get("application_type")
        manufacturer = entry.get("manufacturer")
        applications.append(
            Application(
                id=_expect_id(entry.get("id", 0), f"{where}.id"),
                key=key,
                name=_expect_str(entry.get("name", ""), f"{where}.name"),
                aliases=_expect_strings(entry.get("aliases", []), f"{where}.aliases"),
                application_type=(
                    _expect_reference(tables.application_types, application_type, f"{where}.application_type")
                    if application_type is not None else ""
                ),
                manufacturer=(
                    _expect_reference(tables.manufacturers, manufacturer, f"{where}.manufacturer")
                    if manufacturer is not None else ""
                ),
            )
        )
    return applications


def _load_tables(sections: Dict[str, Any]) -> ReferenceTables:
    def named(section: str, record_type: Type, kind: str) -> ReferenceTable:
        records = _load_named_records(record_type, sections[section], section) if section in sections else []
        return ReferenceTable(kind, records, record_type("", ""))

    manufacturers = ReferenceTable(
        "manufacturer",
        _load_manufacturers(sections["manufacturers"]) if "manufacturers" in sections else [],
        Manufacturer(0, "", ""),
    )
    tables = ReferenceTables(
        application_types=named("application_types", ApplicationType, "application type"),
        device_types=named("device_types", DeviceType, "device type"),
        browser_types=named("browser_types", BrowserType, "browser type"),
        rendering_engines=named("rendering_engines", RenderingEngine, "rendering engine"),
        manufacturers=manufacturers,
    )
    # Applications reference the other tables, so they are loaded last
    applications = ReferenceTable(
        "application",
        _load_applications(sections["applications"], tables) if "applications" in sections else [],
        Application(0, "", ""),
    )
    return ReferenceTables(
        application_types=tables.application_types,
        device_types=tables.device_types,
        browser_types=tables.browser_types,
        rendering_engines=tables.rendering_engines,
        manufacturers=tables.manufacturers,
        applications=applications,
    )


class _ForestBuilder:
    """Builds one forest top-down from its nested configuration section."""

    # Configuration key -> node field
    FIELDS = {
        "id": "local_id",
        "name": "name",
        "aliases": "aliases",
        "exclude_list": "exclude_list",
        "manufacturer": "manufacturer_key",
        "browser_type": "browser_type_key",
        "rendering_engine": "rendering_engine_key",
        "device_type": "device_type_key",
        "version_regex": "version_pattern",
    }

    def __init__(self, section: str, node_class: Type[TaxonomyNode], allowed_keys: set, tables: ReferenceTables):
        self.section = section
        self.node_class = node_class
        self.allowed_keys = allowed_keys
        self.tables = tables
        self.nodes: List[Optional[TaxonomyNode]] = []

    def add(self, key: str, entry: Any, parent_index: Optional[int], where: str) -> int:
        entry = _expect_mapping(entry, where)
        index = len(self.nodes)
        # Reserved so that a node's index precedes its descendants'
        self.nodes.append(None)

        fields: Dict[str, Any] = {}
        children: List[Tuple[str, Any]] = []
        for config_key, value in entry.items():
            if config_key == "parent":
                raise RulesError(f"{where}: 'parent' is no longer supported, nest children instead")
            if config_key not in self.allowed_keys:
                raise RulesError(f"{where}: unknown key '{config_key}'")
            if config_key == "children":
                children = _entries(value, f"{where}.children")
            else:
                fields[self.FIELDS[config_key]] = self._parse(config_key, value, f"{where}.{config_key}")

        children_indices = tuple(
            self.add(child_key, child_entry, index, f"{where}.children.{child_key}")
            for child_key, child_entry in children
        )
        self.nodes[index] = self.node_class(
            index=index,
            key=key,
            parent_index=parent_index,
            children_indices=children_indices,
            **fields,
        )
        return index

    def _parse(self, config_key: str, value: Any, where: str) -> Any:
        tables = self.tables
        if config_key == "id":
            return _expect_id(value, where)
        if config_key == "name":
            return _expect_str(value, where)
        if config_key in ("aliases", "exclude_list"):
            return _expect_strings(value, where)
        if config_key == "manufacturer":
            return _expect_reference(tables.manufacturers, value, where)
        if config_key == "browser_type":
            return _expect_reference(tables.browser_types, value, where)
        if config_key == "rendering_engine":
            return _expect_reference(tables.rendering_engines, value, where)
        if config_key == "device_type":
            return _expect_reference(tables.device_types, value, where)
        return compile_version_pattern(_expect_str(value, where))

    def build(self, section: Any) -> Forest:
        root_indices = [
            self.add(key, entry, None, f"{self.section}.{key}")
            for key, entry in _entries(section, self.section)
        ]
        unknown_index = next(
            (i for i in root_indices if self.nodes[i].key == UNKNOWN_KEY), None
        )
        if unknown_index is None:
            raise RulesError(f"{self.section}: missing top-level '{UNKNOWN_KEY}' entry")

        return Forest(self.nodes, root_indices, unknown_index, self.tables)


def build_model(document: Any) -> ClassificationModel:
    """
    Build a ClassificationModel from a parsed rule document.

    Args:
        document: Nested mappings/sequences/scalars as produced by yaml.safe_load

    Returns:
        The loaded model

    Raises:
        RulesError: If the document is structurally invalid
    """
    sections = {}
    for name, section in _entries(document, "rule set"):
        if name in REFERENCE_SECTIONS or name in FOREST_SECTIONS:
            sections[name] = _expect_mapping(section, name)
        else:
            logger.warning(f"Ignoring unknown rule set section '{name}'")

    for name in FOREST_SECTIONS:
        if name not in sections:
            raise RulesError(f"Rule set has no '{name}' section")

    tables = _load_tables(sections)
    browsers = _ForestBuilder("browsers", Browser, BROWSER_KEYS, tables).build(sections["browsers"])
    operating_systems = _ForestBuilder(
        "operating_systems", OperatingSystem, OPERATING_SYSTEM_KEYS, tables
    ).build(sections["operating_systems"])

    logger.debug(
        f"Loaded {len(tables.manufacturers)} manufacturers, {len(tables.applications)} applications, "
        f"{len(browsers)} browsers, {len(operating_systems)} operating systems"
    )
    return ClassificationModel(tables=tables, browsers=browsers, operating_systems=operating_systems)


def load_rules(rules_file: str = DEFAULT_RULES_FILE) -> ClassificationModel:
    """
    Loads a user-agent rule set from a YAML file.

    Raises:
        RulesError: If the file cannot be read or parsed, or is invalid
    """
    try:
        with open(rules_file, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise RulesError(f"Cannot read rule set {rules_file}: {e}") from e
    except yaml.YAMLError as e:
        raise RulesError(f"Invalid YAML in rule set {rules_file}: {e}") from e

    if document is None:
        raise RulesError(f"Rule set {rules_file} is empty")

    model = build_model(document)
    logger.info(
        f"Loaded {len(model.browsers)} browsers and {len(model.operating_systems)} "
        f"operating systems from {rules_file}"
    )
    return model


# Example usage (for testing)
if __name__ == "__main__":
    loaded_model = load_rules()
    print(f"Loaded {len(loaded_model.browsers)} browsers.")
    for browser in loaded_model.browsers.roots:
        print(f"  - {browser.name} ({browser.resolved_manufacturer().name}, id={browser.id})")
        for child in browser.children:
            print(f"    - {child.name} (id={child.id})")
