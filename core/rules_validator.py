"""
Utility functions to validate and analyze user-agent rule sets for
duplications and unreachable rules.
"""

import sys
from collections import defaultdict
from typing import Dict, List, Tuple

from core.errors import RulesError
from core.model import ClassificationModel
from models.reference import UNKNOWN_KEY, ReferenceTable, namespaced
from models.taxonomy import Forest, TaxonomyNode
from rules.rules_loader import DEFAULT_RULES_FILE, load_rules


def _path(node: TaxonomyNode) -> str:
    return ".".join(reversed([n.key for n in node.ancestry()]))


def _siblings(forest: Forest) -> List[List[TaxonomyNode]]:
    """Every group of siblings: the roots, then the children of each node."""
    groups = [forest.roots]
    for node in forest.walk():
        if node.children_indices:
            groups.append(node.children)
    return groups


def detect_duplicate_ids(forest: Forest) -> Dict[int, List[str]]:
    """
    Detect composed ids shared by more than one node.

    Args:
        forest: Browser or operating system forest

    Returns:
        Dictionary with ids as keys and the node paths sharing them as values
    """
    by_id = defaultdict(list)
    for node in forest.walk():
        by_id[node.id].append(_path(node))

    return {node_id: paths for node_id, paths in by_id.items() if len(paths) > 1}


def detect_shadowed_nodes(forest: Forest) -> List[Tuple[str, str]]:
    """
    Detect nodes that an earlier sibling always claims first.

    A node is shadowed when every one of its aliases contains an alias of an
    earlier sibling that has no exclude list: whenever the node's alias test
    passes, the sibling's passes too, and the sibling cannot be vetoed.

    Args:
        forest: Browser or operating system forest

    Returns:
        List of (shadowed node path, shadowing sibling path)
    """
    shadowed = []
    for siblings in _siblings(forest):
        for position, node in enumerate(siblings):
            if not node.aliases:
                continue
            for earlier in siblings[:position]:
                if earlier.exclude_list or not earlier.aliases:
                    continue
                if all(
                    any(earlier_alias.lower() in alias.lower() for earlier_alias in earlier.aliases)
                    for alias in node.aliases
                ):
                    shadowed.append((_path(node), _path(earlier)))
                    break
    return shadowed


def detect_unmatchable_nodes(forest: Forest) -> List[str]:
    """
    Detect nodes without aliases. They can never be returned by a match;
    only the top-level "unknown" sentinel is expected to look like this.
    """
    return [
        _path(node)
        for node in forest.walk()
        if not node.aliases and not (node.is_root and node.key == UNKNOWN_KEY)
    ]


def detect_unused_references(model: ClassificationModel) -> Dict[str, List[str]]:
    """
    Detect reference records that no node or application points at.

    The "unknown" records are never reported since they are the fallback
    for unset attributes.

    Returns:
        Dictionary with table names as keys and unused record keys as values
    """
    used = defaultdict(set)
    for node in model.browsers.walk():
        used["manufacturers"].add(node.manufacturer_key)
        used["browser_types"].add(node.browser_type_key)
        used["rendering_engines"].add(node.rendering_engine_key)
    for node in model.operating_systems.walk():
        used["manufacturers"].add(node.manufacturer_key)
        used["device_types"].add(node.device_type_key)
    for application in model.tables.applications:
        used["manufacturers"].add(application.manufacturer)
        used["application_types"].add(application.application_type)

    tables: Dict[str, ReferenceTable] = {
        "application_types": model.tables.application_types,
        "device_types": model.tables.device_types,
        "browser_types": model.tables.browser_types,
        "rendering_engines": model.tables.rendering_engines,
        "manufacturers": model.tables.manufacturers,
    }
    unused = {}
    for name, table in tables.items():
        referenced = {namespaced(key) for key in used[name] if key}
        missing = [
            record.key
            for record in table
            if record.key != UNKNOWN_KEY and namespaced(record.key) not in referenced
        ]
        if missing:
            unused[name] = missing
    return unused


def has_problems(model: ClassificationModel) -> bool:
    """True if any check other than unused references reports something."""
    for forest in (model.browsers, model.operating_systems):
        if detect_duplicate_ids(forest) or detect_shadowed_nodes(forest) or detect_unmatchable_nodes(forest):
            return True
    return False


def print_validation_report(model: ClassificationModel, verbose: bool = True) -> None:
    """
    Print a comprehensive validation report of a rule set.

    Args:
        model: Loaded rule set
        verbose: Whether to list unused reference records
    """
    print("\n" + "="*70)
    print("USER-AGENT RULES VALIDATION REPORT")
    print("="*70)

    for title, forest in (("Browsers", model.browsers), ("Operating systems", model.operating_systems)):
        print(f"\n{title}: {len(forest)} nodes, {len(forest.roots)} top-level")

        duplicates = detect_duplicate_ids(forest)
        if duplicates:
            print(f"\n⚠ DUPLICATE IDS: {len(duplicates)}")
            for node_id, paths in sorted(duplicates.items()):
                print(f"  {node_id} (0x{node_id:04x}) -> {', '.join(paths)}")
        else:
            print("\n✓ No duplicate ids")

        shadowed = detect_shadowed_nodes(forest)
        if shadowed:
            print(f"\n⚠ SHADOWED NODES: {len(shadowed)}")
            for path, by in shadowed:
                print(f"  '{path}' is always claimed by '{by}'")
        else:
            print("\n✓ No shadowed nodes")

        unmatchable = detect_unmatchable_nodes(forest)
        if unmatchable:
            print(f"\n⚠ NODES WITHOUT ALIASES: {len(unmatchable)}")
            for path in unmatchable:
                print(f"  '{path}'")
        else:
            print("\n✓ Every node has aliases")

    unused = detect_unused_references(model)
    if unused:
        print(f"\n⚠ UNUSED REFERENCE RECORDS: {sum(len(keys) for keys in unused.values())}")
        if verbose:
            for table, keys in sorted(unused.items()):
                print(f"  {table}: {', '.join(keys)}")
    else:
        print("\n✓ No unused reference records")

    print(f"\nStatistics:")
    print(f"  - Manufacturers: {len(model.tables.manufacturers)}")
    print(f"  - Applications: {len(model.tables.applications)}")
    print(f"  - Browser aliases: {sum(len(n.aliases) for n in model.browsers.walk())}")
    print(f"  - Operating system aliases: {sum(len(n.aliases) for n in model.operating_systems.walk())}")

    print("\n" + "="*70)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        description="Validate a user-agent rule set for duplicate ids and unreachable rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate the bundled rule set
  python -m core.rules_validator

  # Validate another rule set, failing on problems
  python -m core.rules_validator --rules my_rules.yml --strict
        """
    )

    parser.add_argument(
        '--rules',
        default=DEFAULT_RULES_FILE,
        help='Path to the YAML rule set (default: bundled rules/useragent.yml)'
    )

    parser.add_argument(
        '--no-verbose',
        action='store_false',
        dest='verbose',
        default=True,
        help='Do not list unused reference records'
    )

    parser.add_argument(
        '--strict',
        action='store_true',
        help='Exit with status 2 when duplicate ids, shadowed or alias-less nodes are found'
    )

    args = parser.parse_args()

    try:
        model = load_rules(args.rules)
    except RulesError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_validation_report(model, verbose=args.verbose)
    if args.strict and has_problems(model):
        sys.exit(2)
