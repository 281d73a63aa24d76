"""Roadmap nodes: the dependency graph stored in a roadmap's ``nodes`` field."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import AlreadyExists, InvalidInput, NotFound, ParseError
from .frontmatter import FlatMap, FrontmatterDocument, value_kind

NODES_FIELD = "nodes"
DEFAULT_LABEL = "New Node"
UPDATABLE_FIELDS = ("label", "parents", "resources", "notes")


@dataclass
class RoadmapNode:
    """One vertex of a roadmap. ``parents`` holds the ids it depends on."""

    id: str
    label: str = DEFAULT_LABEL
    parents: List[str] = field(default_factory=list)
    resources: List[str] = field(default_factory=list)
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "parents": list(self.parents),
            "resources": list(self.resources),
            "notes": self.notes,
        }


def parse_node(data: FlatMap) -> RoadmapNode:
    """Build a RoadmapNode from its stored flat map.

    Missing fields take their defaults; extra keys are ignored here but stay
    in the stored map. ``parents`` and ``resources`` must be arrays.
    """
    return RoadmapNode(
        id=data.get("id", ""),
        label=data.get("label", DEFAULT_LABEL),
        parents=_stored_list(data, "parents"),
        resources=_stored_list(data, "resources"),
        notes=data.get("notes", ""),
    )


def get_nodes(doc: FrontmatterDocument) -> List[FlatMap]:
    """Return the stored node maps (the live list, not a copy)."""
    nodes = doc.fields.get(NODES_FIELD)
    if nodes is None:
        return []
    if value_kind(nodes) != "array":
        raise ParseError(f"'{NODES_FIELD}' is not an array")
    for entry in nodes:
        if value_kind(entry) != "map":
            raise ParseError(f"'{NODES_FIELD}' entries must be maps, got {entry!r}")
    return nodes


def find_node(doc: FrontmatterDocument, node_id: str) -> Optional[FlatMap]:
    for entry in get_nodes(doc):
        if entry.get("id") == node_id:
            return entry
    return None


def generate_node_id(existing, clock=time.time) -> str:
    """A node id not present in existing, based on the current second."""
    base = f"node_{int(clock())}"
    candidate = base
    n = 2
    while candidate in existing:
        candidate = f"{base}_{n}"
        n += 1
    return candidate


def add_node(
    doc: FrontmatterDocument,
    node_id: Optional[str] = None,
    label: Optional[str] = None,
) -> RoadmapNode:
    """Append a new node to the roadmap and return it."""
    nodes = get_nodes(doc)
    existing = {entry.get("id") for entry in nodes}

    if node_id is None:
        node_id = generate_node_id(existing)
    elif not isinstance(node_id, str) or not node_id.strip():
        raise InvalidInput("Node id must be a non-empty string")
    elif node_id in existing:
        raise AlreadyExists(f"Node already exists: {node_id}")

    if label is None:
        label = DEFAULT_LABEL
    elif not isinstance(label, str):
        raise InvalidInput("label must be a string")

    node = RoadmapNode(id=node_id, label=label)
    nodes.append(node.to_dict())
    # Creates the field when the roadmap had none
    doc.fields[NODES_FIELD] = nodes
    return node


def update_node(
    doc: FrontmatterDocument, node_id: str, changes: Dict[str, Any]
) -> RoadmapNode:
    """Apply the supplied fields of changes to a node.

    A key that is absent or None is left alone. ``parents`` and
    ``resources`` replace the stored list outright, so an empty list clears it.
    """
    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise InvalidInput(f"Unknown node fields: {', '.join(unknown)}")

    entry = find_node(doc, node_id)
    if entry is None:
        raise NotFound(f"Node not found: {node_id}")

    supplied = {k: v for k, v in changes.items() if v is not None}
    for key in ("label", "notes"):
        if key in supplied and not isinstance(supplied[key], str):
            raise InvalidInput(f"{key} must be a string")
    for key in ("parents", "resources"):
        if key in supplied:
            supplied[key] = _string_list(key, supplied[key])
    if "parents" in supplied:
        supplied["parents"] = list(dict.fromkeys(supplied["parents"]))

    entry.update(supplied)
    return parse_node(entry)


def delete_node(doc: FrontmatterDocument, node_id: str) -> bool:
    """Remove the node with node_id. Returns False if there was none.

    Other nodes that list node_id as a parent keep the reference.
    """
    nodes = get_nodes(doc)
    kept = [entry for entry in nodes if entry.get("id") != node_id]
    if len(kept) == len(nodes):
        return False
    doc.fields[NODES_FIELD] = kept
    return True


def _string_list(key: str, value: Any) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidInput(f"{key} must be a list of strings")
    return list(value)


def _stored_list(data: FlatMap, key: str) -> List[Any]:
    value = data.get(key, [])
    if value_kind(value) != "array":
        raise ParseError(f"node '{key}' is not an array: {value!r}")
    return list(value)
