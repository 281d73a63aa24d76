"""whiteshelf: papers and roadmaps as markdown with frontmatter."""

__version__ = "0.1.0"

from .errors import (
    ShelfError,
    InvalidInput,
    NotFound,
    AlreadyExists,
    ParseError,
    Conflict,
    StorageError,
)
from .frontmatter import FrontmatterDocument, parse, serialize, split_frontmatter
from .config import ShelfConfig, load_config
from .store import DocumentStore, DocumentEntry, normalize_name
from .roadmap import RoadmapNode, add_node, update_node, delete_node
from .papers import set_category, set_tags, normalize_tags
from .shelf import Shelf

__all__ = [
    "ShelfError",
    "InvalidInput",
    "NotFound",
    "AlreadyExists",
    "ParseError",
    "Conflict",
    "StorageError",
    "FrontmatterDocument",
    "parse",
    "serialize",
    "split_frontmatter",
    "ShelfConfig",
    "load_config",
    "DocumentStore",
    "DocumentEntry",
    "normalize_name",
    "RoadmapNode",
    "add_node",
    "update_node",
    "delete_node",
    "set_category",
    "set_tags",
    "normalize_tags",
    "Shelf",
]
