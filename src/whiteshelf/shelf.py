"""Paper and roadmap operations over a DocumentStore."""

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from . import frontmatter
from .config import ShelfConfig
from .errors import InvalidInput
from .frontmatter import FrontmatterDocument
from .papers import set_category, set_tags
from .roadmap import NODES_FIELD, add_node, delete_node, update_node
from .store import DocumentStore, content_version

DEFAULT_ROADMAP_TITLE = "Untitled"
DEFAULT_ROADMAP_CATEGORY = "general"


class Shelf:
    """The operations the HTTP/MCP layer calls.

    Every mutation is one load -> parse -> edit -> serialize -> save cycle
    under the document's lock. The save is checked against the version that
    was loaded, so a write by another process in between raises Conflict
    instead of being overwritten.
    """

    def __init__(
        self,
        config: Optional[ShelfConfig] = None,
        store: Optional[DocumentStore] = None,
    ):
        self.config = config if config is not None else ShelfConfig()
        self.store = store if store is not None else DocumentStore(self.config)
        self.store.ensure_directories()

    def _edit(
        self,
        path: Path,
        edit: Callable[[FrontmatterDocument], Any],
        changed: Callable[[Any], bool] = lambda result: True,
    ) -> Any:
        """Run edit on the parsed document and save it.

        ``changed`` gets the edit's result; when it returns False the file is
        left exactly as it was.
        """
        with self.store.lock(path):
            raw = self.store.load(path)
            doc = frontmatter.parse(raw)
            result = edit(doc)
            if changed(result):
                text = frontmatter.serialize(doc)
                self.store.save(path, text, expected_version=content_version(raw))
        return result

    def _delete(self, directory: Path, filename: str) -> Dict[str, Any]:
        path = self.store.resolve(directory, filename)
        with self.store.lock(path):
            self.store.delete(path)
        return {"filename": path.name}

    # Papers

    def add_paper(self, filename: str, content: str) -> Dict[str, Any]:
        for key, value in (("filename", filename), ("content", content)):
            if value is not None and not isinstance(value, str):
                raise InvalidInput(f"{key} must be a string")
        if not (filename or "").strip() or not content:
            raise InvalidInput("Missing filename or content")
        path = self.store.resolve(self.store.papers_dir, filename)
        with self.store.lock(path):
            self.store.create(path, content)
        return {"filename": path.name, "path": str(path)}

    def delete_paper(self, filename: str) -> Dict[str, Any]:
        return self._delete(self.store.papers_dir, filename)

    def update_paper(
        self,
        filename: str,
        category: Optional[str] = None,
        tags: Optional[Union[str, Sequence[str]]] = None,
    ) -> Dict[str, Any]:
        """Set category and/or tags; None leaves a field as it is."""
        path = self.store.resolve(self.store.papers_dir, filename)

        def edit(doc):
            if category is not None:
                set_category(doc, category)
            if tags is not None:
                set_tags(doc, tags)

        self._edit(path, edit)
        return {"filename": path.name}

    def list_papers(self) -> List[Dict[str, Any]]:
        return [
            {
                "filename": entry.name,
                "modifiedAt": _isoformat(entry.modified),
            }
            for entry in self.store.list(self.store.papers_dir)
        ]

    # Roadmaps

    def add_roadmap(
        self,
        filename: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an empty roadmap. The file is named after the title when
        no filename is given."""
        for key, value in (
            ("filename", filename),
            ("title", title),
            ("description", description),
            ("category", category),
        ):
            if value is not None and not isinstance(value, str):
                raise InvalidInput(f"{key} must be a string")

        name = filename if filename and filename.strip() else title
        if not name or not name.strip():
            raise InvalidInput("Missing filename or title")
        path = self.store.resolve(self.store.roadmaps_dir, name)

        doc = FrontmatterDocument(
            fields={
                "title": title if title is not None else DEFAULT_ROADMAP_TITLE,
                "description": description if description is not None else "",
                "category": category
                if category is not None
                else DEFAULT_ROADMAP_CATEGORY,
                NODES_FIELD: [],
            },
            body="",
        )
        with self.store.lock(path):
            self.store.create(path, frontmatter.serialize(doc))
        return {"filename": path.name, "path": str(path)}

    def delete_roadmap(self, filename: str) -> Dict[str, Any]:
        return self._delete(self.store.roadmaps_dir, filename)

    def list_roadmaps(self) -> List[Dict[str, Any]]:
        roadmaps = []
        for entry in self.store.list(self.store.roadmaps_dir):
            doc = frontmatter.parse(self.store.load(entry.path))
            roadmaps.append(
                {
                    "filename": entry.name,
                    "title": doc.fields.get("title", entry.path.stem),
                    "description": doc.fields.get("description", ""),
                    "category": doc.fields.get("category", ""),
                }
            )
        return roadmaps

    # Roadmap nodes

    def add_node(
        self,
        filename: str,
        node_id: Optional[str] = None,
        label: Optional[str] = None,
    ) -> Dict[str, Any]:
        path = self.store.resolve(self.store.roadmaps_dir, filename)
        node = self._edit(path, lambda doc: add_node(doc, node_id, label))
        return node.to_dict()

    def update_node(
        self,
        filename: str,
        node_id: str,
        label: Optional[str] = None,
        parents: Optional[List[str]] = None,
        resources: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Change the given node fields. ``parents=[]`` clears the parents;
        ``parents=None`` leaves them alone."""
        _require_node_id(node_id)
        path = self.store.resolve(self.store.roadmaps_dir, filename)
        changes = {
            "label": label,
            "parents": parents,
            "resources": resources,
            "notes": notes,
        }
        node = self._edit(path, lambda doc: update_node(doc, node_id, changes))
        return node.to_dict()

    def delete_node(self, filename: str, node_id: str) -> Dict[str, Any]:
        """Remove a node. Deleting an id that is not there still succeeds
        and leaves the file untouched."""
        _require_node_id(node_id)
        path = self.store.resolve(self.store.roadmaps_dir, filename)
        self._edit(
            path, lambda doc: delete_node(doc, node_id), changed=lambda removed: removed
        )
        return {}


def _require_node_id(node_id: Any) -> None:
    if not isinstance(node_id, str) or not node_id.strip():
        raise InvalidInput("Missing node_id")


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).astimezone().isoformat(timespec="seconds")
