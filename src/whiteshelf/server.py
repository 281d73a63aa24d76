"""whiteshelf MCP server."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .config import ShelfConfig
from .errors import (
    AlreadyExists,
    Conflict,
    InvalidInput,
    NotFound,
    ParseError,
    ShelfError,
    StorageError,
)
from .shelf import Shelf

logger = logging.getLogger(__name__)

# Transport status for each error kind
ERROR_STATUS = {
    InvalidInput: 400,
    NotFound: 404,
    AlreadyExists: 409,
    Conflict: 409,
    ParseError: 422,
    StorageError: 500,
}


def error_status(error: ShelfError) -> int:
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


class ShelfServer:
    """Wraps Shelf operations in success/error payloads.

    Successful calls return ``{"success": True, ...}``; failures return
    ``{"success": False, "error": ..., "kind": ..., "status": ...}``.
    Every mutation is logged.
    """

    def __init__(self, config: Optional[ShelfConfig] = None):
        self.shelf = Shelf(config)

    def _call(
        self,
        action: str,
        func: Callable[[], Any],
        key: Optional[str] = None,
        quiet: bool = False,
    ) -> Dict[str, Any]:
        try:
            result = func()
        except ShelfError as e:
            status = error_status(e)
            log = logger.error if status >= 500 else logger.warning
            log("%s failed: %s", action, e)
            return {
                "success": False,
                "error": str(e),
                "kind": type(e).__name__,
                "status": status,
            }

        payload: Dict[str, Any] = {"success": True}
        if key is not None:
            payload[key] = result
            if isinstance(result, list):
                payload["count"] = len(result)
        else:
            payload.update(result)
        if not quiet:
            logger.info("%s: %s", action, _describe(result))
        return payload

    def add_paper(self, filename: str, content: str) -> Dict[str, Any]:
        return self._call(
            "Added paper", lambda: self.shelf.add_paper(filename, content)
        )

    def delete_paper(self, filename: str) -> Dict[str, Any]:
        return self._call("Deleted paper", lambda: self.shelf.delete_paper(filename))

    def update_paper(
        self,
        filename: str,
        category: Optional[str] = None,
        tags: Optional[Union[str, List[str]]] = None,
    ) -> Dict[str, Any]:
        return self._call(
            "Updated paper",
            lambda: self.shelf.update_paper(filename, category=category, tags=tags),
        )

    def list_papers(self) -> Dict[str, Any]:
        return self._call(
            "List papers", self.shelf.list_papers, key="papers", quiet=True
        )

    def add_roadmap(
        self,
        filename: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._call(
            "Added roadmap",
            lambda: self.shelf.add_roadmap(
                filename, title=title, description=description, category=category
            ),
        )

    def delete_roadmap(self, filename: str) -> Dict[str, Any]:
        return self._call(
            "Deleted roadmap", lambda: self.shelf.delete_roadmap(filename)
        )

    def list_roadmaps(self) -> Dict[str, Any]:
        return self._call(
            "List roadmaps", self.shelf.list_roadmaps, key="roadmaps", quiet=True
        )

    def add_node(
        self,
        filename: str,
        node_id: Optional[str] = None,
        label: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._call(
            f"Added node to {filename}",
            lambda: self.shelf.add_node(filename, node_id=node_id, label=label),
            key="node",
        )

    def update_node(
        self,
        filename: str,
        node_id: str,
        label: Optional[str] = None,
        parents: Optional[List[str]] = None,
        resources: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._call(
            f"Updated node in {filename}",
            lambda: self.shelf.update_node(
                filename,
                node_id,
                label=label,
                parents=parents,
                resources=resources,
                notes=notes,
            ),
            key="node",
        )

    def delete_node(self, filename: str, node_id: str) -> Dict[str, Any]:
        return self._call(
            f"Deleted node {node_id} from {filename}",
            lambda: self.shelf.delete_node(filename, node_id),
        )


def _describe(result: Any) -> str:
    if isinstance(result, dict):
        return str(result.get("filename") or result.get("id") or "")
    return ""


def run_mcp_server(config: Optional[ShelfConfig] = None):
    """Run the whiteshelf MCP server over stdio."""
    try:
        from mcp.server.fastmcp import FastMCP
    except ImportError:
        raise ImportError(
            "MCP server requires 'mcp' package. Install with: pip install whiteshelf[mcp]"
        )

    # stdout carries the protocol
    logging.basicConfig(
        level=logging.INFO, format="[%(asctime)s] %(levelname)s %(message)s"
    )

    mcp = FastMCP("whiteshelf")
    server = ShelfServer(config)
    logger.info("Papers:   %s", server.shelf.store.papers_dir)
    logger.info("Roadmaps: %s", server.shelf.store.roadmaps_dir)

    def dump(payload: Dict[str, Any]) -> str:
        return json.dumps(payload, indent=2, ensure_ascii=False)

    @mcp.tool()
    def add_paper(filename: str, content: str) -> str:
        """Add a new paper. content is the full markdown file, frontmatter included. Fails if the file already exists."""
        return dump(server.add_paper(filename, content))

    @mcp.tool()
    def delete_paper(filename: str) -> str:
        """Delete a paper by filename."""
        return dump(server.delete_paper(filename))

    @mcp.tool()
    def update_paper(
        filename: str,
        category: Optional[str] = None,
        tags: Optional[Union[str, List[str]]] = None,
    ) -> str:
        """Set a paper's category and/or tags. tags may be a list or a comma-separated string; omitted fields are left unchanged."""
        return dump(server.update_paper(filename, category=category, tags=tags))

    @mcp.tool()
    def list_papers() -> str:
        """List all papers with their last-modified time."""
        return dump(server.list_papers())

    @mcp.tool()
    def add_roadmap(
        filename: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> str:
        """Create an empty roadmap. Named after the title when no filename is given."""
        return dump(
            server.add_roadmap(
                filename, title=title, description=description, category=category
            )
        )

    @mcp.tool()
    def delete_roadmap(filename: str) -> str:
        """Delete a roadmap and all of its nodes."""
        return dump(server.delete_roadmap(filename))

    @mcp.tool()
    def list_roadmaps() -> str:
        """List all roadmaps with title, description and category."""
        return dump(server.list_roadmaps())

    @mcp.tool()
    def add_node(
        filename: str, node_id: Optional[str] = None, label: Optional[str] = None
    ) -> str:
        """Append a node to a roadmap. An id is generated when node_id is omitted."""
        return dump(server.add_node(filename, node_id=node_id, label=label))

    @mcp.tool()
    def update_node(
        filename: str,
        node_id: str,
        label: Optional[str] = None,
        parents: Optional[List[str]] = None,
        resources: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> str:
        """Update fields of a roadmap node. Only the fields given are changed; parents=[] clears the parents."""
        return dump(
            server.update_node(
                filename,
                node_id,
                label=label,
                parents=parents,
                resources=resources,
                notes=notes,
            )
        )

    @mcp.tool()
    def delete_node(filename: str, node_id: str) -> str:
        """Remove a node from a roadmap. Succeeds even if the node is not there; other nodes' parent references are kept."""
        return dump(server.delete_node(filename, node_id))

    mcp.run(transport="stdio")
