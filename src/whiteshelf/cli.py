"""whiteshelf CLI."""

import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .errors import ShelfError


def _shelf(args):
    from .config import load_config
    from .shelf import Shelf

    return Shelf(load_config(args.config))


def _print(result):
    print(json.dumps(result, indent=2, ensure_ascii=False))


def cmd_add_paper(args):
    """Add a paper from --content or --file."""
    if args.file:
        content = Path(args.file).read_text(encoding="utf-8")
    else:
        content = args.content
    _print(_shelf(args).add_paper(args.filename, content))


def cmd_delete_paper(args):
    _print(_shelf(args).delete_paper(args.filename))


def cmd_update_paper(args):
    _print(
        _shelf(args).update_paper(
            args.filename, category=args.category, tags=args.tags
        )
    )


def cmd_list_papers(args):
    _print(_shelf(args).list_papers())


def cmd_add_roadmap(args):
    _print(
        _shelf(args).add_roadmap(
            args.filename,
            title=args.title,
            description=args.description,
            category=args.category,
        )
    )


def cmd_delete_roadmap(args):
    _print(_shelf(args).delete_roadmap(args.filename))


def cmd_list_roadmaps(args):
    _print(_shelf(args).list_roadmaps())


def cmd_add_node(args):
    _print(_shelf(args).add_node(args.filename, node_id=args.id, label=args.label))


def cmd_update_node(args):
    """Update a node; --parents with no ids clears the parents."""
    _print(
        _shelf(args).update_node(
            args.filename,
            args.node_id,
            label=args.label,
            parents=args.parents,
            resources=args.resources,
            notes=args.notes,
        )
    )


def cmd_delete_node(args):
    _print(_shelf(args).delete_node(args.filename, args.node_id))


def cmd_mcp(args):
    """Start the MCP server."""
    from .config import load_config
    from .server import run_mcp_server

    run_mcp_server(load_config(args.config))


def main():
    parser = argparse.ArgumentParser(
        prog="whiteshelf",
        description="Manage papers and roadmaps stored as markdown with frontmatter.",
    )
    parser.add_argument(
        "--version", action="version", version=f"whiteshelf {__version__}"
    )
    parser.add_argument(
        "--config", help="YAML config file (default: ./whiteshelf.yaml if present)"
    )

    subparsers = parser.add_subparsers(dest="command")

    # papers
    p_add_paper = subparsers.add_parser("add-paper", help="Add a new paper")
    p_add_paper.add_argument("filename", help="Paper file name")
    source = p_add_paper.add_mutually_exclusive_group(required=True)
    source.add_argument("--content", help="Full markdown content")
    source.add_argument("--file", help="Read content from this file")
    p_add_paper.set_defaults(func=cmd_add_paper)

    p_delete_paper = subparsers.add_parser("delete-paper", help="Delete a paper")
    p_delete_paper.add_argument("filename", help="Paper file name")
    p_delete_paper.set_defaults(func=cmd_delete_paper)

    p_update_paper = subparsers.add_parser(
        "update-paper", help="Set a paper's category and/or tags"
    )
    p_update_paper.add_argument("filename", help="Paper file name")
    p_update_paper.add_argument("--category", help="New category")
    p_update_paper.add_argument("--tags", help="Comma-separated tags")
    p_update_paper.set_defaults(func=cmd_update_paper)

    p_list_papers = subparsers.add_parser("list-papers", help="List all papers")
    p_list_papers.set_defaults(func=cmd_list_papers)

    # roadmaps
    p_add_roadmap = subparsers.add_parser("add-roadmap", help="Add a roadmap")
    p_add_roadmap.add_argument(
        "filename", nargs="?", help="Roadmap file name (default: from title)"
    )
    p_add_roadmap.add_argument("--title", help="Roadmap title")
    p_add_roadmap.add_argument("--description", help="Roadmap description")
    p_add_roadmap.add_argument("--category", help="Roadmap category")
    p_add_roadmap.set_defaults(func=cmd_add_roadmap)

    p_delete_roadmap = subparsers.add_parser(
        "delete-roadmap", help="Delete a roadmap"
    )
    p_delete_roadmap.add_argument("filename", help="Roadmap file name")
    p_delete_roadmap.set_defaults(func=cmd_delete_roadmap)

    p_list_roadmaps = subparsers.add_parser(
        "list-roadmaps", help="List all roadmaps"
    )
    p_list_roadmaps.set_defaults(func=cmd_list_roadmaps)

    # nodes
    p_add_node = subparsers.add_parser("add-node", help="Add node to roadmap")
    p_add_node.add_argument("filename", help="Roadmap file name")
    p_add_node.add_argument("--id", help="Node id (generated if omitted)")
    p_add_node.add_argument("--label", help="Node label")
    p_add_node.set_defaults(func=cmd_add_node)

    p_update_node = subparsers.add_parser(
        "update-node", help="Update node in roadmap"
    )
    p_update_node.add_argument("filename", help="Roadmap file name")
    p_update_node.add_argument("node_id", help="Node id")
    p_update_node.add_argument("--label", help="New label")
    p_update_node.add_argument(
        "--parents", nargs="*", metavar="ID", help="Parent node ids (none to clear)"
    )
    p_update_node.add_argument(
        "--resources", nargs="*", metavar="RESOURCE", help="Resources (none to clear)"
    )
    p_update_node.add_argument("--notes", help="Notes")
    p_update_node.set_defaults(func=cmd_update_node)

    p_delete_node = subparsers.add_parser(
        "delete-node", help="Delete node from roadmap"
    )
    p_delete_node.add_argument("filename", help="Roadmap file name")
    p_delete_node.add_argument("node_id", help="Node id")
    p_delete_node.set_defaults(func=cmd_delete_node)

    # mcp
    p_mcp = subparsers.add_parser("mcp", help="Start MCP server")
    p_mcp.set_defaults(func=cmd_mcp)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ShelfError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except UnicodeDecodeError:
        print("Error: File is not valid UTF-8 text (is it a binary file?)", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
