from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import kuzu

from app.db import get_database
from app.importers.family_tree_json import InvalidTreeDocument, read_tree_file
from app.plotly_graph.plotly_render import build_plotly_figure, write_html
from app import trees


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Load a family tree JSON export into the tree database")
    parser.add_argument("file_path", help="Path to a family tree .json export")
    parser.add_argument("--tree-id", default=trees.DEFAULT_TREE_ID, help="Tree to replace")
    parser.add_argument("--html", dest="html_path", default=None,
                        help="Also render the laid-out tree to this HTML file")
    parser.add_argument("--dry-run", action="store_true", help="Validate only, do not store")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    file_path = Path(args.file_path)
    if not file_path.exists():
        raise SystemExit(f"File not found: {file_path}")
    if file_path.suffix.lower() != ".json":
        raise SystemExit(f"Unsupported file format: {file_path.suffix}. Use .json")

    try:
        tree = read_tree_file(file_path)
    except InvalidTreeDocument as e:
        raise SystemExit(f"Invalid family tree file: {e}")

    if not args.dry_run:
        conn = kuzu.Connection(get_database())
        trees.save_tree(conn, tree, args.tree_id)

    if args.html_path:
        write_html(build_plotly_figure(tree), args.html_path)
        print(f"Wrote {args.html_path}")

    print(
        f"Import complete: {len(tree.persons)} people, {len(tree.marriages)} marriages, "
        f"{len(tree.children)} child links"
    )


if __name__ == "__main__":
    main()
