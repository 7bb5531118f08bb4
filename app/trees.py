"""Snapshot load/save and sequential edit application."""
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Tuple

import kuzu

from .importers.family_tree_json import export_tree_document, parse_tree_document
from .models import FamilyTree, empty_tree

logger = logging.getLogger(__name__)

DEFAULT_TREE_ID = "main"

# tree_id -> (stored document, snapshot). Reusing the snapshot object for an
# unchanged document lets identity-based layout caching hit across requests.
_snapshots: Dict[str, Tuple[str, FamilyTree]] = {}

# Serialises every load-edit-save and every whole-document replace.
# Reentrant because apply_edit calls save_tree while holding it.
_write_lock = threading.RLock()


def load_tree(conn: kuzu.Connection, tree_id: str = DEFAULT_TREE_ID) -> FamilyTree:
    """Return the stored snapshot, or an empty tree if none was saved yet."""
    result = conn.execute(
        "MATCH (s:TreeSnapshot) WHERE s.id = $id RETURN s.document",
        {"id": tree_id}
    )
    if not result.has_next():
        return empty_tree()
    document = result.get_next()[0]

    cached = _snapshots.get(tree_id)
    if cached is not None and cached[0] == document:
        return cached[1]
    tree = parse_tree_document(json.loads(document))
    _snapshots[tree_id] = (document, tree)
    return tree


def save_tree(conn: kuzu.Connection, tree: FamilyTree, tree_id: str = DEFAULT_TREE_ID) -> str:
    """Store the whole snapshot document, replacing any previous one. Returns the timestamp."""
    document = json.dumps(export_tree_document(tree), ensure_ascii=False)
    now = datetime.now(timezone.utc).isoformat()

    with _write_lock:
        result = conn.execute(
            "MATCH (s:TreeSnapshot) WHERE s.id = $id RETURN count(*)",
            {"id": tree_id}
        )
        if result.has_next() and result.get_next()[0] > 0:
            conn.execute(
                "MATCH (s:TreeSnapshot) WHERE s.id = $id SET s.document = $doc, s.updated_at = $ts",
                {"id": tree_id, "doc": document, "ts": now}
            )
        else:
            conn.execute(
                "CREATE (s:TreeSnapshot {id: $id, document: $doc, updated_at: $ts})",
                {"id": tree_id, "doc": document, "ts": now}
            )
        _snapshots[tree_id] = (document, tree)
    logger.info(
        "Saved tree %s: %d persons, %d marriages, %d child links",
        tree_id, len(tree.persons), len(tree.marriages), len(tree.children),
    )
    return now


def apply_edit(
    conn: kuzu.Connection,
    edit: Callable[[FamilyTree], FamilyTree],
    tree_id: str = DEFAULT_TREE_ID,
) -> FamilyTree:
    """
    Load, apply one pure edit, save. Concurrent callers run one after
    another. Edit errors propagate before anything is written.
    """
    with _write_lock:
        current = load_tree(conn, tree_id)
        updated = edit(current)
        if updated is not current:
            save_tree(conn, updated, tree_id)
    return updated
