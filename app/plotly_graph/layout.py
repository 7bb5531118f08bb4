from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..crud import spouse_in
from ..models import ChildLink, FamilyTree, Marriage

logger = logging.getLogger(__name__)

HORIZONTAL_SPACING = 300.0
VERTICAL_SPACING = 260.0

Point = Tuple[float, float]


@dataclass(frozen=True)
class TreeLayout:
    root_id: Optional[str] = None
    generations: Dict[str, int] = field(default_factory=dict)
    person_coords: Dict[str, Point] = field(default_factory=dict)
    marriage_coords: Dict[str, Point] = field(default_factory=dict)


def layout_root(tree: FamilyTree) -> Optional[str]:
    """Generation 0 is always the first-inserted person, never the UI focus."""
    return next(iter(tree.persons), None)


def _index_relationships(tree: FamilyTree):
    """person -> marriages, marriage -> child ids, person -> first parent link; one pass each."""
    marriages_by_person: Dict[str, List[Marriage]] = {}
    for m in tree.marriages.values():
        marriages_by_person.setdefault(m.spouse1_id, []).append(m)
        if m.spouse2_id != m.spouse1_id:
            marriages_by_person.setdefault(m.spouse2_id, []).append(m)

    children_by_marriage: Dict[str, List[str]] = {}
    parent_link: Dict[str, ChildLink] = {}
    for link in tree.children:
        children_by_marriage.setdefault(link.marriage_id, []).append(link.person_id)
        parent_link.setdefault(link.person_id, link)

    return marriages_by_person, children_by_marriage, parent_link


def compute_generations(tree: FamilyTree, start_id: str) -> Dict[str, int]:
    """
    BFS over persons from start_id (generation 0):
    - spouses share a generation
    - children of each marriage are one generation below
    - parents (via the person's parent link) are one generation above
    Persons not reachable from start_id get no entry.
    """
    generations: Dict[str, int] = {}
    if start_id not in tree.persons:
        return generations

    generations[start_id] = 0
    visited = {start_id}
    queue = deque([(start_id, 0)])
    marriages_by_person, children_by_marriage, parent_link = _index_relationships(tree)

    def visit(pid: str, level: int):
        if pid and pid not in visited:
            visited.add(pid)
            generations[pid] = level
            queue.append((pid, level))

    while queue:
        pid, level = queue.popleft()

        for m in marriages_by_person.get(pid, ()):
            visit(spouse_in(m, pid), level)
            for child_id in children_by_marriage.get(m.id, ()):
                visit(child_id, level + 1)

        link = parent_link.get(pid)
        if link is not None:
            marriage = tree.marriages.get(link.marriage_id)
            if marriage is not None:
                visit(marriage.spouse1_id, level - 1)
                visit(marriage.spouse2_id, level - 1)

    return generations


def group_generations(tree: FamilyTree, generations: Dict[str, int]) -> Dict[int, List[str]]:
    """
    Bucket ids per generation, in ascending generation order. A placed
    person pulls each not-yet-placed spouse of the same generation in
    right after it, so couples stay adjacent.
    """
    rows: Dict[int, List[str]] = {}
    placed: set[str] = set()
    marriages_by_person = _index_relationships(tree)[0]

    # sorted() is stable: ties keep BFS discovery order
    for pid in sorted(generations, key=generations.__getitem__):
        if pid in placed:
            continue
        gen = generations[pid]
        row = rows.setdefault(gen, [])
        row.append(pid)
        placed.add(pid)

        for m in marriages_by_person.get(pid, ()):
            sid = spouse_in(m, pid)
            if sid and sid not in placed and generations.get(sid) == gen:
                row.append(sid)
                placed.add(sid)

    return rows


def assign_coordinates(
    tree: FamilyTree,
    generations: Dict[str, int],
    horizontal_spacing: float = HORIZONTAL_SPACING,
    vertical_spacing: float = VERTICAL_SPACING,
) -> Tuple[Dict[str, Point], Dict[str, Point]]:
    """
    Rows are centered on x = 0 with fixed spacing; y grows with the
    generation (ancestors above, descendants below). Marriages sit at the
    midpoint of their spouses and are omitted when either spouse is unplaced.
    """
    person_coords: Dict[str, Point] = {}
    for gen, ids in group_generations(tree, generations).items():
        row_y = gen * vertical_spacing
        row_width = (len(ids) - 1) * horizontal_spacing
        for idx, pid in enumerate(ids):
            person_coords[pid] = (idx * horizontal_spacing - row_width / 2.0, row_y)

    marriage_coords: Dict[str, Point] = {}
    for m in tree.marriages.values():
        p1 = person_coords.get(m.spouse1_id)
        p2 = person_coords.get(m.spouse2_id)
        if p1 is not None and p2 is not None:
            marriage_coords[m.id] = ((p1[0] + p2[0]) / 2.0, (p1[1] + p2[1]) / 2.0)

    return person_coords, marriage_coords


def compute_layout(
    tree: FamilyTree,
    root_id: Optional[str] = None,
    horizontal_spacing: float = HORIZONTAL_SPACING,
    vertical_spacing: float = VERTICAL_SPACING,
) -> TreeLayout:
    root = root_id if root_id is not None else layout_root(tree)
    if root is None:
        return TreeLayout()

    generations = compute_generations(tree, root)
    person_coords, marriage_coords = assign_coordinates(
        tree, generations, horizontal_spacing, vertical_spacing
    )
    logger.debug(
        "Laid out %d of %d persons and %d marriages from root %s",
        len(person_coords), len(tree.persons), len(marriage_coords), root,
    )
    return TreeLayout(
        root_id=root,
        generations=generations,
        person_coords=person_coords,
        marriage_coords=marriage_coords,
    )
