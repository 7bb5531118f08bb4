import json
from typing import Optional, Tuple

from .crud import children_of_marriage
from .models import FamilyTree
from .plotly_graph.layout import TreeLayout, compute_layout
from .plotly_graph.plotly_render import build_plotly_figure

# Last (snapshot, layout) pair. Snapshots are immutable, so identity is enough.
_layout_cache: Optional[Tuple[FamilyTree, TreeLayout]] = None


def layout_for(tree: FamilyTree) -> TreeLayout:
    """Layout for a snapshot, recomputed only when a different snapshot is passed in."""
    global _layout_cache
    if _layout_cache is not None and _layout_cache[0] is tree:
        return _layout_cache[1]
    layout = compute_layout(tree)
    _layout_cache = (tree, layout)
    return layout


def build_layout(tree: FamilyTree) -> dict:
    layout = layout_for(tree)
    return {
        "root": layout.root_id,
        "generations": layout.generations,
        "persons": {pid: {"x": x, "y": y} for pid, (x, y) in layout.person_coords.items()},
        "marriages": {mid: {"x": x, "y": y} for mid, (x, y) in layout.marriage_coords.items()},
    }


def build_graph(tree: FamilyTree) -> dict:
    """Nodes and edges for everything that received coordinates."""
    layout = layout_for(tree)
    pos = layout.person_coords
    mpos = layout.marriage_coords

    persons = []
    for pid, (x, y) in pos.items():
        p = tree.persons[pid]
        persons.append({
            "id": pid,
            "label": p.name,
            "gender": p.gender.value,
            "external": p.external,
            "birth_year": p.birth_year,
            "death_year": p.death_year,
            "generation": layout.generations[pid],
            "x": x,
            "y": y,
        })

    marriages = []
    edges = []
    for mid, (x, y) in mpos.items():
        m = tree.marriages[mid]
        marriages.append({
            "id": mid,
            "spouse1_id": m.spouse1_id,
            "spouse2_id": m.spouse2_id,
            "marriage_year": m.marriage_year,
            "x": x,
            "y": y,
        })
        edges.append({"type": "SPOUSE", "source": m.spouse1_id, "target": mid})
        edges.append({"type": "SPOUSE", "source": m.spouse2_id, "target": mid})
        for cid in children_of_marriage(tree, mid):
            if cid in pos:
                edges.append({"type": "CHILD", "source": mid, "target": cid})

    return {"root": layout.root_id, "persons": persons, "marriages": marriages, "edges": edges}


def build_plotly_figure_json(tree: FamilyTree) -> dict:
    fig = build_plotly_figure(tree, layout_for(tree))
    return json.loads(fig.to_json())
