from __future__ import annotations

from typing import List, Optional

from plotly import graph_objects as go

from ..crud import children_of_marriage
from ..models import FamilyTree, Person
from .colors import build_person_colors
from .layout import TreeLayout, compute_layout


def _lifespan(p: Person) -> str:
    if p.birth_year is None and p.death_year is None:
        return ""
    born = "" if p.birth_year is None else str(p.birth_year)
    died = "" if p.death_year is None else str(p.death_year)
    return f"{born} – {died}" if died else born


def _hover_text(p: Person) -> str:
    parts = [p.name, f"ID: {p.id}", f"Gender: {p.gender.value}"]
    span = _lifespan(p)
    if span:
        parts.append(f"Years: {span}")
    if p.external:
        parts.append("Married in")
    if p.notes:
        parts.append(p.notes)
    return "<br>".join(parts)


def build_plotly_figure(tree: FamilyTree, layout: Optional[TreeLayout] = None) -> go.Figure:
    if layout is None:
        layout = compute_layout(tree)

    pos = layout.person_coords
    mpos = layout.marriage_coords

    if not pos:
        fig = go.Figure()
        fig.update_layout(title="No family data found")
        return fig

    # Spouse segments: each spouse to the marriage point
    spouse_x: List[Optional[float]] = []
    spouse_y: List[Optional[float]] = []
    for m in tree.marriages.values():
        if m.id not in mpos:
            continue
        mx, my = mpos[m.id]
        for sid in (m.spouse1_id, m.spouse2_id):
            sx, sy = pos[sid]
            spouse_x += [sx, mx, None]
            spouse_y += [sy, my, None]

    spouse_trace = go.Scatter(
        x=spouse_x,
        y=spouse_y,
        mode="lines",
        hoverinfo="none",
        line=dict(width=2, color="#E91E63", dash="dot"),
        showlegend=False,
    )

    # Parent-child segments: marriage point to each laid-out child
    edge_x: List[Optional[float]] = []
    edge_y: List[Optional[float]] = []
    for mid, (mx, my) in mpos.items():
        for cid in children_of_marriage(tree, mid):
            if cid not in pos:
                continue
            cx, cy = pos[cid]
            edge_x += [mx, cx, None]
            edge_y += [my, cy, None]

    edge_trace = go.Scatter(
        x=edge_x,
        y=edge_y,
        mode="lines",
        hoverinfo="none",
        line=dict(width=2, color="#555"),
        showlegend=False,
    )

    marriage_ids = list(mpos.keys())
    marriage_hover = []
    for mid in marriage_ids:
        year = tree.marriages[mid].marriage_year
        marriage_hover.append("Marriage" if year is None else f"Marriage ({year})")

    marriage_trace = go.Scatter(
        x=[mpos[mid][0] for mid in marriage_ids],
        y=[mpos[mid][1] for mid in marriage_ids],
        mode="markers",
        marker=dict(size=10, color="#E91E63"),
        hovertext=marriage_hover,
        hoverinfo="text",
        showlegend=False,
        customdata=marriage_ids,
    )

    node_ids = list(pos.keys())
    node_colors = build_person_colors(node_ids, tree.persons)
    node_trace = go.Scatter(
        x=[pos[pid][0] for pid in node_ids],
        y=[pos[pid][1] for pid in node_ids],
        mode="markers+text",
        text=[tree.persons[pid].name for pid in node_ids],
        hovertext=[_hover_text(tree.persons[pid]) for pid in node_ids],
        hoverinfo="text",
        textposition="top center",
        marker=dict(size=22, color=node_colors, line=dict(width=1, color="#333")),
        showlegend=False,
        customdata=node_ids,
    )

    xs = [xy[0] for xy in pos.values()]
    ys = [xy[1] for xy in pos.values()]
    x_min, x_max = min(xs), max(xs)
    y_min, y_max = min(ys), max(ys)
    pad_x = 0.15 * (x_max - x_min if x_max > x_min else 1000)
    pad_y = 0.15 * (y_max - y_min if y_max > y_min else 1000)

    fig = go.Figure(data=[spouse_trace, edge_trace, marriage_trace, node_trace])
    fig.update_layout(
        showlegend=False,
        hovermode="closest",
        dragmode="pan",
        autosize=True,
        margin=dict(l=20, r=20, t=20, b=20),
        plot_bgcolor="white",
        paper_bgcolor="white",
        xaxis=dict(
            showgrid=False,
            zeroline=False,
            showticklabels=False,
            range=[x_min - pad_x, x_max + pad_x],
        ),
        # ancestors have smaller y, so flip the axis to draw them on top
        yaxis=dict(
            showgrid=False,
            zeroline=False,
            showticklabels=False,
            range=[y_max + pad_y, y_min - pad_y],
        ),
    )
    return fig


def write_html(fig: go.Figure, out_path: str) -> None:
    config = {"scrollZoom": True, "displayModeBar": True, "responsive": True}
    fig.write_html(out_path, include_plotlyjs="cdn", full_html=True, config=config)
