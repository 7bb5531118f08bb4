from __future__ import annotations
from typing import List, Mapping

from ..models import Gender, Person

GENDER_PALETTE = {
    Gender.MALE: "#87CEFA",
    Gender.FEMALE: "#FFB6C1",
}
EXTERNAL_PALETTE = {
    Gender.MALE: "#D6EEFC",
    Gender.FEMALE: "#FCE4EA",
}
UNKNOWN_COLOR = "#D3D3D3"


def build_person_colors(nodes: List[str], persons: Mapping[str, Person]) -> List[str]:
    """Gender colour per node; people who married in get a lighter shade."""
    node_colors: List[str] = []
    for node in nodes:
        p = persons.get(node)
        if p is None:
            node_colors.append(UNKNOWN_COLOR)
        elif p.external:
            node_colors.append(EXTERNAL_PALETTE.get(p.gender, UNKNOWN_COLOR))
        else:
            node_colors.append(GENDER_PALETTE.get(p.gender, UNKNOWN_COLOR))
    return node_colors
