from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class Gender(enum.Enum):
    MALE = "male"
    FEMALE = "female"


@dataclass(frozen=True)
class Person:
    id: str
    name: str
    gender: Gender
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    notes: Optional[str] = None
    # joined the family by marriage rather than by birth
    external: bool = False
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Marriage:
    id: str
    spouse1_id: str
    spouse2_id: str
    marriage_year: Optional[int] = None


@dataclass(frozen=True)
class ChildLink:
    marriage_id: str
    person_id: str


@dataclass(frozen=True)
class FamilyTree:
    """
    One snapshot of the family graph.

    persons/marriages keep insertion order and are exposed read-only, so a
    snapshot can never be changed after construction; every edit in
    app.crud returns a new one. Read-only mappings are shared between
    snapshots as is, anything else is copied first.
    """
    persons: Mapping[str, Person] = field(default_factory=dict)
    marriages: Mapping[str, Marriage] = field(default_factory=dict)
    children: Tuple[ChildLink, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "persons", _frozen_mapping(self.persons))
        object.__setattr__(self, "marriages", _frozen_mapping(self.marriages))
        object.__setattr__(self, "children", tuple(self.children))

    def __deepcopy__(self, memo):
        return FamilyTree(
            persons=copy.deepcopy(dict(self.persons), memo),
            marriages=copy.deepcopy(dict(self.marriages), memo),
            children=copy.deepcopy(self.children, memo),
        )


def _frozen_mapping(mapping: Mapping) -> MappingProxyType:
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping))


def empty_tree() -> FamilyTree:
    return FamilyTree()
