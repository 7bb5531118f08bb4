"""Pure edits over FamilyTree snapshots. Every function returns a new tree."""
from __future__ import annotations

import secrets
import string
from typing import Callable, List, Optional, Tuple

from .models import ChildLink, FamilyTree, Gender, Marriage, Person

_ID_ALPHABET = string.digits + string.ascii_lowercase


class TreeEditError(ValueError):
    pass


class DanglingReferenceError(TreeEditError):
    def __init__(self, kind: str, ref_id: str):
        super().__init__(f"{kind} '{ref_id}' does not exist")
        self.kind = kind
        self.ref_id = ref_id


class ParentLinkConflictError(TreeEditError):
    pass


def generate_id(length: int = 9) -> str:
    """Short random base-36 token. Collisions are not checked."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


# ── Queries ──

def marriages_of(tree: FamilyTree, person_id: str) -> List[Marriage]:
    return [
        m for m in tree.marriages.values()
        if m.spouse1_id == person_id or m.spouse2_id == person_id
    ]


def spouse_in(marriage: Marriage, person_id: str) -> str:
    return marriage.spouse2_id if marriage.spouse1_id == person_id else marriage.spouse1_id


def children_of_marriage(tree: FamilyTree, marriage_id: str) -> List[str]:
    return [link.person_id for link in tree.children if link.marriage_id == marriage_id]


def parent_link_of(tree: FamilyTree, person_id: str) -> Optional[ChildLink]:
    for link in tree.children:
        if link.person_id == person_id:
            return link
    return None


def parents_of_person(tree: FamilyTree, person_id: str) -> List[str]:
    link = parent_link_of(tree, person_id)
    if link is None:
        return []
    marriage = tree.marriages.get(link.marriage_id)
    if marriage is None:
        return []
    return [pid for pid in (marriage.spouse1_id, marriage.spouse2_id) if pid]


def _require_person(tree: FamilyTree, person_id: str):
    if person_id not in tree.persons:
        raise DanglingReferenceError("person", person_id)


def _require_marriage(tree: FamilyTree, marriage_id: str):
    if marriage_id not in tree.marriages:
        raise DanglingReferenceError("marriage", marriage_id)


# ── Primitive edits ──

def add_person(tree: FamilyTree, person: Person) -> FamilyTree:
    return FamilyTree(
        persons={**tree.persons, person.id: person},
        marriages=tree.marriages,
        children=tree.children,
    )


def update_person(tree: FamilyTree, person: Person) -> FamilyTree:
    """Overwrite every field of an existing person. No partial updates."""
    _require_person(tree, person.id)
    return add_person(tree, person)


def add_marriage(tree: FamilyTree, marriage: Marriage) -> FamilyTree:
    _require_person(tree, marriage.spouse1_id)
    _require_person(tree, marriage.spouse2_id)
    if marriage.spouse1_id == marriage.spouse2_id:
        raise TreeEditError("A person cannot marry themselves")
    return FamilyTree(
        persons=tree.persons,
        marriages={**tree.marriages, marriage.id: marriage},
        children=tree.children,
    )


def add_child(tree: FamilyTree, marriage_id: str, person_id: str) -> FamilyTree:
    """Link person_id as a child of marriage_id. Re-adding the same pair is a no-op."""
    _require_marriage(tree, marriage_id)
    _require_person(tree, person_id)

    existing = parent_link_of(tree, person_id)
    if existing is not None:
        if existing.marriage_id == marriage_id:
            return tree
        raise ParentLinkConflictError(
            f"person '{person_id}' is already a child of marriage '{existing.marriage_id}'"
        )

    return FamilyTree(
        persons=tree.persons,
        marriages=tree.marriages,
        children=tree.children + (ChildLink(marriage_id, person_id),),
    )


def delete_person(tree: FamilyTree, person_id: str) -> FamilyTree:
    """
    Remove a person and cascade:
      1. drop the person
      2. drop every marriage the person is a spouse in
      3. keep only child links that neither name the person nor point at
         a marriage dropped in step 2
    """
    persons = {pid: p for pid, p in tree.persons.items() if pid != person_id}

    marriages = {
        mid: m for mid, m in tree.marriages.items()
        if m.spouse1_id != person_id and m.spouse2_id != person_id
    }

    children = tuple(
        link for link in tree.children
        if link.person_id != person_id and link.marriage_id in marriages
    )

    return FamilyTree(persons=persons, marriages=marriages, children=children)


# ── Compound edits ──

def add_spouse(
    tree: FamilyTree,
    person_id: str,
    name: str,
    gender: Gender,
    marriage_year: Optional[int] = None,
    new_id: Callable[[], str] = generate_id,
) -> Tuple[FamilyTree, str, str]:
    """Create an external spouse for person_id and marry them. Returns (tree, spouse_id, marriage_id)."""
    _require_person(tree, person_id)
    spouse_id, marriage_id = new_id(), new_id()
    nxt = add_person(tree, Person(id=spouse_id, name=name, gender=gender, external=True))
    nxt = add_marriage(nxt, Marriage(
        id=marriage_id, spouse1_id=person_id, spouse2_id=spouse_id, marriage_year=marriage_year,
    ))
    return nxt, spouse_id, marriage_id


def add_child_person(
    tree: FamilyTree,
    marriage_id: str,
    name: str,
    gender: Gender,
    new_id: Callable[[], str] = generate_id,
) -> Tuple[FamilyTree, str]:
    _require_marriage(tree, marriage_id)
    child_id = new_id()
    nxt = add_person(tree, Person(id=child_id, name=name, gender=gender))
    nxt = add_child(nxt, marriage_id, child_id)
    return nxt, child_id


def add_parents(
    tree: FamilyTree,
    person_id: str,
    father_name: str,
    mother_name: str,
    new_id: Callable[[], str] = generate_id,
) -> Tuple[FamilyTree, str]:
    """Create a married father and mother and link person_id as their child. Returns (tree, marriage_id)."""
    _require_person(tree, person_id)
    existing = parent_link_of(tree, person_id)
    if existing is not None:
        raise ParentLinkConflictError(
            f"person '{person_id}' already has parents (marriage '{existing.marriage_id}')"
        )

    father_id, mother_id, marriage_id = new_id(), new_id(), new_id()
    nxt = add_person(tree, Person(id=father_id, name=father_name, gender=Gender.MALE))
    nxt = add_person(nxt, Person(id=mother_id, name=mother_name, gender=Gender.FEMALE))
    nxt = add_marriage(nxt, Marriage(id=marriage_id, spouse1_id=father_id, spouse2_id=mother_id))
    nxt = add_child(nxt, marriage_id, person_id)
    return nxt, marriage_id
