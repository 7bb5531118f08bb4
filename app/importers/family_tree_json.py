# app/importers/family_tree_json.py

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from ..models import ChildLink, FamilyTree, Gender, Marriage, Person
from ..schemas import ChildLinkDoc, MarriageDoc, PersonDoc, TreeDocument

logger = logging.getLogger(__name__)


class InvalidTreeDocument(ValueError):
    pass


def _person_from_doc(doc: PersonDoc) -> Person:
    return Person(
        id=doc.id,
        name=doc.name,
        gender=Gender(doc.gender),
        birth_year=doc.birthYear,
        death_year=doc.deathYear,
        notes=doc.notes,
        external=bool(doc.external),
        email=doc.email,
        phone=doc.phone,
    )


def _person_to_doc(p: Person) -> PersonDoc:
    return PersonDoc(
        id=p.id,
        name=p.name,
        gender=p.gender.value,
        birthYear=p.birth_year,
        deathYear=p.death_year,
        notes=p.notes,
        external=p.external or None,
        email=p.email,
        phone=p.phone,
    )


def export_tree_document(tree: FamilyTree) -> Dict[str, Any]:
    """
    Serialize a snapshot to the persisted document shape:
      { "persons": {id: {...}}, "marriages": {id: {...}}, "children": [{...}] }
    Unset optional fields are omitted.
    """
    doc = TreeDocument(
        persons={pid: _person_to_doc(p) for pid, p in tree.persons.items()},
        marriages={
            mid: MarriageDoc(
                id=m.id, spouse1Id=m.spouse1_id, spouse2Id=m.spouse2_id,
                marriageYear=m.marriage_year,
            )
            for mid, m in tree.marriages.items()
        },
        children=[
            ChildLinkDoc(marriageId=link.marriage_id, personId=link.person_id)
            for link in tree.children
        ],
    )
    return doc.model_dump(exclude_none=True)


def export_tree_json(tree: FamilyTree) -> str:
    return json.dumps(export_tree_document(tree), indent=2, ensure_ascii=False)


def parse_tree_document(data: Any) -> FamilyTree:
    """
    Validate a document and build a snapshot from it. Anything structurally
    wrong raises InvalidTreeDocument; nothing is partially applied.
    """
    if not isinstance(data, dict):
        raise InvalidTreeDocument("JSON root must be an object")

    try:
        doc = TreeDocument.model_validate(data)
    except ValidationError as e:
        raise InvalidTreeDocument(f"Invalid family tree document: {e.error_count()} error(s)\n{e}") from e

    for key, p in doc.persons.items():
        if key != p.id:
            raise InvalidTreeDocument(f"Person key '{key}' does not match its id '{p.id}'")
    for key, m in doc.marriages.items():
        if key != m.id:
            raise InvalidTreeDocument(f"Marriage key '{key}' does not match its id '{m.id}'")
        for sid in (m.spouse1Id, m.spouse2Id):
            if sid not in doc.persons:
                raise InvalidTreeDocument(f"Marriage '{m.id}' references unknown person '{sid}'")
        if m.spouse1Id == m.spouse2Id:
            raise InvalidTreeDocument(f"Marriage '{m.id}' marries person '{m.spouse1Id}' to themselves")

    parent_of: Dict[str, str] = {}
    for i, link in enumerate(doc.children):
        if link.marriageId not in doc.marriages:
            raise InvalidTreeDocument(f"Child link {i}: unknown marriage '{link.marriageId}'")
        if link.personId not in doc.persons:
            raise InvalidTreeDocument(f"Child link {i}: unknown person '{link.personId}'")
        if link.personId in parent_of:
            raise InvalidTreeDocument(
                f"Child link {i}: person '{link.personId}' is already linked to "
                f"marriage '{parent_of[link.personId]}'"
            )
        parent_of[link.personId] = link.marriageId

    return FamilyTree(
        persons={pid: _person_from_doc(p) for pid, p in doc.persons.items()},
        marriages={
            mid: Marriage(
                id=m.id, spouse1_id=m.spouse1Id, spouse2_id=m.spouse2Id,
                marriage_year=m.marriageYear,
            )
            for mid, m in doc.marriages.items()
        },
        children=tuple(ChildLink(link.marriageId, link.personId) for link in doc.children),
    )


def parse_tree_json(text: str) -> FamilyTree:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidTreeDocument(f"Invalid JSON: {e}") from e
    return parse_tree_document(data)


def read_tree_file(path: str | Path) -> FamilyTree:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))

    with open(p, "r", encoding="utf-8") as f:
        tree = parse_tree_json(f.read())
    logger.info("Read %d persons from %s", len(tree.persons), p)
    return tree


def write_tree_file(tree: FamilyTree, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        f.write(export_tree_json(tree))
    logger.info("Wrote %d persons to %s", len(tree.persons), p)
