import logging

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from . import auth, crud, graph, schemas, trees
from .db import get_conn
from .importers.family_tree_json import InvalidTreeDocument, export_tree_document, parse_tree_document
from .models import Gender, Marriage, Person

logger = logging.getLogger(__name__)

app = FastAPI()


def _person_from_body(person_id: str, body: schemas.PersonCreate) -> Person:
    return Person(
        id=person_id,
        name=body.name,
        gender=Gender(body.gender),
        birth_year=body.birthYear,
        death_year=body.deathYear,
        notes=body.notes,
        external=body.external,
        email=body.email,
        phone=body.phone,
    )


def _edit(conn, edit):
    """Apply one edit to the stored tree; edit errors become 400s."""
    try:
        return trees.apply_edit(conn, edit)
    except crud.TreeEditError as e:
        raise HTTPException(400, str(e))


def _require_person(conn, person_id: str):
    if person_id not in trees.load_tree(conn).persons:
        raise HTTPException(404, "Person not found")


def _require_marriage(conn, marriage_id: str):
    if marriage_id not in trees.load_tree(conn).marriages:
        raise HTTPException(404, "Marriage not found")


@app.get("/health")
def health():
    return {"ok": True}


# ── Session ──

@app.post("/api/login")
def login(body: schemas.LoginBody, response: Response):
    if not auth.authenticate_editor(body.password):
        raise HTTPException(401, "Invalid password")
    response.set_cookie(auth.SESSION_COOKIE, auth.create_session_token(), httponly=True, samesite="lax")
    return {"ok": True}


@app.post("/api/logout")
def logout(response: Response):
    response.delete_cookie(auth.SESSION_COOKIE)
    return {"ok": True}


@app.get("/api/session")
def session(request: Request):
    return {"editor": auth.is_editor(request)}


# ── Reads ──

@app.get("/api/tree")
def get_tree(conn=Depends(get_conn)):
    return export_tree_document(trees.load_tree(conn))


@app.get("/api/layout")
def get_layout(conn=Depends(get_conn)):
    return graph.build_layout(trees.load_tree(conn))


@app.get("/api/graph")
def get_graph(conn=Depends(get_conn)):
    return graph.build_graph(trees.load_tree(conn))


@app.get("/api/figure")
def get_figure(conn=Depends(get_conn)):
    return graph.build_plotly_figure_json(trees.load_tree(conn))


# ── People ──

@app.post("/api/people")
def add_person(body: schemas.PersonCreate, conn=Depends(get_conn), _=Depends(auth.require_editor)):
    person = _person_from_body(crud.generate_id(), body)
    _edit(conn, lambda t: crud.add_person(t, person))
    return {"id": person.id}


@app.put("/api/people/{person_id}")
def update_person(person_id: str, body: schemas.PersonUpdate,
                  conn=Depends(get_conn), _=Depends(auth.require_editor)):
    _require_person(conn, person_id)
    person = _person_from_body(person_id, body)
    _edit(conn, lambda t: crud.update_person(t, person))
    return {"id": person_id}


@app.delete("/api/people/{person_id}")
def delete_person(person_id: str, conn=Depends(get_conn), _=Depends(auth.require_editor)):
    _require_person(conn, person_id)
    _edit(conn, lambda t: crud.delete_person(t, person_id))
    return {"ok": True}


@app.post("/api/people/{person_id}/spouse")
def add_spouse(person_id: str, body: schemas.SpouseCreate,
               conn=Depends(get_conn), _=Depends(auth.require_editor)):
    _require_person(conn, person_id)
    created = {}

    def edit(t):
        t, created["spouse_id"], created["marriage_id"] = crud.add_spouse(
            t, person_id, body.name, Gender(body.gender), marriage_year=body.marriageYear,
        )
        return t

    _edit(conn, edit)
    return created


@app.post("/api/people/{person_id}/parents")
def add_parents(person_id: str, body: schemas.ParentsCreate,
                conn=Depends(get_conn), _=Depends(auth.require_editor)):
    _require_person(conn, person_id)
    created = {}

    def edit(t):
        t, created["marriage_id"] = crud.add_parents(t, person_id, body.fatherName, body.motherName)
        return t

    _edit(conn, edit)
    return created


# ── Marriages & children ──

@app.post("/api/marriages")
def add_marriage(body: schemas.MarriageCreate, conn=Depends(get_conn), _=Depends(auth.require_editor)):
    marriage = Marriage(
        id=crud.generate_id(), spouse1_id=body.spouse1Id, spouse2_id=body.spouse2Id,
        marriage_year=body.marriageYear,
    )
    _edit(conn, lambda t: crud.add_marriage(t, marriage))
    return {"id": marriage.id}


@app.post("/api/marriages/{marriage_id}/children")
def add_child_person(marriage_id: str, body: schemas.ChildCreate,
                     conn=Depends(get_conn), _=Depends(auth.require_editor)):
    _require_marriage(conn, marriage_id)
    created = {}

    def edit(t):
        t, created["id"] = crud.add_child_person(t, marriage_id, body.name, Gender(body.gender))
        return t

    _edit(conn, edit)
    return created


@app.post("/api/children")
def add_child(body: schemas.ChildLinkCreate, conn=Depends(get_conn), _=Depends(auth.require_editor)):
    _edit(conn, lambda t: crud.add_child(t, body.marriageId, body.personId))
    return {"ok": True}


# ── Import / export ──

@app.get("/api/export")
def export_tree(conn=Depends(get_conn)):
    return JSONResponse(
        export_tree_document(trees.load_tree(conn)),
        headers={"Content-Disposition": 'attachment; filename="family_tree.json"'},
    )


@app.post("/api/import")
def import_tree(data=Body(...), conn=Depends(get_conn), _=Depends(auth.require_editor)):
    try:
        tree = parse_tree_document(data)
    except InvalidTreeDocument as e:
        logger.warning("Rejected tree import: %s", e)
        raise HTTPException(400, str(e))
    trees.save_tree(conn, tree)
    return {"persons": len(tree.persons), "marriages": len(tree.marriages), "children": len(tree.children)}
