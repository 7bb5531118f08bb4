"""Tests for the HTTP API in app/main.py."""
import pytest

from app import trees


def _add(editor_client, name="Root", gender="male", **extra):
    resp = editor_client.post("/api/people", json={"name": name, "gender": gender, **extra})
    assert resp.status_code == 200
    return resp.json()["id"]


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


class TestSession:
    def test_login_sets_cookie(self, client):
        resp = client.post("/api/login", json={"password": "editor-password"})
        assert resp.status_code == 200
        assert client.get("/api/session").json() == {"editor": True}
        resp = client.post("/api/people", json={"name": "A", "gender": "male"})
        assert resp.status_code == 200

    def test_wrong_password(self, client):
        resp = client.post("/api/login", json={"password": "wrong-password"})
        assert resp.status_code == 401
        assert client.get("/api/session").json() == {"editor": False}

    def test_logout(self, editor_client):
        editor_client.post("/api/logout")
        editor_client.cookies.clear()
        assert editor_client.get("/api/session").json() == {"editor": False}


class TestWritesRequireEditor:
    @pytest.mark.parametrize("method,path,body", [
        ("post", "/api/people", {"name": "A", "gender": "male"}),
        ("put", "/api/people/x", {"name": "A", "gender": "male"}),
        ("delete", "/api/people/x", None),
        ("post", "/api/people/x/spouse", {"name": "A", "gender": "female"}),
        ("post", "/api/people/x/parents", {"fatherName": "F", "motherName": "M"}),
        ("post", "/api/marriages", {"spouse1Id": "a", "spouse2Id": "b"}),
        ("post", "/api/marriages/m/children", {"name": "K", "gender": "male"}),
        ("post", "/api/children", {"marriageId": "m", "personId": "p"}),
        ("post", "/api/import", {"persons": {}, "marriages": {}, "children": []}),
    ])
    def test_unauthenticated(self, client, method, path, body):
        kwargs = {} if body is None else {"json": body}
        resp = client.request(method.upper(), path, **kwargs)
        assert resp.status_code == 401

    def test_reads_are_public(self, client):
        for path in ("/api/tree", "/api/layout", "/api/graph", "/api/figure", "/api/export"):
            assert client.get(path).status_code == 200


class TestPeople:
    def test_add_and_read(self, editor_client):
        pid = _add(editor_client, "Root", birthYear=1950)
        doc = editor_client.get("/api/tree").json()
        assert doc["persons"][pid] == {"id": pid, "name": "Root", "gender": "male", "birthYear": 1950}

    def test_blank_name_rejected(self, editor_client):
        resp = editor_client.post("/api/people", json={"name": "  ", "gender": "male"})
        assert resp.status_code == 422

    def test_bad_gender_rejected(self, editor_client):
        resp = editor_client.post("/api/people", json={"name": "A", "gender": "unknown"})
        assert resp.status_code == 422

    def test_update(self, editor_client):
        pid = _add(editor_client, "Old", birthYear=1900)
        resp = editor_client.put(f"/api/people/{pid}", json={"name": "New", "gender": "female"})
        assert resp.status_code == 200
        person = editor_client.get("/api/tree").json()["persons"][pid]
        assert person == {"id": pid, "name": "New", "gender": "female"}

    def test_update_not_found(self, editor_client):
        resp = editor_client.put("/api/people/nope", json={"name": "X", "gender": "male"})
        assert resp.status_code == 404

    def test_delete_cascades(self, editor_client):
        root = _add(editor_client, "Root")
        spouse = editor_client.post(f"/api/people/{root}/spouse",
                                    json={"name": "Wife", "gender": "female"}).json()
        kid = editor_client.post(f"/api/marriages/{spouse['marriage_id']}/children",
                                 json={"name": "Kid", "gender": "male"}).json()

        resp = editor_client.delete(f"/api/people/{spouse['spouse_id']}")
        assert resp.status_code == 200

        doc = editor_client.get("/api/tree").json()
        assert spouse["spouse_id"] not in doc["persons"]
        assert doc["marriages"] == {}
        assert doc["children"] == []
        assert kid["id"] in doc["persons"]

    def test_delete_not_found(self, editor_client):
        assert editor_client.delete("/api/people/nope").status_code == 404


class TestRelationships:
    def test_add_spouse(self, editor_client):
        root = _add(editor_client)
        resp = editor_client.post(f"/api/people/{root}/spouse",
                                  json={"name": "Wife", "gender": "female", "marriageYear": 1975})
        assert resp.status_code == 200
        created = resp.json()
        doc = editor_client.get("/api/tree").json()
        assert doc["persons"][created["spouse_id"]]["external"] is True
        assert doc["marriages"][created["marriage_id"]] == {
            "id": created["marriage_id"], "spouse1Id": root,
            "spouse2Id": created["spouse_id"], "marriageYear": 1975,
        }

    def test_add_spouse_unknown_person(self, editor_client):
        resp = editor_client.post("/api/people/nope/spouse", json={"name": "W", "gender": "female"})
        assert resp.status_code == 404

    def test_add_parents(self, editor_client):
        root = _add(editor_client)
        resp = editor_client.post(f"/api/people/{root}/parents",
                                  json={"fatherName": "Dad", "motherName": "Mum"})
        assert resp.status_code == 200
        mid = resp.json()["marriage_id"]
        doc = editor_client.get("/api/tree").json()
        assert {"marriageId": mid, "personId": root} in doc["children"]

    def test_add_parents_twice_conflicts(self, editor_client):
        root = _add(editor_client)
        editor_client.post(f"/api/people/{root}/parents", json={"fatherName": "A", "motherName": "B"})
        resp = editor_client.post(f"/api/people/{root}/parents", json={"fatherName": "C", "motherName": "D"})
        assert resp.status_code == 400

    def test_marry_existing(self, editor_client):
        a = _add(editor_client, "A")
        b = _add(editor_client, "B", gender="female")
        resp = editor_client.post("/api/marriages", json={"spouse1Id": a, "spouse2Id": b})
        assert resp.status_code == 200
        assert resp.json()["id"] in editor_client.get("/api/tree").json()["marriages"]

    def test_marry_unknown_person(self, editor_client):
        a = _add(editor_client, "A")
        resp = editor_client.post("/api/marriages", json={"spouse1Id": a, "spouse2Id": "ghost"})
        assert resp.status_code == 400

    def test_child_of_unknown_marriage(self, editor_client):
        resp = editor_client.post("/api/marriages/nope/children", json={"name": "K", "gender": "male"})
        assert resp.status_code == 404

    def test_link_existing_child_idempotent(self, editor_client):
        a = _add(editor_client, "A")
        b = _add(editor_client, "B", gender="female")
        k = _add(editor_client, "K")
        mid = editor_client.post("/api/marriages", json={"spouse1Id": a, "spouse2Id": b}).json()["id"]
        for _ in range(2):
            resp = editor_client.post("/api/children", json={"marriageId": mid, "personId": k})
            assert resp.status_code == 200
        assert editor_client.get("/api/tree").json()["children"] == [{"marriageId": mid, "personId": k}]


class TestLayoutEndpoints:
    def test_layout(self, editor_client):
        root = _add(editor_client)
        created = editor_client.post(f"/api/people/{root}/spouse",
                                     json={"name": "W", "gender": "female"}).json()
        _add(editor_client, "Loner")

        layout = editor_client.get("/api/layout").json()
        assert layout["root"] == root
        assert layout["persons"][root] == {"x": -150.0, "y": 0.0}
        assert layout["persons"][created["spouse_id"]] == {"x": 150.0, "y": 0.0}
        assert layout["marriages"][created["marriage_id"]] == {"x": 0.0, "y": 0.0}
        assert len(layout["persons"]) == 2

    def test_graph(self, editor_client):
        _add(editor_client)
        result = editor_client.get("/api/graph").json()
        assert len(result["persons"]) == 1

    def test_figure(self, editor_client):
        _add(editor_client)
        fig = editor_client.get("/api/figure").json()
        assert "data" in fig and "layout" in fig


class TestImportExport:
    DOC = {
        "persons": {
            "a": {"id": "a", "name": "Ann", "gender": "female"},
            "b": {"id": "b", "name": "Ben", "gender": "male", "external": True},
        },
        "marriages": {"m": {"id": "m", "spouse1Id": "a", "spouse2Id": "b"}},
        "children": [],
    }

    def test_import_then_export(self, editor_client):
        resp = editor_client.post("/api/import", json=self.DOC)
        assert resp.status_code == 200
        assert resp.json() == {"persons": 2, "marriages": 1, "children": 0}

        resp = editor_client.get("/api/export")
        assert resp.status_code == 200
        assert "attachment" in resp.headers["content-disposition"]
        assert resp.json() == self.DOC

    def test_invalid_import_leaves_tree_untouched(self, editor_client, db):
        editor_client.post("/api/import", json=self.DOC)
        bad = {"persons": {"x": {"id": "x", "name": "X"}}, "marriages": {}, "children": []}
        resp = editor_client.post("/api/import", json=bad)
        assert resp.status_code == 400
        assert editor_client.get("/api/export").json() == self.DOC

    def test_non_object_import(self, editor_client):
        resp = editor_client.post("/api/import", json=[1, 2, 3])
        assert resp.status_code == 400

    def test_import_persists(self, editor_client, conn):
        editor_client.post("/api/import", json=self.DOC)
        assert list(trees.load_tree(conn).persons) == ["a", "b"]
