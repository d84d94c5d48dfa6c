"""Source file and commessa endpoint tests."""

import asyncio

from printshop.services.file_service import clean_name, source_file_key


def _upload(client, headers, commessa_id, filename="Staffa Supporto.STL", content=b"solid staffa\nendsolid\n"):
    return client.post(
        "/api/files",
        data={"commessa_id": str(commessa_id), "descrizione": "Staffa a L"},
        files={"file": (filename, content, "application/octet-stream")},
        headers=headers,
    )


def test_clean_name():
    assert clean_name("Società Rossi & Figli") == "societa_rossi_figli"
    assert clean_name("Commessa  2026") == "commessa_2026"


def test_source_file_key():
    assert source_file_key("Officina Test", "Staffe", "Staffa Supporto.STL") == "officina_test/staffe/staffa_supporto.stl"


def test_upload_stores_file(client, headers, commessa, storage):
    response = _upload(client, headers, commessa.id)

    assert response.status_code == 201
    file = response.json()["file"]
    assert file["nome_file"] == "officina_test/staffe/staffa_supporto.stl"
    assert file["tipo"] == "stl"
    assert file["user_id"] == "user-1"
    assert asyncio.run(storage.download_file(file["nome_file"])) == b"solid staffa\nendsolid\n"


def test_upload_same_name_is_conflict(client, headers, commessa):
    assert _upload(client, headers, commessa.id).status_code == 201
    response = _upload(client, headers, commessa.id)
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_upload_rejects_other_formats(client, headers, commessa):
    response = _upload(client, headers, commessa.id, filename="foto.png")
    assert response.status_code == 400


def test_upload_rejects_empty_file(client, headers, commessa):
    response = _upload(client, headers, commessa.id, filename="vuoto.step", content=b"")
    assert response.status_code == 400


def test_list_get_delete(client, headers, commessa, storage):
    file = _upload(client, headers, commessa.id, filename="piastra.step").json()["file"]

    response = client.get("/api/files", params={"commessa_id": commessa.id}, headers=headers)
    assert response.json()["count"] == 1
    assert response.json()["files"][0]["tipo"] == "step"

    assert client.get(f"/api/files/{file['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/files/{file['id']}", headers={"X-Organization-ID": "999"}).status_code == 404

    assert client.delete(f"/api/files/{file['id']}", headers=headers).status_code == 200
    assert asyncio.run(storage.file_exists(file["nome_file"])) is False
    assert client.get(f"/api/files/{file['id']}", headers=headers).status_code == 404


def test_delete_file_with_ordered_gcode(client, headers, file_origine, make_ordine):
    make_ordine()
    response = client.delete(f"/api/files/{file_origine.id}", headers=headers)
    assert response.status_code == 409


def test_set_gcode_principale(client, headers, db, file_origine, gcode, commessa):
    response = client.put(f"/api/files/{file_origine.id}/gcode-principale", json={"gcode_id": gcode.id}, headers=headers)
    assert response.status_code == 200
    assert response.json()["file"]["gcode_principale_id"] == gcode.id

    other_file = _upload(client, headers, commessa.id, filename="altro.stl").json()["file"]
    response = client.put(f"/api/files/{other_file['id']}/gcode-principale", json={"gcode_id": gcode.id}, headers=headers)
    assert response.status_code == 400


def test_commesse_crud(client, headers):
    response = client.post("/api/commesse", json={"nome": "Ricambi"}, headers=headers)
    assert response.status_code == 201
    commessa_id = response.json()["commessa"]["id"]

    assert client.post("/api/commesse", json={"nome": "Ricambi"}, headers=headers).status_code == 409
    assert client.get("/api/commesse", headers=headers).json()["count"] == 1
    assert client.get(f"/api/commesse/{commessa_id}", headers=headers).json()["commessa"]["nome"] == "Ricambi"

    assert client.delete(f"/api/commesse/{commessa_id}", headers=headers).status_code == 200
    assert client.get(f"/api/commesse/{commessa_id}", headers=headers).status_code == 404


def test_delete_commessa_removes_stored_files(client, headers, commessa, storage):
    file = _upload(client, headers, commessa.id).json()["file"]

    assert client.delete(f"/api/commesse/{commessa.id}", headers=headers).status_code == 200
    assert asyncio.run(storage.file_exists(file["nome_file"])) is False


def test_delete_commessa_with_orders(client, headers, commessa, make_ordine):
    make_ordine()
    response = client.delete(f"/api/commesse/{commessa.id}", headers=headers)
    assert response.status_code == 409


def test_organizations_and_members(client):
    response = client.post("/api/organizzazioni", json={"nome": "Nuova Officina"}, headers={"X-User-ID": "alice"})
    assert response.status_code == 201
    org_id = response.json()["organizzazione"]["id"]

    assert client.post("/api/organizzazioni", json={"nome": "Nuova Officina"}).status_code == 409

    response = client.get("/api/organizzazioni", headers={"X-User-ID": "alice"})
    assert [o["nome"] for o in response.json()["organizzazioni"]] == ["Nuova Officina"]
    assert client.get("/api/organizzazioni", headers={"X-User-ID": "bob"}).json()["count"] == 0

    response = client.post(f"/api/organizzazioni/{org_id}/membri", json={"user_id": "bob", "email": "bob@example.com"})
    assert response.status_code == 201
    assert response.json()["membro"]["role"] == "user"

    assert client.post(f"/api/organizzazioni/{org_id}/membri", json={"user_id": "bob"}).status_code == 409

    membri = client.get(f"/api/organizzazioni/{org_id}/membri").json()["membri"]
    assert {(m["user_id"], m["role"]) for m in membri} == {("alice", "admin"), ("bob", "user")}

    assert client.get("/api/organizzazioni/999/membri").status_code == 404
