"""G-code endpoint tests."""

import asyncio

import pytest

from printshop.celery_app import ANALYZE_GCODE_TASK, celery_app
from printshop.errors import ConflictError
from printshop.models.gcode import Gcode
from printshop.services import gcode_service
from printshop.storage import LocalStorageDriver

GCODE = b"; generated by PrusaSlicer 2.7.1\n; filament used [g] = 8.2\nG28\n"


def _upload(client, headers, file_origine_id, filename="Staffa PLA.gcode", analyze=True):
    return client.post(
        "/api/gcode",
        data={"file_origine_id": str(file_origine_id), "analyze": str(analyze).lower()},
        files={"file": (filename, GCODE, "text/plain")},
        headers=headers,
    )


def test_upload_becomes_principal_and_queues_analysis(client, headers, db, file_origine, sent_tasks):
    response = _upload(client, headers, file_origine.id)

    assert response.status_code == 201
    gcode = response.json()["gcode"]
    assert gcode["nome_file"] == "officina_test/staffe/staffa/Staffa_PLA.gcode"
    assert sent_tasks == [(ANALYZE_GCODE_TASK, [gcode["id"]])]

    db.expire_all()
    assert file_origine.gcode_principale_id == gcode["id"]

    second = _upload(client, headers, file_origine.id, filename="staffa_petg.gcode", analyze=False).json()["gcode"]
    db.expire_all()
    assert file_origine.gcode_principale_id == gcode["id"]
    assert len(sent_tasks) == 1
    assert second["id"] != gcode["id"]


def test_upload_survives_broker_outage(client, headers, monkeypatch, file_origine):
    def broken_send_task(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(celery_app, "send_task", broken_send_task)
    response = _upload(client, headers, file_origine.id)
    assert response.status_code == 201


def test_upload_duplicate_name(client, headers, file_origine):
    assert _upload(client, headers, file_origine.id).status_code == 201
    assert _upload(client, headers, file_origine.id).status_code == 409


def test_upload_race_removes_stored_object(db, tmp_path, organizzazione, file_origine):
    key = "officina_test/staffe/staffa/staffa_pla.gcode"

    class RacingStorage(LocalStorageDriver):
        async def upload_file(self, key, content, overwrite=False):
            # Another request registers the same G-code while this one is storing it
            db.add(Gcode(file_origine_id=file_origine.id, nome_file=key))
            db.commit()
            return await super().upload_file(key, content, overwrite)

    storage = RacingStorage({"base_path": str(tmp_path / "race")})

    with pytest.raises(ConflictError):
        asyncio.run(
            gcode_service.upload_gcode(db, storage, file_origine.id, organizzazione.id, "staffa_pla.gcode", GCODE)
        )

    assert asyncio.run(storage.file_exists(key)) is False
    assert db.query(Gcode).filter(Gcode.nome_file == key).count() == 1


def test_upload_rejects_non_gcode(client, headers, file_origine):
    assert _upload(client, headers, file_origine.id, filename="staffa.stl").status_code == 400


def test_upload_to_other_organization_file(client, file_origine):
    response = _upload(client, {"X-Organization-ID": "999"}, file_origine.id)
    assert response.status_code == 404


def test_list_get_download_delete(client, headers, file_origine):
    gcode_id = _upload(client, headers, file_origine.id).json()["gcode"]["id"]

    response = client.get("/api/gcode", params={"file_origine_id": file_origine.id}, headers=headers)
    assert response.json()["count"] == 1

    assert client.get(f"/api/gcode/{gcode_id}").json()["gcode"]["id"] == gcode_id

    response = client.get(f"/api/gcode/{gcode_id}/download")
    assert response.status_code == 200
    assert response.content == GCODE
    assert 'filename="Staffa_PLA.gcode"' in response.headers["content-disposition"]

    assert client.delete(f"/api/gcode/{gcode_id}", headers=headers).status_code == 200
    assert client.get(f"/api/gcode/{gcode_id}").status_code == 404


def test_delete_gcode_used_by_order(client, headers, gcode, make_ordine):
    make_ordine()
    assert client.delete(f"/api/gcode/{gcode.id}", headers=headers).status_code == 409


def test_download_missing_object(client, gcode):
    response = client.get(f"/api/gcode/{gcode.id}/download")
    assert response.status_code == 404


def test_analyze_one(client, gcode, sent_tasks):
    response = client.post(f"/api/gcode/{gcode.id}/analyze")
    assert response.status_code == 202
    assert response.json()["task_id"] == "task-1"
    assert sent_tasks == [(ANALYZE_GCODE_TASK, [gcode.id])]


def test_analyze_invalid_and_unknown_id(client):
    assert client.post("/api/gcode/abc/analyze").status_code == 400
    assert client.post("/api/gcode/999/analyze").status_code == 404


def test_analyze_dispatch_failure_is_500(client, gcode, monkeypatch):
    def broken_send_task(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(celery_app, "send_task", broken_send_task)
    response = client.post(f"/api/gcode/{gcode.id}/analyze")
    assert response.status_code == 500
    assert response.json()["success"] is False
    assert "broker down" in response.json()["error"]


def test_analyze_all_only_missing(client, db, gcode, file_origine, sent_tasks):
    complete = Gcode(
        file_origine_id=file_origine.id,
        nome_file="officina_test/staffe/staffa/completo.gcode",
        peso_grammi=10.0,
        tempo_stampa_min=30,
        materiale="PLA",
        stampante="MK4",
    )
    db.add(complete)
    db.commit()

    response = client.post("/api/gcode/analyze-all", params={"only_missing": True})
    assert response.status_code == 202
    assert response.json()["gcode_ids"] == [gcode.id]

    response = client.post("/api/gcode/analyze-all")
    assert response.json()["count"] == 2
    assert len(sent_tasks) == 3


def test_null_stats(client, db, gcode):
    gcode.peso_grammi = 5.0
    db.commit()

    stats = client.get("/api/gcode/null-stats").json()["stats"]
    assert stats["total"] == 1
    assert stats["with_nulls"] == 1
    assert stats["null_fields"] == {"peso_grammi": 0, "tempo_stampa_min": 1, "materiale": 1, "stampante": 1}
    assert stats["percentages"]["materiale"] == 100
