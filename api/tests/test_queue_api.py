"""Print queue endpoint tests."""

from printshop.models.organization import Organizzazione
from printshop.models.stampante import Stampante


def _order(client, headers, gcode_id):
    return client.post("/api/ordini", json={"gcode_id": gcode_id, "quantita": 1}, headers=headers).json()["ordine"]


def _enqueue(client, headers, ordine_id, stampante_id):
    return client.post("/api/coda-stampa", json={"ordine_id": ordine_id, "stampante_id": stampante_id}, headers=headers)


def test_full_flow_over_http(client, headers, gcode, stampante):
    ordine = _order(client, headers, gcode.id)

    response = _enqueue(client, headers, ordine["id"], stampante.id)
    assert response.status_code == 201
    entry = response.json()["coda"]
    assert entry["posizione"] == 1
    assert entry["stato"] == "in_queue"

    response = client.post(f"/api/coda-stampa/{entry['id']}/start")
    assert response.status_code == 200
    assert response.json()["coda"]["stato"] == "printing"
    assert response.json()["coda"]["data_inizio"] is not None
    assert client.get(f"/api/ordini/{ordine['id']}", headers=headers).json()["ordine"]["stato"] == "in_stampa"

    response = client.post(f"/api/coda-stampa/{entry['id']}/complete", json={"esito": "done"})
    assert response.status_code == 200
    assert response.json()["coda"]["stato"] == "done"
    assert client.get(f"/api/ordini/{ordine['id']}", headers=headers).json()["ordine"]["stato"] == "pronto"

    response = client.post(f"/api/ordini/{ordine['id']}/consegna", headers=headers)
    assert response.status_code == 200
    assert response.json()["ordine"]["stato"] == "consegnato"
    assert response.json()["ordine"]["data_consegna"] is not None


def test_second_start_on_busy_printer(client, headers, gcode, stampante):
    first = _enqueue(client, headers, _order(client, headers, gcode.id)["id"], stampante.id).json()["coda"]
    second = _enqueue(client, headers, _order(client, headers, gcode.id)["id"], stampante.id).json()["coda"]
    assert second["posizione"] == 2

    assert client.post(f"/api/coda-stampa/{first['id']}/start").status_code == 200
    response = client.post(f"/api/coda-stampa/{second['id']}/start")
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_list_queue_by_printer(client, headers, gcode, make_stampante):
    a = make_stampante("A")
    b = make_stampante("B")
    _enqueue(client, headers, _order(client, headers, gcode.id)["id"], a.id)
    _enqueue(client, headers, _order(client, headers, gcode.id)["id"], b.id)

    response = client.get("/api/coda-stampa", params={"stampante_id": a.id})
    assert response.json()["count"] == 1
    assert response.json()["coda"][0]["stampante_id"] == a.id

    assert client.get("/api/coda-stampa").json()["count"] == 2


def test_complete_with_invalid_outcome(client, headers, gcode, stampante):
    entry = _enqueue(client, headers, _order(client, headers, gcode.id)["id"], stampante.id).json()["coda"]
    client.post(f"/api/coda-stampa/{entry['id']}/start")

    response = client.post(f"/api/coda-stampa/{entry['id']}/complete", json={"esito": "boh"})
    assert response.status_code == 400


def test_unknown_queue_entry(client):
    response = client.post("/api/coda-stampa/999/start")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_enqueue_order_of_other_organization(client, headers, gcode, stampante):
    ordine = _order(client, headers, gcode.id)
    response = _enqueue(client, {"X-Organization-ID": "999"}, ordine["id"], stampante.id)
    assert response.status_code == 404


def test_queue_scoped_to_caller_organization(client, db, headers, gcode, stampante):
    altra = Organizzazione(nome="Altra Officina")
    db.add(altra)
    db.flush()
    stampante_altrui = Stampante(nome="Prusa altrui", organizzazione_id=altra.id)
    db.add(stampante_altrui)
    db.commit()
    ordine = _order(client, headers, gcode.id)

    assert _enqueue(client, headers, ordine["id"], stampante_altrui.id).status_code == 404

    entry = _enqueue(client, headers, ordine["id"], stampante.id).json()["coda"]
    other_headers = {"X-Organization-ID": str(altra.id)}
    assert client.post(f"/api/coda-stampa/{entry['id']}/start", headers=other_headers).status_code == 404
    assert client.post(f"/api/coda-stampa/{entry['id']}/start", headers=headers).status_code == 200
    response = client.post(f"/api/coda-stampa/{entry['id']}/complete", json={"esito": "done"}, headers=other_headers)
    assert response.status_code == 404
    assert client.get("/api/coda-stampa", headers=other_headers).json()["count"] == 0


def test_concatenation_candidates_endpoint(client, headers, gcode, stampante):
    _enqueue(client, headers, _order(client, headers, gcode.id)["id"], stampante.id)
    _enqueue(client, headers, _order(client, headers, gcode.id)["id"], stampante.id)

    response = client.get(
        "/api/coda-stampa/concatenation-candidates", params={"stampante_id": stampante.id}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 1
    proposta = body["proposte"][0]
    assert proposta["tipo"] == "same_gcode"
    assert proposta["quantita_totale"] == 2
    # not analyzed yet
    assert proposta["tempo_stimato_min"] == 0
    assert proposta["materiale_stimato_grammi"] == 0

    response = client.get("/api/coda-stampa/concatenation-candidates", params={"stampante_id": 9999})
    assert response.status_code == 404
    assert response.json()["success"] is False
