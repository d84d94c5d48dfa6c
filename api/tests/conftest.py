"""Pytest configuration and fixtures."""

import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from printshop.api import deps
from printshop.celery_app import celery_app
from printshop.database import Database
from printshop.main import create_app
from printshop.models.commessa import Commessa
from printshop.models.file_origine import FileOrigine
from printshop.models.gcode import Gcode
from printshop.models.organization import Organizzazione
from printshop.models.stampante import Stampante
from printshop.services import lifecycle
from printshop.services.telemetry import LiveTelemetryAdapter
from printshop.storage.local_driver import LocalStorageDriver

Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Routes for a ``httpx.MockTransport`` standing in for printers and Home Assistant.

    Unregistered URLs answer 404; every request is recorded.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, handler: Handler) -> None:
        self.routes[(method.upper(), url)] = handler

    def add_json(self, method: str, url: str, payload: Any, status_code: int = 200) -> None:
        self.add(method, url, httpx.Response(status_code, json=payload))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?", 1)[0]
        handler = self.routes.get((request.method, url)) or self.routes.get((request.method, str(request.url)))
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(handler):
            return handler(request)
        return handler

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture(autouse=True)
def sent_tasks(monkeypatch):
    """Capture Celery dispatches instead of talking to the broker."""
    sent = []

    def fake_send_task(name, args=None, kwargs=None, **options):
        sent.append((name, args))
        return SimpleNamespace(id=f"task-{len(sent)}")

    monkeypatch.setattr(celery_app, "send_task", fake_send_task)
    return sent


@pytest.fixture
def database():
    """In-memory database with every table created."""
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    """Create a test database session."""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageDriver({"base_path": str(tmp_path / "storage")})


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def app(database, db, storage, http_client):
    """Application wired to the test database, storage and mocked upstreams."""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[deps.get_database] = lambda: database
    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_http_client] = lambda: http_client
    app.dependency_overrides[deps.get_telemetry] = lambda: LiveTelemetryAdapter(http_client)
    return app


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def organizzazione(db):
    organizzazione = Organizzazione(nome="Officina Test")
    db.add(organizzazione)
    db.commit()
    db.refresh(organizzazione)
    return organizzazione


@pytest.fixture
def headers(organizzazione):
    return {"X-Organization-ID": str(organizzazione.id), "X-User-ID": "user-1"}


@pytest.fixture
def commessa(db, organizzazione):
    commessa = Commessa(nome="Staffe", organizzazione_id=organizzazione.id)
    db.add(commessa)
    db.commit()
    db.refresh(commessa)
    return commessa


@pytest.fixture
def file_origine(db, commessa):
    file_origine = FileOrigine(nome_file="officina_test/staffe/staffa.stl", commessa_id=commessa.id, tipo="stl")
    db.add(file_origine)
    db.commit()
    db.refresh(file_origine)
    return file_origine


@pytest.fixture
def gcode(db, file_origine):
    gcode = Gcode(file_origine_id=file_origine.id, nome_file="officina_test/staffe/staffa/staffa_pla.gcode")
    db.add(gcode)
    db.commit()
    db.refresh(gcode)
    return gcode


@pytest.fixture
def make_stampante(db, organizzazione):
    def _make(nome: str = "Voron", **fields) -> Stampante:
        stampante = Stampante(nome=nome, organizzazione_id=organizzazione.id, **fields)
        db.add(stampante)
        db.commit()
        db.refresh(stampante)
        return stampante

    return _make


@pytest.fixture
def stampante(make_stampante):
    return make_stampante()


@pytest.fixture
def make_ordine(db, gcode, organizzazione):
    def _make(quantita: int = 1, **fields):
        return lifecycle.submit_order(
            db,
            gcode_id=gcode.id,
            quantita=quantita,
            commessa_id=fields.pop("commessa_id", None),
            organizzazione_id=organizzazione.id,
            user_id=fields.pop("user_id", "user-1"),
            **fields,
        )

    return _make
