import pytest
from fastapi.testclient import TestClient

from review_desk.errors import SheetsAPIError, WebhookError
from review_desk.server import app
from review_desk.sheets import SheetSnapshot

SHEET_VALUES = [
    ["Created", "Phone", "Agent", "Email", "", "", "", "Notes", "Status"],
    ["2024-01-02", "5511888888888", "Ana", "", "", "", "", "", ""],
    ["2024-01-03", "5511999999999", "Bia", "", "", "", "", "Approved", ""],
]

_ENV_VARS = (
    "SHEET_ID",
    "SHEET_NAME",
    "SHEET_RANGE_PART",
    "GOOGLE_SHEETS_CREDENTIALS_JSON",
    "N8N_SAVE_CONTENT_WEBHOOK_URL",
    "N8N_REGENERATE_PDF_WEBHOOK_URL",
    "FILE_NAME_COLUMN_INDEX",
    "DISPLAY_START_COLUMN_INDEX",
)


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REVIEW_DATA_DIR", str(tmp_path))
    return TestClient(app)


class _StubSheets:
    def __init__(self, snapshot=None, error=None):
        self.snapshot = snapshot
        self.error = error

    def fetch(self):
        if self.error:
            raise self.error
        return self.snapshot


def _use_sheet(monkeypatch, stub: _StubSheets) -> None:
    monkeypatch.setenv("FILE_NAME_COLUMN_INDEX", "1")
    monkeypatch.setenv("DISPLAY_START_COLUMN_INDEX", "7")
    monkeypatch.setattr("review_desk.server._sheets_client", lambda settings: stub)


def _register(client: TestClient, name="5511999999999@s.whatsapp.net.txt") -> dict:
    resp = client.post(
        "/receive-text-file-path",
        json={"minio_path": f"https://storage.example.com/{name}", "name": name},
    )
    assert resp.status_code == 200
    return resp.json()["data"][0]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_wildcard_disables_credentials():
    cors = next(
        m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware"
    )
    assert cors.kwargs["allow_origins"] == ["*"]
    assert cors.kwargs["allow_credentials"] is False


def test_fetch_sheet_data_returns_matching_row(client, monkeypatch):
    _use_sheet(monkeypatch, _StubSheets(SheetSnapshot.from_values(SHEET_VALUES)))

    resp = client.post(
        "/fetch-sheet-data", json={"fileName": "5511999999999@s.whatsapp.net.txt"}
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["key"] == "5511999999999"
    assert data["header"] == SHEET_VALUES[0]
    assert data["row"] == SHEET_VALUES[2]
    assert data["matchedColumns"] == [{"name": "Notes", "value": "Approved"}]


def test_fetch_sheet_data_not_found(client, monkeypatch):
    _use_sheet(monkeypatch, _StubSheets(SheetSnapshot.from_values(SHEET_VALUES)))

    resp = client.post("/fetch-sheet-data", json={"fileName": "5511000000000.txt"})

    assert resp.status_code == 200
    assert resp.json() == {"data": None, "message": "Data not found for this file."}


def test_fetch_sheet_data_empty_sheet(client, monkeypatch):
    _use_sheet(monkeypatch, _StubSheets(SheetSnapshot.from_values([])))

    resp = client.post("/fetch-sheet-data", json={"fileName": "5511.txt"})

    assert resp.status_code == 200
    assert resp.json() == {"data": None, "message": "No data found in sheet."}


def test_fetch_sheet_data_requires_file_name(client):
    resp = client.post("/fetch-sheet-data", json={})
    assert resp.status_code == 400
    assert "fileName" in resp.json()["detail"]


def test_fetch_sheet_data_reports_missing_config(client):
    resp = client.post("/fetch-sheet-data", json={"fileName": "5511.txt"})
    assert resp.status_code == 500
    assert "SHEET_ID" in resp.json()["detail"]


def test_fetch_sheet_data_passes_through_upstream_status(client, monkeypatch):
    error = SheetsAPIError("Failed", status_code=403, details="denied")
    _use_sheet(monkeypatch, _StubSheets(error=error))

    resp = client.post("/fetch-sheet-data", json={"fileName": "5511.txt"})

    assert resp.status_code == 403
    assert resp.json()["detail"]["details"] == "denied"


def test_receive_text_file_path_stores_pending_record(client):
    record = _register(client)

    assert record["status"] is None
    assert record["display_name"] == "5511999999999"
    listed = client.get("/files").json()
    assert [f["id"] for f in listed] == [record["id"]]


def test_receive_text_file_path_rejects_invalid_payload(client):
    resp = client.post("/receive-text-file-path", json={"name": "chat.txt"})
    assert resp.status_code == 400
    assert "minio_path" in resp.json()["detail"]


def test_get_file_and_unknown_file(client):
    record = _register(client)
    assert client.get(f"/files/{record['id']}").json()["name"] == record["name"]
    assert client.get("/files/does-not-exist").status_code == 404


def test_review_moves_file_to_history(client):
    record = _register(client)

    resp = client.post(f"/files/{record['id']}/review", json={"status": "confirmed"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"

    assert client.get("/files").json() == []
    history = client.get("/files/history").json()
    assert [f["id"] for f in history] == [record["id"]]


def test_review_rejects_unknown_status_and_repeat(client):
    record = _register(client)
    url = f"/files/{record['id']}/review"

    assert client.post(url, json={"status": "maybe"}).status_code == 400
    assert client.post(url, json={"status": "denied"}).status_code == 200
    assert client.post(url, json={"status": "confirmed"}).status_code == 409
    assert client.post("/files/nope/review", json={"status": "denied"}).status_code == 404


def test_save_file_content_calls_webhook(client, monkeypatch):
    record = _register(client)
    monkeypatch.setenv("N8N_SAVE_CONTENT_WEBHOOK_URL", "https://n8n.example.com/save")
    calls = []

    def fake_send(url, rec, new_content, timeout=30.0):
        calls.append((url, rec.id, new_content))
        return {"saved": True}

    monkeypatch.setattr("review_desk.server.send_saved_content", fake_send)

    resp = client.post(
        "/save-file-content", json={"fileId": record["id"], "newContent": ""}
    )

    assert resp.status_code == 200
    assert resp.json()["webhookResponse"] == {"saved": True}
    assert calls == [("https://n8n.example.com/save", record["id"], "")]


def test_save_file_content_validates_body(client):
    assert client.post("/save-file-content", json={"newContent": "x"}).status_code == 400
    assert client.post("/save-file-content", json={"fileId": "f"}).status_code == 400


def test_save_file_content_rejects_non_string_content(client, monkeypatch):
    record = _register(client)
    monkeypatch.setenv("N8N_SAVE_CONTENT_WEBHOOK_URL", "https://n8n.example.com/save")
    calls = []
    monkeypatch.setattr(
        "review_desk.server.send_saved_content",
        lambda url, rec, new_content, timeout=30.0: calls.append(new_content),
    )

    resp = client.post(
        "/save-file-content", json={"fileId": record["id"], "newContent": {"a": 1}}
    )

    assert resp.status_code == 400
    assert "newContent" in resp.json()["detail"]
    assert calls == []


def test_save_file_content_unknown_file(client):
    resp = client.post("/save-file-content", json={"fileId": "nope", "newContent": "x"})
    assert resp.status_code == 404


def test_save_file_content_requires_webhook_url(client):
    record = _register(client)
    resp = client.post(
        "/save-file-content", json={"fileId": record["id"], "newContent": "x"}
    )
    assert resp.status_code == 500
    assert "webhook URL missing" in resp.json()["detail"]


def test_regenerate_pdf_passes_through_webhook_failure(client, monkeypatch):
    record = _register(client)
    monkeypatch.setenv("N8N_REGENERATE_PDF_WEBHOOK_URL", "https://n8n.example.com/pdf")

    def fake_request(url, rec, timeout=30.0):
        raise WebhookError("regenerate PDF webhook failed", status_code=503, details="busy")

    monkeypatch.setattr("review_desk.server.request_pdf_regeneration", fake_request)

    resp = client.post("/regenerate-pdf", json={"fileId": record["id"]})

    assert resp.status_code == 503
    assert resp.json()["detail"]["details"] == "busy"


def test_regenerate_pdf_success(client, monkeypatch):
    record = _register(client)
    monkeypatch.setattr(
        "review_desk.server.request_pdf_regeneration",
        lambda url, rec, timeout=30.0: {"queued": rec.id},
    )

    resp = client.post("/regenerate-pdf", json={"fileId": record["id"]})

    assert resp.status_code == 200
    assert resp.json()["n8nResponse"] == {"queued": record["id"]}
