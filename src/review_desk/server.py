"""FastAPI service behind the review desk single-page app."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

import httpx
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .config import Settings, get_settings
from .errors import (
    ConfigurationError,
    FileNotFoundInStore,
    MalformedInputError,
    ReviewConflictError,
    UpstreamError,
)
from .models import FileRecord, ReviewStatus
from .schema import validate_file_path_payload
from .sheet_lookup import lookup
from .sheets import SheetsClient
from .store import FileStore
from .webhooks import request_pdf_regeneration, send_saved_content

logger = logging.getLogger(__name__)

app = FastAPI(title="Review Desk")


def _add_cors(app: FastAPI) -> None:
    """Allow the single-page app to call the API from another origin."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_add_cors(app)


def _settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Server configuration error: {exc.errors()[0]['msg']}",
        ) from exc


def _store(settings: Settings) -> FileStore:
    return FileStore(settings.store_dir())


def _sheets_client(settings: Settings) -> SheetsClient:
    """Separated so tests can swap in an offline client."""
    return SheetsClient(settings)


def _config_error(exc: ConfigurationError) -> HTTPException:
    logger.error("%s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
    )


def _upstream_error(exc: UpstreamError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code, detail={"error": str(exc), "details": exc.details}
    )


def _record_body(record: FileRecord) -> Dict[str, Any]:
    return record.model_dump(mode="json")


def _get_record(store: FileStore, file_id: str) -> FileRecord:
    try:
        return store.get(file_id)
    except FileNotFoundInStore as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc


def _require_file_id(payload: Dict[str, Any]) -> str:
    file_id = payload.get("fileId")
    if not file_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing fileId in request body",
        )
    return str(file_id)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/fetch-sheet-data")
def fetch_sheet_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Return the sheet row whose key column matches the cleaned file name."""
    file_name = payload.get("fileName")
    if not file_name or not isinstance(file_name, str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing fileName in request body",
        )

    settings = _settings()
    try:
        snapshot = _sheets_client(settings).fetch()
    except ConfigurationError as exc:
        raise _config_error(exc) from exc
    except UpstreamError as exc:
        raise _upstream_error(exc) from exc
    except httpx.HTTPError as exc:
        logger.error("Sheets API request failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not reach Google Sheets API: {exc}",
        ) from exc

    if snapshot.is_empty:
        return {"data": None, "message": "No data found in sheet."}

    try:
        result = lookup(
            file_name,
            snapshot.header,
            snapshot.rows,
            settings.file_name_column_index,
            settings.display_start_column_index,
        )
    except MalformedInputError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc

    if not result.found:
        return {"data": None, "message": "Data not found for this file."}
    body = result.to_payload()
    body.pop("found")
    return {"data": body}


@app.post("/receive-text-file-path")
def receive_text_file_path(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Register a file the ingestion workflow just uploaded; it starts as pending."""
    try:
        validate_file_path_payload(payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc

    record = _store(_settings()).add(payload["name"], payload["minio_path"])
    return {
        "message": "File path and name received and saved successfully.",
        "data": [_record_body(record)],
    }


@app.post("/save-file-content")
def save_file_content(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Send edited text for a file to the save-content workflow."""
    file_id = _require_file_id(payload)
    new_content = payload.get("newContent")
    if new_content is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing fileId or newContent in request body",
        )
    if not isinstance(new_content, str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="newContent must be a string",
        )

    settings = _settings()
    record = _get_record(_store(settings), file_id)
    try:
        webhook_result = send_saved_content(
            settings.save_content_webhook_url,
            record,
            new_content,
            timeout=settings.http_timeout_seconds,
        )
    except ConfigurationError as exc:
        raise _config_error(exc) from exc
    except UpstreamError as exc:
        raise _upstream_error(exc) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not reach save content webhook: {exc}",
        ) from exc

    return {
        "message": "File content sent to webhook successfully.",
        "webhookResponse": webhook_result,
    }


@app.post("/regenerate-pdf")
def regenerate_pdf(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Ask the workflow to rebuild the PDF rendition of a file."""
    file_id = _require_file_id(payload)
    settings = _settings()
    record = _get_record(_store(settings), file_id)
    try:
        n8n_result = request_pdf_regeneration(
            settings.regenerate_pdf_webhook_url,
            record,
            timeout=settings.http_timeout_seconds,
        )
    except ConfigurationError as exc:
        raise _config_error(exc) from exc
    except UpstreamError as exc:
        raise _upstream_error(exc) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not reach regenerate PDF webhook: {exc}",
        ) from exc

    return {
        "message": "PDF regeneration request sent successfully.",
        "n8nResponse": n8n_result,
    }


@app.get("/files")
def list_pending_files() -> List[Dict[str, Any]]:
    return [_record_body(r) for r in _store(_settings()).list_pending()]


@app.get("/files/history")
def list_reviewed_files() -> List[Dict[str, Any]]:
    return [_record_body(r) for r in _store(_settings()).list_reviewed()]


@app.get("/files/{file_id}")
def get_file(file_id: str) -> Dict[str, Any]:
    return _record_body(_get_record(_store(_settings()), file_id))


@app.post("/files/{file_id}/review")
def review_file(file_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Mark a pending file as confirmed or denied."""
    raw_status = payload.get("status")
    try:
        decision = ReviewStatus(raw_status)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="status must be 'confirmed' or 'denied'.",
        ) from exc

    store = _store(_settings())
    try:
        record = store.mark_reviewed(file_id, decision)
    except FileNotFoundInStore as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    except ReviewConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"status": "error", "message": str(exc)},
        ) from exc
    return _record_body(record)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "review_desk.server:app",
        host=os.getenv("REVIEW_HOST", "0.0.0.0"),
        port=int(os.getenv("REVIEW_PORT", "8000")),
        reload=os.getenv("REVIEW_RELOAD", "false").lower() == "true",
    )
