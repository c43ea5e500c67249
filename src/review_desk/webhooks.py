"""Forward file events to the workflow automation webhooks."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .errors import ConfigurationError, WebhookError
from .models import FileRecord

logger = logging.getLogger(__name__)


def _file_payload(record: FileRecord) -> Dict[str, Any]:
    return {
        "fileId": record.id,
        "fileName": record.name,
        "minioPath": record.minio_path,
    }


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def post_webhook(
    url: Optional[str],
    payload: Dict[str, Any],
    *,
    name: str,
    timeout: float = 30.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> Any:
    """POST ``payload`` as JSON and return the decoded response body."""
    if not url:
        raise ConfigurationError(f"Server configuration error: {name} webhook URL missing.")

    logger.info("Calling %s webhook for file %s", name, payload.get("fileId"))
    with httpx.Client(timeout=timeout, transport=transport) as client:
        response = client.post(url, json=payload)

    if response.is_error:
        logger.error("%s webhook returned %s", name, response.status_code)
        raise WebhookError(
            f"{name} webhook failed: Status {response.status_code}",
            status_code=response.status_code,
            details=response.text,
        )
    return _response_body(response)


def send_saved_content(
    url: Optional[str],
    record: FileRecord,
    new_content: str,
    *,
    timeout: float = 30.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> Any:
    payload = _file_payload(record)
    payload["newContent"] = new_content
    return post_webhook(
        url, payload, name="save content", timeout=timeout, transport=transport
    )


def request_pdf_regeneration(
    url: Optional[str],
    record: FileRecord,
    *,
    timeout: float = 30.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> Any:
    return post_webhook(
        url,
        _file_payload(record),
        name="regenerate PDF",
        timeout=timeout,
        transport=transport,
    )
