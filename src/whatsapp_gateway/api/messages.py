"""WhatsApp action endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from whatsapp_gateway.api.models import (
    BulkMessageRequest,
    ScheduleMessageRequest,
    SendMessageRequest,
)
from whatsapp_gateway.api.uploads import (
    UploadTooLargeError,
    remove_upload,
    store_upload,
)
from whatsapp_gateway.services.scheduling import (
    InvalidScheduleTimeError,
    parse_scheduled_time,
)

if TYPE_CHECKING:
    from whatsapp_gateway.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["whatsapp"])


def _failure(status_code: int, error: str, **extra: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, **extra},
    )


@router.post("/send-message", response_model=None)
async def send_message(
    body: SendMessageRequest, request: Request
) -> dict[str, object] | JSONResponse:
    """Send a text message to one number."""
    container: AppContainer = request.app.state.container
    try:
        await container.messaging_service.send_text(body.number, body.message)
    except Exception:
        logger.exception("Error sending message")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send message."
        )
    return {"success": True, "message": "Message sent successfully!"}


@router.post("/send-media", response_model=None)
async def send_media(
    request: Request,
    file: UploadFile = File(...),
    number: str = Form(...),
    caption: str | None = Form(default=None),
) -> dict[str, object] | JSONResponse:
    """Send an uploaded file; the stored upload is always removed."""
    container: AppContainer = request.app.state.container
    settings = container.settings
    try:
        path = await store_upload(file, settings.upload_dir, settings.max_upload_bytes)
    except UploadTooLargeError as exc:
        return _failure(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(exc))
    try:
        await container.messaging_service.send_media(
            number, str(path), file.filename or path.name, caption
        )
    except Exception:
        logger.exception("Error sending media")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send media."
        )
    finally:
        remove_upload(path)
    return {"success": True, "message": "Media sent successfully!"}


@router.post("/send-bulk-messages", response_model=None)
async def send_bulk_messages(
    body: BulkMessageRequest, request: Request
) -> dict[str, object] | JSONResponse:
    """Send one text to many numbers, skipping individual failures."""
    container: AppContainer = request.app.state.container
    try:
        await container.messaging_service.send_bulk(body.numbers, body.message)
    except Exception:
        logger.exception("Error sending bulk messages")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send bulk messages."
        )
    return {"success": True, "message": "Bulk messages processed successfully!"}


@router.get("/get-qr-code", response_model=None)
async def get_qr_code(request: Request) -> dict[str, object] | JSONResponse:
    """Return the latest stored QR challenge."""
    container: AppContainer = request.app.state.container
    try:
        record = container.qr_code_repository.get_qr_code(
            container.settings.whatsapp_session
        )
    except Exception:
        logger.exception("Error fetching QR code")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch QR code"},
        )
    if record is None or not record.qr_code:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "QR code not found"},
        )
    return {"qrCode": record.qr_code}


@router.post("/schedule-message", response_model=None)
async def schedule_message(
    body: ScheduleMessageRequest, request: Request
) -> dict[str, object] | JSONResponse:
    """Schedule a text message for a future instant."""
    container: AppContainer = request.app.state.container
    try:
        run_at = parse_scheduled_time(body.scheduled_time)
    except InvalidScheduleTimeError as exc:
        return _failure(status.HTTP_400_BAD_REQUEST, str(exc))
    try:
        job_id = container.scheduling_service.schedule_message(
            body.number, body.message, run_at
        )
    except Exception:
        logger.exception("Error scheduling message")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to schedule message."
        )
    return {
        "success": True,
        "message": "Message scheduled successfully!",
        "jobId": job_id,
        "scheduledTime": run_at.isoformat(),
    }


@router.post("/logout", response_model=None)
async def logout(request: Request) -> dict[str, object] | JSONResponse:
    """Clear stored login state and log the WhatsApp client out."""
    container: AppContainer = request.app.state.container
    report = await container.logout_service.logout()
    steps = [
        {"name": step.name, "outcome": step.outcome, "detail": step.detail}
        for step in report.steps
    ]
    if not report.succeeded:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to logout and clear session.",
            details=report.error,
            steps=steps,
        )
    return {
        "success": True,
        "message": "Logged out successfully, session and tokens cleared from the "
        "database.",
        "steps": steps,
    }


@router.post("/generate-new-qr", response_model=None)
async def generate_new_qr(request: Request) -> dict[str, object] | JSONResponse:
    """Restart the WhatsApp client so it renders a fresh QR challenge."""
    container: AppContainer = request.app.state.container
    logger.info("Generating new QR code")
    if not await container.client_lifecycle.initialize():
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate new QR code."
        )
    return {"success": True, "message": "New QR code generated successfully!"}
