"""GLB export route."""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from planexport.config import ExportConfig
from planexport.errors import (
    EmptySceneError,
    ExportError,
    InvalidDocumentError,
    TextureUnavailableError,
)
from planexport.pipeline import GLB_CONTENT_TYPE, export_plan_to_glb

logger = logging.getLogger(__name__)

router = APIRouter()


class ExportRequest(BaseModel):
    """Export request envelope sent by the editor."""

    model_config = ConfigDict(populate_by_name=True)

    scene: Dict[str, Any]
    textures_by_type: Optional[Dict[str, Any]] = Field(default=None, alias="texturesByType")


def error_status(error: ExportError) -> int:
    """Map export failures to HTTP status codes."""
    if isinstance(error, InvalidDocumentError):
        return 400
    if isinstance(error, EmptySceneError):
        return 422
    if isinstance(error, TextureUnavailableError):
        return 502
    return 500


def _error(status_code: int, message: str, error_type: str = "bad_request") -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": message, "error_type": error_type},
    )


def parse_export_body(body: Any) -> ExportRequest:
    """
    Accept either ``{scene, texturesByType}`` or a bare scene document.

    Raises:
        InvalidDocumentError: If the body is not a JSON object
    """
    if not isinstance(body, dict):
        raise InvalidDocumentError("Request body must be a JSON object")
    if "scene" in body:
        try:
            return ExportRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidDocumentError(f"Invalid export request: {e.errors()[0]['msg']}") from e
    return ExportRequest(scene=body)


@router.post("/glb")
async def export_glb(request: Request) -> Response:
    """
    Export a floor-plan scene to a binary glTF model.

    Returns:
        The GLB payload as an attachment, or a JSON error
    """
    config: ExportConfig = request.app.state.config

    raw = await request.body()
    if len(raw) > config.max_body_bytes:
        return _error(413, f"Request body too large (>{config.max_body_bytes} bytes)", "too_large")

    try:
        body = json.loads(raw or b"null")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return _error(400, f"Invalid JSON: {e}", "invalid_document")

    try:
        export_request = parse_export_body(body)
        glb = await export_plan_to_glb(
            export_request.scene,
            export_request.textures_by_type,
            config=config,
        )
    except ExportError as e:
        logger.warning(f"Export failed ({e.error_type}): {e}")
        return _error(error_status(e), str(e), e.error_type)

    return Response(
        content=glb,
        media_type=GLB_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{config.download_filename}"'},
    )
