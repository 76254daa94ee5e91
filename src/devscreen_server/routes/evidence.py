"""Evidence upload endpoint — short videos/images attached to an answer.

Multipart form upload; the file is stored in the S3-compatible evidence
bucket under the caller-chosen ``file_path``.  Requires ``X-User-ID``.
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from devscreen_rules.actions import ScreeningActions

from devscreen_server.dependencies import get_actions, get_user_id
from devscreen_server.errors import envelope_response

router = APIRouter(tags=["evidence"])


@router.post("/evidence")
async def upload_evidence(
    file: UploadFile = File(...),
    file_path: str | None = Form(None),
    screening_id: str | None = Form(None),
    question_id: str | None = Form(None),
    user_id: str = Depends(get_user_id),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Upload one evidence file.  Returns 201 with the stored path."""
    data = await file.read()
    result = await actions.upload_evidence(
        file_path=file_path or "",
        data=data,
        user_id=user_id,
        screening_id=screening_id or "",
        question_id=question_id or "",
        content_type=file.content_type,
    )
    return envelope_response(result, status_code=201)
