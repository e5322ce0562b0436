"""Upload, preview and delete media attached to drafts."""

from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, File, Form, Response, UploadFile, status

from talktopost.controllers.dependencies import CurrentUserDep, ServicesDep, SessionDep
from talktopost.views import AttachmentResponse

router = APIRouter(prefix="/attachments", tags=["attachments"])

_FILE_UPLOAD = File(...)
_DRAFT_ID_FORM = Form(...)


def content_disposition(filename: str, disposition: str = "inline") -> str:
    """Header value safe for latin-1 transport, as Starlette's ``FileResponse`` builds it."""

    quoted = quote(filename)
    if quoted != filename:
        fallback = "".join(ch for ch in filename if " " <= ch <= "~" and ch not in '"\\')
        fallback = fallback or "attachment"
        return f"{disposition}; filename=\"{fallback}\"; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{filename}"'


@router.post("", response_model=AttachmentResponse, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    file: UploadFile = _FILE_UPLOAD,
    draft_id: UUID = _DRAFT_ID_FORM,
) -> AttachmentResponse:
    data = await file.read()
    attachment = await services.attachments.create(
        session,
        user_id=current_user.id,
        draft_id=draft_id,
        filename=file.filename or "upload",
        mime_type=file.content_type,
        data=data,
    )
    return AttachmentResponse.model_validate(attachment)


@router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
) -> Response:
    await services.attachments.delete(
        session, user_id=current_user.id, attachment_id=attachment_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{attachment_id}/preview")
async def preview_attachment(
    attachment_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
) -> Response:
    preview = await services.attachments.preview(
        session, user_id=current_user.id, attachment_id=attachment_id
    )
    return Response(
        content=preview.content,
        media_type=preview.attachment.mime_type,
        headers={
            "Cache-Control": "public, max-age=31536000",
            "Content-Disposition": content_disposition(preview.attachment.filename),
        },
    )
