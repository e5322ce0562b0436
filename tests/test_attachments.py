import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from talktopost.controllers.attachments import content_disposition
from talktopost.models import Draft, DraftMode, MediaType, Recording, RecordingStatus
from talktopost.services import errors, repositories
from talktopost.services.attachments import MB, AttachmentService, validate_attachment
from talktopost.utils import create_access_token

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def draft_id(database, user):
    with Session(database) as db_session:
        recording = Recording(
            user_id=user.id,
            storage_key=f"{user.id}/1-recording.webm",
            content_type="audio/webm",
            status=RecordingStatus.READY,
        )
        db_session.add(recording)
        db_session.flush()
        draft = Draft(
            recording_id=recording.id,
            mode=DraftMode.TWEET,
            thread=[{"text": "Hello", "char_count": 5}],
            original_text="Hello",
        )
        db_session.add(draft)
        db_session.commit()
        return draft.id


@pytest.mark.parametrize(
    "mime,size,expected",
    [
        ("image/png", 10, (MediaType.IMAGE, "png")),
        ("image/jpeg", 5 * MB, (MediaType.IMAGE, "jpg")),
        ("image/gif", 15 * MB, (MediaType.GIF, "gif")),
        ("video/mp4", 100 * MB, (MediaType.VIDEO, "mp4")),
        ("video/quicktime", 10, (MediaType.VIDEO, "mov")),
        ("IMAGE/WEBP; charset=binary", 10, (MediaType.IMAGE, "webp")),
    ],
)
def test_validate_attachment_accepts(mime, size, expected):
    assert validate_attachment(mime, size) == expected


@pytest.mark.parametrize(
    "mime,size",
    [
        ("application/pdf", 10),
        (None, 10),
        ("image/png", 0),
        ("image/png", 5 * MB + 1),
        ("image/gif", 15 * MB + 1),
        ("video/mp4", 512 * MB + 1),
    ],
)
def test_validate_attachment_rejects(mime, size):
    with pytest.raises(errors.ValidationError):
        validate_attachment(mime, size)


def test_upload_preview_and_delete(client, auth_headers, draft_id, fake_storage, user):
    response = client.post(
        "/attachments",
        headers=auth_headers,
        files={"file": ("cover.png", PNG_BYTES, "image/png")},
        data={"draft_id": str(draft_id)},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["media_type"] == "image"
    assert body["mime_type"] == "image/png"
    assert body["file_size"] == len(PNG_BYTES)
    assert body["draft_id"] == str(draft_id)
    assert body["storage_key"].startswith(f"{user.id}/")
    assert body["storage_key"].endswith(".png")
    assert fake_storage.objects[("attachments", body["storage_key"])] == PNG_BYTES

    preview = client.get(f"/attachments/{body['id']}/preview", headers=auth_headers)
    assert preview.status_code == 200
    assert preview.content == PNG_BYTES
    assert preview.headers["content-type"] == "image/png"
    assert preview.headers["cache-control"] == "public, max-age=31536000"
    assert 'filename="cover.png"' in preview.headers["content-disposition"]

    deleted = client.delete(f"/attachments/{body['id']}", headers=auth_headers)
    assert deleted.status_code == 204
    assert ("attachments", body["storage_key"]) in fake_storage.removed
    assert client.get(f"/attachments/{body['id']}/preview", headers=auth_headers).status_code == 404


def test_preview_with_non_latin_filename(client, auth_headers, draft_id, fake_storage):
    response = client.post(
        "/attachments",
        headers=auth_headers,
        files={"file": ("封面.png", PNG_BYTES, "image/png")},
        data={"draft_id": str(draft_id)},
    )
    assert response.status_code == 201

    preview = client.get(f"/attachments/{response.json()['id']}/preview", headers=auth_headers)

    assert preview.status_code == 200
    assert preview.content == PNG_BYTES
    disposition = preview.headers["content-disposition"]
    assert disposition == "inline; filename=\".png\"; filename*=utf-8''%E5%B0%81%E9%9D%A2.png"


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("cover.png", 'inline; filename="cover.png"'),
        ('say "hi".png', "inline; filename=\"say hi.png\"; filename*=utf-8''say%20%22hi%22.png"),
        ("封面", "inline; filename=\"attachment\"; filename*=utf-8''%E5%B0%81%E9%9D%A2"),
    ],
)
def test_content_disposition_is_latin1_safe(filename, expected):
    header = content_disposition(filename)

    assert header == expected
    header.encode("latin-1")


def test_upload_rejects_unsupported_type(client, auth_headers, draft_id, fake_storage):
    response = client.post(
        "/attachments",
        headers=auth_headers,
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        data={"draft_id": str(draft_id)},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "ValidationError"
    assert fake_storage.objects == {}


def test_upload_to_foreign_draft_is_not_found(client, draft_id, other_user, fake_storage):
    headers = {"Authorization": f"Bearer {create_access_token(str(other_user.id))}"}

    response = client.post(
        "/attachments",
        headers=headers,
        files={"file": ("cover.png", PNG_BYTES, "image/png")},
        data={"draft_id": str(draft_id)},
    )

    assert response.status_code == 404
    assert fake_storage.objects == {}


async def test_blob_removed_when_row_insert_fails(
    session, user, draft_id, fake_storage, monkeypatch
):
    async def failing_insert(db_session, attachment):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(repositories, "create_attachment", failing_insert)
    service = AttachmentService(fake_storage)

    with pytest.raises(SQLAlchemyError):
        await service.create(
            session,
            user_id=user.id,
            draft_id=draft_id,
            filename="cover.png",
            mime_type="image/png",
            data=PNG_BYTES,
        )

    assert fake_storage.objects == {}
    assert len(fake_storage.removed) == 1


async def test_delete_survives_storage_failure(session, user, draft_id, fake_storage):
    service = AttachmentService(fake_storage)
    attachment = await service.create(
        session,
        user_id=user.id,
        draft_id=draft_id,
        filename="clip.mp4",
        mime_type="video/mp4",
        data=b"video-bytes",
    )
    fake_storage.fail_remove = True

    await service.delete(session, user_id=user.id, attachment_id=attachment.id)

    with pytest.raises(errors.NotFound):
        await repositories.get_attachment_for_user(session, attachment.id, user.id)
