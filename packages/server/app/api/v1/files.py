"""
File sharing endpoints: folder tree, uploads, downloads, tags, trash and settings.

Scopes: organization-wide (department_id null, admin managed) or one department
(managed by its manager). Everyone can read their department and the
organization scope.
- Folder trees are at most 5 levels deep and never cyclic
- Uploads are validated (size, type, name, content signature) and quota checked
- Deleting a file moves it to the trash; permanent deletion removes the bytes
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_admin, require_member
from app.core.database import get_session
from app.core.storage import LocalStorage, get_storage
from app.models.base import utcnow
from app.models.file import SharedFile, SharedFolder
from app.services import folders as folder_service
from app.services.file_validation import (
    get_file_extension,
    quota_error,
    sanitize_filename,
    validate_file,
)
from app.services.settings import get_file_share_settings, update_settings
from feedback_hub_shared.schemas.files import (
    FileRead,
    FileShareSettings,
    FileTagsUpdate,
    FileUpdate,
    FolderCreate,
    FolderRead,
    FolderUpdate,
)
from feedback_hub_shared.schemas.settings import AppSettingsUpdate

log = structlog.get_logger()
router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ensure_can_read(auth: AuthenticatedUser, department_id: Optional[uuid.UUID]) -> None:
    if auth.is_admin or department_id is None or department_id == auth.department_id:
        return
    raise HTTPException(status_code=403, detail="You cannot access files of this department")


def _ensure_can_write(auth: AuthenticatedUser, department_id: Optional[uuid.UUID]) -> None:
    if auth.is_employee:
        raise HTTPException(status_code=403, detail="Employees cannot manage shared files")
    if department_id is None and not auth.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can manage organization files")
    if department_id is not None and not (auth.is_admin or auth.manages(department_id)):
        raise HTTPException(status_code=403, detail="You can only manage files of your own department")


async def _get_folder_or_404(session: AsyncSession, folder_id: uuid.UUID) -> SharedFolder:
    folder = await session.get(SharedFolder, folder_id)
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    return folder


async def _get_file_or_404(
    session: AsyncSession, file_id: uuid.UUID, *, deleted: bool = False
) -> SharedFile:
    shared = await session.get(SharedFile, file_id)
    if not shared or (shared.deleted_at is not None) != deleted:
        raise HTTPException(status_code=404, detail="File not found")
    return shared


def _ensure_file_owner(auth: AuthenticatedUser, shared: SharedFile) -> None:
    if shared.uploaded_by_id == auth.user_id:
        return
    _ensure_can_write(auth, shared.department_id)


async def _ensure_folder_in_scope(
    session: AsyncSession, folder_id: Optional[uuid.UUID], department_id: Optional[uuid.UUID]
) -> None:
    if folder_id is None:
        return
    folder = await _get_folder_or_404(session, folder_id)
    if folder.department_id != department_id:
        raise HTTPException(status_code=400, detail="Folder does not belong to this scope")


async def _used_bytes(session: AsyncSession, user_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.coalesce(func.sum(SharedFile.size), 0)).where(SharedFile.uploaded_by_id == user_id)
    )
    return int(result.scalar_one())


def _clean_tags(tags: List[str]) -> List[str]:
    return list(dict.fromkeys(t.strip() for t in tags if t and t.strip()))


def _parse_tags(raw: Optional[str]) -> List[str]:
    """Decode the upload form's JSON tag list."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if not isinstance(parsed, list) or not all(isinstance(t, str) for t in parsed):
        raise HTTPException(status_code=400, detail="Tags must be a JSON list of strings")
    return _clean_tags(parsed)


# ---------------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------------


@router.get("/folders", response_model=List[FolderRead])
async def list_folders(
    department_id: Optional[uuid.UUID] = None,
    parent_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    _ensure_can_read(auth, department_id)
    result = await session.execute(
        select(SharedFolder)
        .where(SharedFolder.department_id == department_id, SharedFolder.parent_id == parent_id)
        .order_by(SharedFolder.name)
    )
    return list(result.scalars().all())


@router.post("/folders", response_model=FolderRead, status_code=201)
async def create_folder(
    body: FolderCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    _ensure_can_write(auth, body.department_id)
    name = body.name.strip()
    await folder_service.ensure_can_place(session, None, body.parent_id, body.department_id)
    await folder_service.ensure_unique_name(session, name, body.parent_id, body.department_id)

    folder = SharedFolder(
        name=name,
        parent_id=body.parent_id,
        department_id=body.department_id,
        created_by_id=auth.user_id,
    )
    session.add(folder)
    await session.commit()
    await session.refresh(folder)
    log.info("files.folder_created", folder_id=str(folder.id))
    return folder


@router.patch("/folders/{folder_id}", response_model=FolderRead)
async def update_folder(
    folder_id: uuid.UUID,
    body: FolderUpdate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Rename and/or move a folder."""
    folder = await _get_folder_or_404(session, folder_id)
    _ensure_can_write(auth, folder.department_id)

    name = body.name.strip() if body.name else folder.name
    parent_id = body.parent_id if body.move else folder.parent_id

    if body.move:
        await folder_service.ensure_can_place(session, folder.id, parent_id, folder.department_id)
    if name != folder.name or parent_id != folder.parent_id:
        await folder_service.ensure_unique_name(
            session, name, parent_id, folder.department_id, exclude_id=folder.id
        )

    folder.name = name
    folder.parent_id = parent_id
    session.add(folder)
    await session.commit()
    await session.refresh(folder)
    return folder


@router.delete("/folders/{folder_id}", status_code=204)
async def delete_folder(
    folder_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    folder = await _get_folder_or_404(session, folder_id)
    _ensure_can_write(auth, folder.department_id)
    await folder_service.ensure_empty(session, folder.id)
    await session.delete(folder)


# ---------------------------------------------------------------------------
# Upload & listing
# ---------------------------------------------------------------------------


@router.post("/upload", response_model=List[FileRead], status_code=201)
async def upload_files(
    files: List[UploadFile] = File(...),
    folder_id: Optional[uuid.UUID] = Form(None),
    department_id: Optional[uuid.UUID] = Form(None),
    tags: Optional[str] = Form(None),
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
    storage: LocalStorage = Depends(get_storage),
):
    """Upload one or more files. Any invalid file rejects the whole batch."""
    _ensure_can_write(auth, department_id)
    await _ensure_folder_in_scope(session, folder_id, department_id)

    tag_list = _parse_tags(tags)

    share_settings = await get_file_share_settings(session)
    payloads = []
    errors = []
    for upload in files:
        data = await upload.read()
        filename = upload.filename or "file"
        error = validate_file(filename, upload.content_type or "", data, share_settings)
        if error:
            errors.append({"file": filename, "error": error})
        payloads.append((filename, upload.content_type or "application/octet-stream", data))

    if not errors:
        used = await _used_bytes(session, auth.user_id)
        error = quota_error(used, sum(len(p[2]) for p in payloads), share_settings)
        if error:
            errors.append({"file": None, "error": error})

    if errors:
        log.warning("files.upload_rejected", user_id=str(auth.user_id), errors=len(errors))
        return JSONResponse(
            status_code=400,
            content={"detail": errors[0]["error"], "errors": errors},
        )

    scope = str(department_id) if department_id else "org"
    stored = []
    written = []
    try:
        for filename, content_type, data in payloads:
            ext = get_file_extension(filename)
            stored_name = f"{uuid.uuid4().hex}_{sanitize_filename(filename)}"
            key = f"{scope}/{stored_name}"
            storage.put_bytes(key, data)
            written.append(key)
            shared = SharedFile(
                original_name=filename,
                stored_name=stored_name,
                storage_key=key,
                mime_type=content_type,
                size=len(data),
                extension=ext,
                folder_id=folder_id,
                department_id=department_id,
                uploaded_by_id=auth.user_id,
                tags=tag_list,
            )
            session.add(shared)
            stored.append(shared)

        await session.commit()
    except Exception:
        for key in written:
            storage.delete(key)
        log.error("files.upload_failed", user_id=str(auth.user_id), removed=len(written))
        raise

    for shared in stored:
        await session.refresh(shared)
    log.info("files.uploaded", user_id=str(auth.user_id), count=len(stored))
    return stored


@router.get("/list", response_model=List[FileRead])
async def list_files(
    folder_id: Optional[uuid.UUID] = None,
    department_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Files in a folder (root when omitted), or matches for search / tag across the scope."""
    _ensure_can_read(auth, department_id)
    stmt = select(SharedFile).where(
        SharedFile.deleted_at.is_(None), SharedFile.department_id == department_id
    )
    if folder_id:
        stmt = stmt.where(SharedFile.folder_id == folder_id)
    elif not (search or tag):
        stmt = stmt.where(SharedFile.folder_id.is_(None))
    if search:
        stmt = stmt.where(SharedFile.original_name.ilike(f"%{search}%"))

    result = await session.execute(stmt.order_by(SharedFile.created_at.desc()))
    items = list(result.scalars().all())
    if tag:
        items = [f for f in items if tag in (f.tags or [])]
    return items


@router.get("/tags")
async def list_tags(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(SharedFile.tags).where(SharedFile.deleted_at.is_(None))
    if not auth.is_admin:
        stmt = stmt.where(
            or_(SharedFile.department_id.is_(None), SharedFile.department_id == auth.department_id)
        )
    result = await session.execute(stmt)
    used = sorted({t for (tags,) in result.all() for t in (tags or [])})
    share_settings = await get_file_share_settings(session)
    return {"tags": used, "suggested_tags": share_settings.suggested_tags}


# ---------------------------------------------------------------------------
# Trash
# ---------------------------------------------------------------------------


@router.get("/trash", response_model=List[FileRead])
async def list_trash(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(SharedFile).where(SharedFile.deleted_at.is_not(None))
    if not auth.is_admin:
        stmt = stmt.where(SharedFile.uploaded_by_id == auth.user_id)
    result = await session.execute(stmt.order_by(SharedFile.deleted_at.desc()))
    return list(result.scalars().all())


@router.post("/trash/{file_id}/restore", response_model=FileRead)
async def restore_file(
    file_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    shared = await _get_file_or_404(session, file_id, deleted=True)
    _ensure_file_owner(auth, shared)
    shared.deleted_at = None
    if shared.folder_id and not await session.get(SharedFolder, shared.folder_id):
        shared.folder_id = None
    session.add(shared)
    await session.commit()
    await session.refresh(shared)
    return shared


@router.delete("/trash/{file_id}/permanent", status_code=204)
async def purge_file(
    file_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
    storage: LocalStorage = Depends(get_storage),
):
    shared = await _get_file_or_404(session, file_id, deleted=True)
    _ensure_file_owner(auth, shared)
    storage.delete(shared.storage_key)
    await session.delete(shared)
    log.info("files.purged", file_id=str(file_id))


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get("/settings", response_model=FileShareSettings)
async def get_share_settings(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await get_file_share_settings(session)


@router.put("/settings", response_model=FileShareSettings)
async def put_share_settings(
    body: Dict[str, Any],
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await update_settings(session, AppSettingsUpdate(file_share_settings=body))
    await session.commit()
    return await get_file_share_settings(session)


# ---------------------------------------------------------------------------
# Single file
# ---------------------------------------------------------------------------


@router.get("/{file_id}")
async def download_file(
    file_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
    storage: LocalStorage = Depends(get_storage),
):
    shared = await _get_file_or_404(session, file_id)
    _ensure_can_read(auth, shared.department_id)
    if not storage.exists(shared.storage_key):
        log.error("files.blob_missing", file_id=str(file_id), key=shared.storage_key)
        raise HTTPException(status_code=404, detail="File content not found")

    with storage.open(shared.storage_key) as fh:
        data = fh.read()
    shared.download_count += 1
    session.add(shared)
    await session.commit()

    return Response(
        content=data,
        media_type=shared.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{shared.stored_name}"'},
    )


@router.patch("/{file_id}", response_model=FileRead)
async def update_file(
    file_id: uuid.UUID,
    body: FileUpdate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Rename and/or move a file."""
    shared = await _get_file_or_404(session, file_id)
    _ensure_file_owner(auth, shared)

    if body.original_name:
        shared.original_name = body.original_name.strip()
    if body.move:
        await _ensure_folder_in_scope(session, body.folder_id, shared.department_id)
        shared.folder_id = body.folder_id

    session.add(shared)
    await session.commit()
    await session.refresh(shared)
    return shared


@router.put("/{file_id}/tags", response_model=FileRead)
async def update_file_tags(
    file_id: uuid.UUID,
    body: FileTagsUpdate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    shared = await _get_file_or_404(session, file_id)
    _ensure_file_owner(auth, shared)
    shared.tags = _clean_tags(body.tags)
    session.add(shared)
    await session.commit()
    await session.refresh(shared)
    return shared


@router.delete("/{file_id}", status_code=204)
async def delete_file(
    file_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Move a file to the trash."""
    shared = await _get_file_or_404(session, file_id)
    _ensure_file_owner(auth, shared)
    shared.deleted_at = utcnow()
    session.add(shared)
