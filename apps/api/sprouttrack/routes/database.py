from __future__ import annotations

import logging
import os
import shutil
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from .. import db
from ..auth import AuthContext, require_admin
from ..schemas import ApiResponse
from ..timeutils import now_utc

router = APIRouter(prefix="/api/database", tags=["database"])
logger = logging.getLogger(__name__)


@router.get("")
async def download_backup(auth: AuthContext = Depends(require_admin)) -> Response:
    path = db.database_path()
    content = path.read_bytes()
    filename = f"baby-tracker-backup-{now_utc().date().isoformat()}.db"
    logger.info("database backup downloaded", extra={"caretaker_id": auth.caretaker_id, "bytes": len(content)})
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("", response_model=ApiResponse[dict])
async def restore_backup(
    file: Optional[UploadFile] = File(None),
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[dict]:
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    content = await file.read()
    if not content.startswith(db.SQLITE_HEADER):
        logger.warning("rejected database restore", extra={"upload": file.filename, "bytes": len(content)})
        raise HTTPException(status_code=400, detail="Invalid database file")

    path = db.database_path()
    upload_path = path.with_name(f"{path.name}.upload")
    upload_path.write_bytes(content)
    if not db.prepare_database_file(upload_path):
        upload_path.unlink(missing_ok=True)
        raise HTTPException(status_code=400, detail="Invalid database file")

    backup_path = path.with_name(f"{path.name}.backup-{now_utc().date().isoformat()}")
    if path.exists():
        shutil.copyfile(path, backup_path)
    os.replace(upload_path, path)
    db.initialize_db()
    logger.info(
        "database restored",
        extra={"caretaker_id": auth.caretaker_id, "backup": str(backup_path), "bytes": len(content)},
    )
    return ApiResponse[dict]()
