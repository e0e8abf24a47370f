from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse

from app.auth_utils import get_current_user
from core.storage import resolve_upload_path

router = APIRouter()


@router.get("/uploads/{bucket}/{owner_id}/{name:path}")
def serve_upload(request: Request, bucket: str, owner_id: str, name: str):
    user, _ = get_current_user(request)
    if not user:
        return RedirectResponse(url="/login", status_code=303)

    path = resolve_upload_path(bucket, owner_id, name)
    if path is None:
        return HTMLResponse("Not found", status_code=404)
    return FileResponse(path)
