"""/api routes: auth, settings, post queue and image tools."""

import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from insta_sake.adapters.ai.openai_vision import VisionError
from insta_sake.adapters.ai.remove_bg import BackgroundRemovalError
from insta_sake.adapters.imaging.compositor import (
    clean_studio,
    composite_on_background,
    label_export,
)
from insta_sake.adapters.media.cloudinary import ImageHostError
from insta_sake.adapters.web.auth import (
    generate_token,
    is_authenticated,
    password_matches,
    require_auth,
)
from insta_sake.adapters.web.state import AppState, get_state
from insta_sake.domain.image_params import CleanParams, LabelParams
from insta_sake.domain.models import parse_schedule_time
from insta_sake.domain.publishing import PostNotFound, PublishInProgress, publish_post

UPLOADS_URL_PREFIX = "uploads"

api_router = APIRouter(prefix="/api", tags=["API"])
protected = [Depends(require_auth)]


def _log(msg: str):
    print(msg, file=sys.stderr)


# --- Request/Response models ---


class LoginRequest(BaseModel):
    password: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool
    token: str


class AuthStatusResponse(BaseModel):
    authRequired: bool
    authenticated: bool


class ConfigUpdateRequest(BaseModel):
    accessToken: Optional[str] = None
    instagramId: Optional[str] = None
    publicUrl: Optional[str] = None
    openAiKey: Optional[str] = None
    removeBgKey: Optional[str] = None


class GeneratedImageResponse(BaseModel):
    success: bool
    generatedImagePath: str


class RetryResponse(BaseModel):
    success: bool
    status: str


# --- Helpers ---


async def save_upload(upload: UploadFile, uploads_dir: Path) -> Path:
    """Store an upload as ``<epoch ms><ext>`` in the uploads directory."""
    ext = Path(upload.filename or "").suffix.lower()
    stamp = int(time.time() * 1000)
    target = uploads_dir / f"{stamp}{ext}"
    while target.exists():
        stamp += 1
        target = uploads_dir / f"{stamp}{ext}"
    target.write_bytes(await upload.read())
    return target


def public_path(path: Path) -> str:
    """Path of a file in the uploads directory as served by /uploads."""
    return f"{UPLOADS_URL_PREFIX}/{path.name}"


def derived_path(source: Path, suffix: str) -> Path:
    return source.with_name(f"{source.stem}_{suffix}.png")


# --- Auth ---


@api_router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, state: AppState = Depends(get_state)):
    password = state.config.app_password
    if password and not password_matches(req.password, password):
        raise HTTPException(status_code=401, detail="Invalid password")
    state.auth_token = generate_token()
    return LoginResponse(success=True, token=state.auth_token)


@api_router.get("/auth-status", response_model=AuthStatusResponse)
async def auth_status(
    x_auth_token: Optional[str] = Header(default=None),
    state: AppState = Depends(get_state),
):
    return AuthStatusResponse(
        authRequired=state.config.auth_required,
        authenticated=is_authenticated(state, x_auth_token),
    )


# --- Settings ---


@api_router.get("/config", dependencies=protected)
async def read_config(state: AppState = Depends(get_state)) -> Dict[str, Any]:
    return state.settings.public_view()


@api_router.post("/config", dependencies=protected)
async def update_config(req: ConfigUpdateRequest, state: AppState = Depends(get_state)):
    state.settings.update(req.model_dump(exclude_none=True))
    return {"message": "Settings updated"}


# --- Posts ---


@api_router.post("/schedule", dependencies=protected)
async def schedule_post(
    image: UploadFile = File(...),
    caption: str = Form(""),
    scheduleTime: str = Form(...),
    state: AppState = Depends(get_state),
):
    try:
        parse_schedule_time(scheduleTime)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid scheduleTime: {scheduleTime!r}")

    local_path = await save_upload(image, state.uploads_dir)
    image_path = public_path(local_path)

    if state.image_host.is_configured:
        try:
            image_path = await state.image_host.upload(str(local_path))
        except ImageHostError as e:
            _log(f"[schedule] Cloudinary upload failed: {e}")
            local_path.unlink(missing_ok=True)
            raise HTTPException(status_code=500, detail="Image upload to Cloudinary failed")
        local_path.unlink(missing_ok=True)

    post = state.queue.add(image_path=image_path, caption=caption, schedule_time=scheduleTime)
    _log(f"[schedule] post {post.id} scheduled for {scheduleTime}")
    return {"message": "Post scheduled successfully!", "post": post.to_dict()}


@api_router.get("/posts", dependencies=protected)
async def list_posts(state: AppState = Depends(get_state)) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in state.queue.list_posts()]


@api_router.post("/posts/{post_id}/retry", response_model=RetryResponse, dependencies=protected)
async def retry_post(post_id: int, state: AppState = Depends(get_state)):
    try:
        result = await publish_post(state.queue, state.publisher, post_id)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    except PublishInProgress:
        raise HTTPException(status_code=409, detail="Post is already being published")
    post = state.queue.get(post_id)
    return RetryResponse(success=result.success, status=post.status if post else "failed")


@api_router.delete("/posts/{post_id}", dependencies=protected)
async def delete_post(post_id: int, state: AppState = Depends(get_state)):
    if not state.queue.remove(post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    return {"success": True}


# --- AI / image tools ---


@api_router.post("/analyze-sake", dependencies=protected)
async def analyze_sake(image: UploadFile = File(...), state: AppState = Depends(get_state)):
    if not state.vision.is_configured:
        raise HTTPException(status_code=500, detail="OpenAI API Key not configured")
    data = await image.read()
    mime = image.content_type if (image.content_type or "").startswith("image/") else "image/jpeg"
    try:
        return await state.vision.analyze_bottle(data, mime)
    except VisionError as e:
        _log(f"[analyze] failed: {e}")
        raise HTTPException(status_code=500, detail=f"Image analysis failed: {e}")


@api_router.post(
    "/generate-background", response_model=GeneratedImageResponse, dependencies=protected
)
async def generate_background(
    image: UploadFile = File(...),
    prompt: str = Form(""),
    state: AppState = Depends(get_state),
):
    if not state.vision.is_configured:
        raise HTTPException(status_code=500, detail="OpenAI API Key not configured")
    source = await save_upload(image, state.uploads_dir)
    try:
        background = await state.vision.generate_background(prompt)
        _log("[generate] Compositing...")
        out = await run_in_threadpool(
            composite_on_background, background, source, derived_path(source, "ai_gen")
        )
    except (VisionError, OSError, ValueError) as e:
        _log(f"[generate] failed: {e}")
        raise HTTPException(status_code=500, detail="Background generation failed")
    return GeneratedImageResponse(success=True, generatedImagePath=public_path(Path(out)))


@api_router.post(
    "/clean-background", response_model=GeneratedImageResponse, dependencies=protected
)
async def clean_background(
    image: UploadFile = File(...),
    bgTone: Optional[str] = Form(None),
    brightness: Optional[str] = Form(None),
    shadow: Optional[str] = Form(None),
    subjectScale: Optional[str] = Form(None),
    offsetX: Optional[str] = Form(None),
    offsetY: Optional[str] = Form(None),
    shadowStrength: Optional[str] = Form(None),
    state: AppState = Depends(get_state),
):
    params = CleanParams.from_form(
        bg_tone=bgTone,
        brightness=brightness,
        shadow=shadow,
        subject_scale=subjectScale,
        offset_x=offsetX,
        offset_y=offsetY,
        shadow_strength=shadowStrength,
    )
    source = await save_upload(image, state.uploads_dir)
    try:
        cutout = await state.remover.remove_background(str(source))
        out = await run_in_threadpool(clean_studio, cutout, derived_path(source, "clean"), params)
    except (BackgroundRemovalError, OSError, ValueError) as e:
        _log(f"[clean] failed: {e}")
        raise HTTPException(status_code=500, detail=str(e) or "Background cleaning failed")
    return GeneratedImageResponse(success=True, generatedImagePath=public_path(Path(out)))


@api_router.post("/label-export", response_model=GeneratedImageResponse, dependencies=protected)
async def export_label(
    image: UploadFile = File(...),
    width: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    margin: Optional[str] = Form(None),
    background: Optional[str] = Form(None),
    state: AppState = Depends(get_state),
):
    params = LabelParams.from_form(width=width, height=height, margin=margin, background=background)
    source = await save_upload(image, state.uploads_dir)
    try:
        cutout = await state.remover.remove_background(str(source))
        out = await run_in_threadpool(label_export, cutout, derived_path(source, "label"), params)
    except (BackgroundRemovalError, OSError, ValueError) as e:
        _log(f"[label] failed: {e}")
        raise HTTPException(status_code=500, detail=str(e) or "Label export failed")
    return GeneratedImageResponse(success=True, generatedImagePath=public_path(Path(out)))
