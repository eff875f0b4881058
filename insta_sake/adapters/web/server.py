"""FastAPI application, startup, static files and the built front-end."""

import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from insta_sake.adapters.web.api_routes import api_router
from insta_sake.adapters.web.state import get_state
from insta_sake.config import CONFIG

_NO_SPA_PREFIXES = ("api/", "uploads/")


def _log(msg: str):
    print(msg, file=sys.stderr)


app = FastAPI(title="insta-sake")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(api_router)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    """Error bodies carry ``error`` (read by the front-end) next to ``detail``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.get("/health")
async def health():
    """Uptime monitor probe"""
    return {"ok": True}


_uploads_dir = Path(CONFIG["uploads_dir"])
_uploads_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(_uploads_dir), check_dir=False), name="uploads")


@app.get("/{full_path:path}", include_in_schema=False)
async def frontend(full_path: str):
    """Serve the built front-end, falling back to index.html for client-side routes."""
    dist = Path(CONFIG["dist_dir"]).resolve()
    if full_path.startswith(_NO_SPA_PREFIXES) or not dist.is_dir():
        raise HTTPException(status_code=404, detail="Not Found")
    candidate = (dist / full_path).resolve()
    if full_path and candidate.is_file() and dist in candidate.parents:
        return FileResponse(candidate)
    index = dist / "index.html"
    if not index.is_file():
        raise HTTPException(status_code=404, detail="Not Found")
    return FileResponse(index)


@app.on_event("startup")
async def startup_event():
    """Prune the queue and start the dispatcher"""
    state = get_state()
    state.queue.prune()
    state.dispatcher.start()
    _log(f"Server running at http://localhost:{CONFIG['port']}")


@app.on_event("shutdown")
async def shutdown_event():
    await get_state().dispatcher.stop()


def main():
    uvicorn.run(app, host="0.0.0.0", port=CONFIG["port"], log_level="info")


if __name__ == "__main__":
    main()
