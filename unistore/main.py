# unistore/main.py
"""
Main FastAPI app exposing the storage routes and health endpoints.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from uuid import uuid4
import traceback

from unistore.monitoring.logger import log
from unistore.monitoring.context import set_request_context
from unistore.file_access.errors import StorageError
from unistore.api.errors import storage_error_handler
from unistore.api.admin.health import router as health_router
from unistore.api.files import router as files_router

app = FastAPI(title="unistore")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id
    set_request_context(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

app.add_exception_handler(StorageError, storage_error_handler)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    log(
        "ERROR",
        f"Unhandled exception: {exc}",
        module="main",
        request_id=request_id,
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "request_id": request_id,
            "detail": "An unexpected error occurred."
        }
    )

# Mount routers
app.include_router(health_router)
app.include_router(files_router)

# Logging initialization
log("INFO", "unistore started", module="main")
