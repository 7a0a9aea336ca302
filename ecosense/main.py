"""FastAPI application setup for Ecosense Hanoi."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ecosense.api import router as api_router
from ecosense.errors import DuplicateVoteError, NotFoundError, UpstreamFetchError, ValidationError
from ecosense.live_updates import websocket_endpoint
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ecosense/main")

app = FastAPI(title="Ecosense Hanoi")


@app.exception_handler(UpstreamFetchError)
async def upstream_fetch_error_handler(request: Request, exc: UpstreamFetchError):
    logger.error(
        "Upstream fetch failed",
        extra={"path": request.url.path, "source": exc.source, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Environmental data unavailable"},
    )


@app.exception_handler(DuplicateVoteError)
async def duplicate_vote_handler(request: Request, exc: DuplicateVoteError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.debug("Rejected request", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


# API routes
app.include_router(api_router, prefix="/api")
app.add_api_websocket_route("/ws", websocket_endpoint)
