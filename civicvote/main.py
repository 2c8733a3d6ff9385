# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from civicvote import config, storage
from civicvote.database import MongoConnector
from civicvote.errors import InternalError, VotingError
from civicvote.routes.candidate_routes import router as candidate_router
from civicvote.routes.election_routes import router as election_router
from civicvote.routes.user_routes import router as user_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting CivicVote API...")
    connector = MongoConnector()
    yield
    connector.close()
    logger.info("CivicVote API stopped")


app = FastAPI(title="CivicVote - Online Voting API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["*"],
)

app.mount("/uploads", StaticFiles(directory=str(storage.upload_dir())), name="uploads")

app.include_router(user_router)
app.include_router(candidate_router)
app.include_router(election_router)


# ==============================================================================
# Error responses: {"error": message}
# ==============================================================================
@app.exception_handler(VotingError)
async def voting_error_handler(request: Request, exc: VotingError):
    if isinstance(exc, InternalError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": InternalError.default_message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Unknown routes and wrong methods from the router itself.
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "; ".join(messages)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# --- General Endpoints ---

@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the CivicVote API"}


@app.get("/health", tags=["Root"])
def health_check():
    return {"status": "healthy", "database": "MongoDB"}


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("civicvote.main:app", host="0.0.0.0", port=8000)
