import logging
import time
from typing import Optional

from fastapi import FastAPI, Depends, Header, status, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session

from account_service import models  # noqa: F401  (registers tables on Base.metadata)
from account_service import schemas, services
from account_service.db import engine, Base, get_db
from account_service.errors import ServiceError
from account_service.utils import decode_token

# Logger configuration
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Create tables if they don't exist yet
try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified/created.")
except Exception as e:
    logger.error(f"Error initializing database: {e}", exc_info=True)


app = FastAPI(
    title="Account Service",
    description="Handles user registration, login, current user and profile management.",
    version="1.0.0"
)

# --- Prometheus metrics ---
REQUEST_COUNT = Counter(
    "account_requests_total",
    "Total requests processed by Account Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "account_request_latency_seconds",
    "Request latency in seconds for Account Service",
    ["endpoint"]
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    response = None
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as exc:
        logger.error(f"Unhandled exception during request processing: {exc}", exc_info=True)
        response = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
    finally:
        latency = time.time() - start_time
        endpoint = request.url.path

        REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=getattr(response, "status_code", status_code)
        ).inc()

    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Renders service errors as {"errors": {field: reason}}."""
    return JSONResponse(status_code=exc.error_code, content={"errors": exc.message})


# --- Authentication dependencies ---

def _username_from_authorization(authorization: Optional[str]) -> Optional[str]:
    """
    Extracts the username claim from an 'Authorization: Token <jwt>' (or Bearer) header.
    Returns None when no header is sent; raises 401 when the token is unusable.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() not in ("token", "bearer") or not token:
        logger.warning("Authorization header with an unsupported scheme.")
        raise ServiceError(status.HTTP_401_UNAUTHORIZED, {"token": "is invalid"})

    payload = decode_token(token.strip())
    claims = schemas.TokenPayload(**payload) if payload else None
    if claims is None or not claims.username:
        raise ServiceError(status.HTTP_401_UNAUTHORIZED, {"token": "is invalid"})
    return claims.username


def get_current_username(authorization: Optional[str] = Header(None)) -> str:
    username = _username_from_authorization(authorization)
    if username is None:
        raise ServiceError(status.HTTP_401_UNAUTHORIZED, {"token": "is missing"})
    return username


def get_optional_username(authorization: Optional[str] = Header(None)) -> Optional[str]:
    return _username_from_authorization(authorization)


# --- Health and metrics ---
@app.get("/metrics", tags=["Monitoring"])
def metrics():
    """Exposes application metrics for Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", tags=["Monitoring"])
def health_check():
    """Basic liveness check."""
    return {"status": "ok", "service": "account_service"}


# --- API endpoints ---

@app.post("/users", response_model=schemas.UserEnvelope, status_code=status.HTTP_201_CREATED, tags=["Authentication"])
def register(body: schemas.UserCreateRequest, db: Session = Depends(get_db)):
    """Registers a new user and returns it with an access token."""
    return {"user": services.create_user(db, body.user)}


@app.post("/users/login", response_model=schemas.UserEnvelope, tags=["Authentication"])
def login(body: schemas.UserLoginRequest, db: Session = Depends(get_db)):
    """Authenticates by email and password."""
    return {"user": services.login(db, body.user)}


@app.get("/user", response_model=schemas.UserEnvelope, tags=["Users"])
def read_current_user(
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
):
    return {"user": services.get_current_user(db, username)}


@app.put("/user", response_model=schemas.UserEnvelope, tags=["Users"])
def update_current_user(
    body: schemas.UserUpdateRequest,
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
):
    """Updates the authenticated user. Fields left out of the body are not changed."""
    return {"user": services.update_user(db, body.user, username)}


@app.get("/profiles/{username}", response_model=schemas.ProfileEnvelope, tags=["Profiles"])
def read_profile(
    username: str,
    viewer: Optional[str] = Depends(get_optional_username),
    db: Session = Depends(get_db),
):
    """Public profile; 'following' is relative to the caller when a token is sent."""
    return {"profile": services.get_profile(db, username, viewer)}
