from fastapi import FastAPI, HTTPException, status, Query, Request
from datetime import datetime
from typing import List

from shared.utils import (
    get_db_client, SuccessResponse, HealthResponse, NotFoundException, UnauthorizedException,
    check_database, create_session_token, decode_session_token, session_expiry, new_id
)
from shared.logging_config import setup_logging, RequestLoggingMiddleware
from shared.security_config import setup_edge_middleware, limiter, DEFAULT_LIMIT
from shared.repository import DocumentRepository

from services.session_service.schemas import SessionCreate, SessionResponse, TokenVerifyRequest
from services.session_service.models import SessionDB

SERVICE_NAME = "session-service"

# Setup Logging
logger = setup_logging(SERVICE_NAME)

app = FastAPI(title="Session Service")
setup_edge_middleware(app)
app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)

@app.on_event("startup")
async def startup_db_client():
    app.mongodb_client = get_db_client()
    app.mongodb = app.mongodb_client.sessions_db
    await app.mongodb.sessions.create_index("user_id")
    # Expired sessions are dropped by Mongo
    await app.mongodb.sessions.create_index("expires_at", expireAfterSeconds=0)

@app.on_event("shutdown")
async def shutdown_db_client():
    app.mongodb_client.close()

def sessions() -> DocumentRepository[SessionDB]:
    return DocumentRepository(app.mongodb.sessions, SessionDB)

def to_response(session: SessionDB) -> SessionResponse:
    data = session.dict()
    data["session_id"] = data.pop("id")
    return SessionResponse(**data)

# --- Endpoints ---
@app.post("/sessions", response_model=SuccessResponse[SessionResponse])
@limiter.limit(DEFAULT_LIMIT)
async def create_session(session_in: SessionCreate, request: Request):
    session_id = new_id()
    now = datetime.utcnow()
    expires_at = session_expiry(now)

    session = SessionDB(
        id=session_id,
        user_id=session_in.user_id,
        device_info=session_in.device_info,
        token=create_session_token(session_in.user_id, session_id, expires_at),
        created_at=now,
        updated_at=now,
        expires_at=expires_at,
    )
    await sessions().insert(session)
    logger.info("Session created", extra={"session_id": session_id, "user_id": session.user_id})
    return SuccessResponse(data=to_response(session), message="Session created")

@app.post("/sessions/verify", response_model=SuccessResponse[SessionResponse])
@limiter.limit(DEFAULT_LIMIT)
async def verify_session(body: TokenVerifyRequest, request: Request):
    payload = decode_session_token(body.token)
    session = await sessions().get(payload.get("sid", ""))
    if not session or session.token != body.token:
        raise UnauthorizedException("Unknown session")
    if not session.active:
        raise UnauthorizedException("Session has been revoked")
    if session.expires_at <= datetime.utcnow():
        raise UnauthorizedException("Session has expired")
    return SuccessResponse(data=to_response(session), message="Session is valid")

@app.get("/sessions/user/{user_id}", response_model=SuccessResponse[List[SessionResponse]])
async def get_sessions_by_user(user_id: str, active_only: bool = Query(False, alias="activeOnly")):
    keys = {"user_id": user_id}
    if active_only:
        keys["active"] = True
    found = await sessions().find(sort="created_at", **keys)
    return SuccessResponse(data=[to_response(s) for s in found])

@app.get("/sessions/{session_id}", response_model=SuccessResponse[SessionResponse])
async def get_session(session_id: str):
    session = await sessions().get(session_id)
    if not session:
        raise NotFoundException("Session not found")
    return SuccessResponse(data=to_response(session))

@app.delete("/sessions/user/{user_id}", response_model=SuccessResponse[dict])
async def revoke_user_sessions(user_id: str):
    revoked = await sessions().update_where(
        {"active": False, "revoked_at": datetime.utcnow()}, user_id=user_id, active=True
    )
    logger.info("User sessions revoked", extra={"user_id": user_id})
    return SuccessResponse(data={"revoked": revoked}, message="Sessions revoked")

@app.delete("/sessions/{session_id}", response_model=SuccessResponse[SessionResponse])
async def revoke_session(session_id: str):
    session = await sessions().update(session_id, {"active": False, "revoked_at": datetime.utcnow()})
    if not session:
        raise NotFoundException("Session not found")
    logger.info("Session revoked", extra={"session_id": session_id, "user_id": session.user_id})
    return SuccessResponse(data=to_response(session), message="Session revoked")

@app.get("/health", response_model=HealthResponse)
async def health_check():
    db_status = await check_database(app.mongodb_client)
    if db_status != "connected":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service=SERVICE_NAME,
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        database=db_status
    )
