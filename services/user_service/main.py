from fastapi import FastAPI, HTTPException, status, Query, Request
from datetime import datetime
from pymongo.errors import DuplicateKeyError
from typing import Optional, List

from shared.utils import (
    get_db_client, SuccessResponse, HealthResponse, check_database,
    NotFoundException, ConflictException, InvalidStateException, UnauthorizedException,
    get_password_hash, verify_password
)
from shared.logging_config import setup_logging, RequestLoggingMiddleware
from shared.security_config import setup_edge_middleware, limiter
from shared.repository import DocumentRepository

from services.user_service.schemas import (
    UserRegister, UserLogin, UserUpdate, UserResponse, RestaurantProfile
)
from services.user_service.models import UserDB, UserType

SERVICE_NAME = "user-service"

# Setup Logging
logger = setup_logging(SERVICE_NAME)

app = FastAPI(title="User Service")
setup_edge_middleware(app)
app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)

@app.on_event("startup")
async def startup_db_client():
    app.mongodb_client = get_db_client()
    app.mongodb = app.mongodb_client.users_db
    await app.mongodb.users.create_index("email", unique=True)
    await app.mongodb.users.create_index("user_type")

@app.on_event("shutdown")
async def shutdown_db_client():
    app.mongodb_client.close()

def users() -> DocumentRepository[UserDB]:
    return DocumentRepository(app.mongodb.users, UserDB)

def to_response(user: UserDB) -> UserResponse:
    return UserResponse(**user.dict())

async def get_user_or_404(user_id: str) -> UserDB:
    user = await users().get(user_id)
    if not user:
        raise NotFoundException("User not found")
    return user

# --- Endpoints ---
@app.post("/users", response_model=SuccessResponse[UserResponse])
@limiter.limit("20/minute")
async def register(user_in: UserRegister, request: Request):
    repo = users()
    if await repo.find_one(email=user_in.email):
        raise ConflictException("Email already registered")

    data = user_in.dict(exclude={"password"})
    user = UserDB(
        **data,
        password_hash=get_password_hash(user_in.password) if user_in.password else None,
    )
    try:
        await repo.insert(user)
    except DuplicateKeyError:
        # Lost a race with a concurrent registration of the same email
        raise ConflictException("Email already registered")
    logger.info("User registered", extra={"user_id": user.id})
    return SuccessResponse(data=to_response(user), message="User registered successfully")

@app.post("/users/authenticate", response_model=SuccessResponse[UserResponse])
@limiter.limit("5/minute")
async def authenticate(credentials: UserLogin, request: Request):
    user = await users().find_one(email=credentials.email)
    if not user or not user.password_hash or not verify_password(credentials.password, user.password_hash):
        raise UnauthorizedException("Incorrect email or password")
    return SuccessResponse(data=to_response(user))

@app.get("/users", response_model=SuccessResponse[List[UserResponse]])
async def list_users(user_type: Optional[UserType] = Query(None, alias="userType")):
    keys = {"user_type": user_type.value} if user_type else {}
    found = await users().find(sort="created_at", **keys)
    return SuccessResponse(data=[to_response(u) for u in found])

@app.get("/users/email/{email}", response_model=SuccessResponse[UserResponse])
async def get_user_by_email(email: str):
    user = await users().find_one(email=email)
    if not user:
        raise NotFoundException("User not found")
    return SuccessResponse(data=to_response(user))

@app.get("/users/{user_id}", response_model=SuccessResponse[UserResponse])
async def get_user(user_id: str):
    return SuccessResponse(data=to_response(await get_user_or_404(user_id)))

@app.put("/users/{user_id}", response_model=SuccessResponse[UserResponse])
async def update_user(user_id: str, user_update: UserUpdate):
    update_data = {k: v for k, v in user_update.dict().items() if v is not None}
    if "user_type" in update_data:
        update_data["user_type"] = update_data["user_type"].value

    repo = users()
    user = await repo.update(user_id, update_data) if update_data else await repo.get(user_id)
    if not user:
        raise NotFoundException("User not found")
    return SuccessResponse(data=to_response(user), message="Profile updated successfully")

@app.put("/users/{user_id}/restaurant", response_model=SuccessResponse[UserResponse])
async def set_restaurant_profile(user_id: str, profile: RestaurantProfile):
    user = await get_user_or_404(user_id)
    if user.user_type != UserType.RESTAURANT_OWNER.value:
        raise InvalidStateException("Only restaurant owners have a restaurant profile")

    user = await users().update(user_id, {"restaurant": profile.dict(), "profile_complete": True})
    logger.info("Restaurant profile updated", extra={"user_id": user_id})
    return SuccessResponse(data=to_response(user), message="Restaurant profile updated")

@app.delete("/users/{user_id}", response_model=SuccessResponse[dict])
async def delete_user(user_id: str):
    if not await users().delete(user_id):
        raise NotFoundException("User not found")
    logger.info("User deleted", extra={"user_id": user_id})
    return SuccessResponse(message="User deleted")

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
