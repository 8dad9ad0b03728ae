from datetime import datetime, timedelta
from typing import Optional, Generic, TypeVar, Any
from fastapi import HTTPException, status
from motor.motor_asyncio import AsyncIOMotorClient
from passlib.context import CryptContext
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings
from jose import JWTError, jwt
import uuid

# --- Configuration ---
class Settings(BaseSettings):
    MONGO_URL: str = "mongodb://mongodb:27017"
    LOG_LEVEL: str = "INFO"

    # Service locations
    CART_SERVICE_URL: str = "http://cart-service:8001"
    CART_SERVICE_TIMEOUT: float = 10.0
    ORDER_SERVICE_URL: str = "http://order-service:8002"
    REVIEW_SERVICE_URL: str = "http://review-service:8003"
    SESSION_SERVICE_URL: str = "http://session-service:8004"
    USER_SERVICE_URL: str = "http://user-service:8005"

    # Orders
    DELIVERY_FEE: float = 5.0

    # Sessions
    SESSION_SECRET_KEY: str = "session_secret"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "60/minute"

    class Config:
        env_file = ".env"

settings = Settings()

# --- Database ---
def get_db_client(url: str = settings.MONGO_URL) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(url)

def new_id() -> str:
    return str(uuid.uuid4())

# --- Passwords ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

# --- Session tokens ---
def create_session_token(user_id: str, session_id: str, expires_at: datetime) -> str:
    to_encode = {"sub": user_id, "sid": session_id, "exp": expires_at}
    return jwt.encode(to_encode, settings.SESSION_SECRET_KEY, algorithm=settings.SESSION_ALGORITHM)

def session_expiry(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)

def decode_session_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SESSION_SECRET_KEY, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Invalid or expired session token")

# --- Response Models ---
T = TypeVar("T")

class CamelModel(BaseModel):
    """Wire DTO base: camelCase JSON keys, snake_case attributes."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[Any] = None

class HealthResponse(BaseModel):
    service: str
    status: str
    timestamp: datetime
    version: str
    database: Optional[str] = None
    dependencies: Optional[dict] = None


# --- Exceptions ---
class AppException(HTTPException):
    def __init__(
        self,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        detail: str = "An error occurred",
        headers: Optional[dict] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class NotFoundException(AppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class EmptyCartException(AppException):
    def __init__(self, detail: str = "Cart is empty"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InvalidStateException(AppException):
    def __init__(self, detail: str = "Operation not permitted in current state"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class ConflictException(AppException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class UpstreamUnavailableException(AppException):
    def __init__(self, detail: str = "Upstream service unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)

class UnauthorizedException(AppException):
    def __init__(self, detail: str = "Unauthorized"):
         super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )

# --- Health ---
async def check_database(client) -> str:
    try:
        await client.admin.command('ping')
        return "connected"
    except Exception:
        return "disconnected"
