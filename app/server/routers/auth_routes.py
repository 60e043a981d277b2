import logging
from datetime import datetime, timedelta, timezone
from traceback import format_exc
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from pydantic import BaseModel

from app.models.users import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserProfile,
    UserRecord,
)
from app.server.dependencies import SettingsDep, get_identity_provider, get_user_service
from app.services.identity import IdentityProvider
from app.services.users import UserService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for authentication operations
auth_router = APIRouter()

# JWT configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


class TokenData(BaseModel):
    uid: str | None = None


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/login")

UserServiceDep = Annotated[UserService, Depends(get_user_service)]
IdentityProviderDep = Annotated[IdentityProvider, Depends(get_identity_provider)]


def get_password_hash(password):
    return pwd_context.hash(password)


def password_verified(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    data: dict, key: str, expires_delta: timedelta | None = None
) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, key, algorithm=ALGORITHM)


def issue_session_token(uid: str, key: str) -> str:
    return create_access_token(
        data={"sub": uid},
        key=key,
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: SettingsDep,
    user_service: UserServiceDep,
    identity_provider: IdentityProviderDep,
) -> UserRecord:
    """
    Resolve the bearer token to a user.

    Accepts both session tokens issued by /login and ID tokens issued to the
    browser by the identity provider.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.auth_jwt_key, algorithms=[ALGORITHM])
        uid = payload.get("sub")
        if uid is None:
            logger.error("No subject found in token")
            raise credentials_exception
        token_data = TokenData(uid=uid)
    except InvalidTokenError:
        try:
            identity = identity_provider.verify_id_token(token)
        except HTTPException:
            logger.warning(f"Invalid token error\n{format_exc()}")
            raise credentials_exception
        token_data = TokenData(uid=identity.uid)
    user = await user_service.get_user(token_data.uid)
    if user is None:
        logger.error(f"User not found: {token_data.uid}")
        raise credentials_exception
    return user


CurrentUser = Annotated[UserRecord, Depends(get_current_user)]


@auth_router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    settings: SettingsDep,
    user_service: UserServiceDep,
    identity_provider: IdentityProviderDep,
) -> AuthResponse:
    """Register a user already signed up with the identity provider."""
    identity = identity_provider.verify_id_token(request.id_token)

    if (identity.email or "").lower() != request.email.lower():
        raise HTTPException(status_code=400, detail="Email mismatch")

    try:
        if await user_service.get_user(identity.uid) is not None:
            raise HTTPException(status_code=400, detail="User already registered")

        user = await user_service.create_user(
            uid=identity.uid,
            name=request.name,
            email=request.email,
            hashed_password=get_password_hash(request.password),
            email_verified=identity.email_verified,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Registration failed", "message": str(e)},
        )

    logger.info(f"Registered user {identity.uid}")
    return AuthResponse(
        message="User registered successfully",
        user=UserProfile.from_record(user),
        access_token=issue_session_token(user.uid, settings.auth_jwt_key),
    )


@auth_router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    settings: SettingsDep,
    user_service: UserServiceDep,
    identity_provider: IdentityProviderDep,
) -> AuthResponse:
    """Exchange email and password for a session token."""
    invalid_credentials = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid email or password",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        identity = identity_provider.get_user_by_email(request.email)
        if identity is None:
            logger.warning(f"Failed login attempt for unknown email: {request.email}")
            raise invalid_credentials

        user = await user_service.get_user(identity.uid)
        if user is None:
            raise HTTPException(status_code=404, detail="User data not found")

        if not password_verified(request.password, user.hashed_password):
            logger.warning(f"Failed login attempt for user: {identity.uid}")
            raise invalid_credentials
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Login failed", "message": str(e)},
        )

    # Don't fail the login if the last_login update fails
    if await user_service.update_last_login(user.uid):
        logger.info(f"Updated last_login for user: {user.uid}")
    else:
        logger.warning(f"Failed to update last_login for user: {user.uid}")

    return AuthResponse(
        message="Login successful",
        user=UserProfile.from_record(user),
        access_token=issue_session_token(user.uid, settings.auth_jwt_key),
    )


@auth_router.get("/me", response_model=UserProfile)
async def get_me(current_user: CurrentUser) -> UserProfile:
    """Get current user information."""
    return UserProfile.from_record(current_user)
