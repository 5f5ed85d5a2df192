import hashlib
import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from passlib.context import CryptContext

from assistant_bff.config import _now_utc, create_access_token, create_refresh_token, decode_token
from assistant_bff.db import USERS_COLLECTION, get_collection
from assistant_bff.models.users import CurrentUser, RefreshRequest, UserCreate, UserLogin, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALLOWED_CHAT_ROLES = {UserRole.user.value, UserRole.admin.value}


def _prehash(password: str) -> bytes:
    """
    Pre-hash arbitrary-length password with SHA-256 and return raw bytes.
    This ensures bcrypt always receives a fixed-length input (32 bytes).
    """
    return hashlib.sha256(password.encode("utf-8")).digest()


def hash_password(password: str) -> str:
    return pwd_ctx.hash(_prehash(password))


def verify_password(plain: str, hashed: str) -> bool:
    pre = _prehash(plain)
    try:
        return pwd_ctx.verify(pre, hashed)
    except (ValueError, TypeError):
        return False


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _user_info(user_doc: dict) -> dict:
    created_at = user_doc.get("created_at")
    return {
        "id": user_doc["_id"],
        "email": user_doc["email"],
        "full_name": user_doc.get("full_name"),
        "role": user_doc.get("role", UserRole.user.value),
        "active": user_doc.get("active", True),
        "created_at": created_at.isoformat() if created_at else None,
    }


async def _user_from_token(token: str) -> Optional[dict]:
    try:
        payload = decode_token(token)
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        return None

    users = get_collection(USERS_COLLECTION)
    return await users.find_one({"_id": user_id})


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    user_doc = await _user_from_token(token)
    if not user_doc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user_doc.get("active", True) is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    return CurrentUser(
        id=user_doc["_id"],
        email=user_doc["email"],
        full_name=user_doc.get("full_name"),
        role=user_doc.get("role", UserRole.user.value),
    )


async def require_user(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Dependency to ensure the user may use the chat endpoints"""
    if current_user.role not in ALLOWED_CHAT_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return current_user


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Dependency to ensure user has the admin role"""
    if current_user.role != UserRole.admin.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


# -----------------------
# Routes
# -----------------------
@router.post("/register")
async def register(user: UserCreate):
    try:
        users = get_collection(USERS_COLLECTION)
        existing = await users.find_one({"email": user.email})
        if existing:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"success": False, "error": "Email already registered"}
            )

        user_id = str(uuid4())
        to_insert = {
            "_id": user_id,
            "email": user.email,
            "password_hash": hash_password(user.password),
            "full_name": user.full_name,
            "role": UserRole.user.value,
            "created_at": _now_utc(),
        }
        await users.insert_one(to_insert)

        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"success": True, "data": _user_info(to_insert)}
        )

    except Exception:
        logger.exception("Registration failed for %s", user.email)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Internal server error"}
        )


@router.post("/login")
async def login(credentials: UserLogin):
    try:
        users = get_collection(USERS_COLLECTION)
        user_doc = await users.find_one({"email": credentials.email})

        if not user_doc or not verify_password(credentials.password, user_doc.get("password_hash", "")):
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "error": "Invalid email or password"}
            )
        if user_doc.get("active", True) is False:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"success": False, "error": "Account is disabled"}
            )

        token_data = {"sub": user_doc["_id"], "email": user_doc["email"]}

        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "success": True,
                "data": {
                    "user": _user_info(user_doc),
                    "access_token": create_access_token(token_data),
                    "refresh_token": create_refresh_token(token_data),
                }
            }
        )

    except Exception:
        logger.exception("Login failed for %s", credentials.email)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Internal server error"}
        )


@router.post("/refresh")
async def refresh_token(req: RefreshRequest):
    try:
        payload = decode_token(req.refresh_token)
    except JWTError:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid or expired refresh token"}
        )
    if payload.get("type") != "refresh":
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid refresh token"}
        )

    user_id = payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid refresh token payload"}
        )

    users = get_collection(USERS_COLLECTION)
    user_doc = await users.find_one({"_id": user_id})
    if not user_doc:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "User not found"}
        )

    token_data = {"sub": user_id, "email": email}
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "data": {
                "access_token": create_access_token(token_data),
                "refresh_token": create_refresh_token(token_data),
            }
        }
    )


@router.get("/verify")
async def verify(token: str = Depends(oauth2_scheme)):
    """
    Check an access token and return the user it belongs to.
    """
    user_doc = await _user_from_token(token)
    if not user_doc:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid token"}
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "data": {"valid": True, "user": _user_info(user_doc)}}
    )


@router.post("/logout")
async def logout():
    # Tokens are stateless JWTs; the client discards them.
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "message": "Logged out successfully"}
    )
