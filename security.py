import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT
from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError
from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.hash import bcrypt as bcrypt_hasher
from pymongo.database import Database

from config import BCRYPT_ROUNDS, JWT_EXPIRE_MIN, JWT_SECRET, PASSWORD_HASH_ALGO
from database import get_db
from errors import Unauthorized

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# Password hashing
# -------------------------------------------------------------------
argon2_hasher = Argon2Hasher()
bcrypt_context = bcrypt_hasher.using(rounds=BCRYPT_ROUNDS)


def hash_password(password: str, algo: str = PASSWORD_HASH_ALGO):
    """Return ``(hash, algo_used)``."""
    if algo == "argon2":
        return argon2_hasher.hash(password), "argon2"
    return bcrypt_context.hash(password), "bcrypt"


# compared against when the login email is unknown, so both branches pay for a hash
DUMMY_HASH = bcrypt_context.hash("blog-platform-dummy-password")


def verify_password(password: str, pwd_hash: Optional[str], algo: str = "bcrypt") -> bool:
    if not pwd_hash:
        return False
    if algo == "argon2":
        try:
            return argon2_hasher.verify(pwd_hash, password)
        except (VerificationError, InvalidHashError):
            return False
    try:
        return bcrypt_hasher.verify(password, pwd_hash)
    except ValueError:
        return False


# -------------------------------------------------------------------
# Session tokens
# -------------------------------------------------------------------
def create_jwt(user_id: str, minutes: int = JWT_EXPIRE_MIN) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=minutes)
    to_encode = {"id": user_id, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(to_encode, JWT_SECRET, algorithm="HS256")


def decode_jwt(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Not authorized, token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Not authorized, token failed")


# -------------------------------------------------------------------
# Authorization gate
# -------------------------------------------------------------------
security = HTTPBearer(auto_error=False)


def get_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authorized to access this route")
    return credentials.credentials


def get_current_user(token: str = Depends(get_token), db: Database = Depends(get_db)) -> dict:
    """Resolve the bearer token to the stored user document."""
    data = decode_jwt(token)
    user_id = data.get("id")
    if not user_id or not ObjectId.is_valid(user_id):
        raise Unauthorized("Not authorized, token failed")
    user = db["user"].find_one({"_id": ObjectId(user_id)})
    if not user:
        raise Unauthorized("Not authorized, user no longer exists")
    return user


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        logger.warning("Admin route refused for user %s", user.get("_id"))
        raise Unauthorized("Not authorized as an admin")
    return user


def is_admin(user: dict) -> bool:
    return user.get("role") == "admin"


def ensure_owner_or_admin(user: dict, owner_id: Optional[str], action: str = "modify") -> None:
    if owner_id is not None and owner_id == str(user["_id"]):
        return
    if is_admin(user):
        return
    raise Unauthorized(f"You are not authorized to {action} this resource")
