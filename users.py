import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, now, parse_object_id, serialize, serialize_user, update_fields
from errors import Conflict, NotFound, Unauthorized
from schemas import User
from security import (
    DUMMY_HASH,
    create_jwt,
    get_current_user,
    get_token,
    hash_password,
    require_admin,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------
class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordIn(BaseModel):
    email: EmailStr
    answer: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class ProfileUpdateIn(BaseModel):
    """Fields a user may change on their own record."""
    name: Optional[str] = Field(None, min_length=1)
    avatar: Optional[str] = None
    interests: Optional[List[str]] = None
    about: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[str] = None
    birthday: Optional[datetime] = None


# -------------------------------------------------------------------
# Public endpoints
# -------------------------------------------------------------------
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(data: RegisterIn, db: Database = Depends(get_db)):
    if db["user"].find_one({"email": data.email}):
        raise Conflict("User already exists")

    pwd_hash, algo_used = hash_password(data.password)
    user_doc = User(
        name=data.name,
        email=data.email,
        password_hash=pwd_hash,
        algo=algo_used,
        answer=data.answer,
    )
    try:
        user_id = create_document(db, "user", user_doc)
    except DuplicateKeyError:
        raise Conflict("User already exists")

    logger.info("Registered user %s", user_id)
    user = db["user"].find_one({"_id": ObjectId(user_id)})
    return {
        "success": True,
        "message": "User created successfully",
        "user": serialize_user(user),
        "token": create_jwt(user_id),
    }


@router.post("/login")
def login(data: LoginIn, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": data.email})
    if not user:
        verify_password(data.password, DUMMY_HASH)
        raise Unauthorized("Invalid credentials")

    if not verify_password(data.password, user.get("password_hash"), user.get("algo", "bcrypt")):
        logger.info("Failed login for %s", user["_id"])
        raise Unauthorized("Invalid credentials")

    return {
        "success": True,
        "message": "User logged in successfully",
        "user": serialize_user(user),
        "token": create_jwt(str(user["_id"])),
    }


@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordIn, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": data.email})
    if not user:
        raise NotFound("User not found")
    # stored in plain text and compared exactly
    if user.get("answer") != data.answer:
        raise Unauthorized("Answer is not matching")

    pwd_hash, algo_used = hash_password(data.new_password)
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": pwd_hash, "algo": algo_used, "updated_at": now()}},
    )
    logger.info("Password reset for user %s", user["_id"])
    return {"success": True, "message": "Password updated successfully"}


# -------------------------------------------------------------------
# Authenticated endpoints
# -------------------------------------------------------------------
@router.get("/profile")
def profile(user: dict = Depends(get_current_user), token: str = Depends(get_token),
            db: Database = Depends(get_db)):
    author_id = str(user["_id"])
    blogs = db["blogpost"].find({"author": author_id}).sort("created_at", -1)
    out = serialize_user(user)
    out["blogs"] = [serialize(b) for b in blogs]
    return {"success": True, "user": out, "token": token}


@router.put("/update-profile")
def update_profile(data: ProfileUpdateIn, user: dict = Depends(get_current_user),
                   db: Database = Depends(get_db)):
    changes = update_fields(data)
    changes["updated_at"] = now()
    result = db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
    if result.matched_count == 0:
        raise NotFound("User not found")
    updated = db["user"].find_one({"_id": user["_id"]})
    return {
        "success": True,
        "message": "User updated successfully",
        "user": serialize_user(updated),
        "token": create_jwt(str(user["_id"])),
    }


@router.get("/logout")
def logout(user: dict = Depends(get_current_user)):
    # tokens are stateless; the client discards its copy
    return {"success": True, "message": "User logged out successfully"}


@router.delete("/user")
def delete_own_account(user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    db["user"].delete_one({"_id": user["_id"]})
    logger.info("User %s deleted their account", user["_id"])
    return {"success": True, "message": "Sad to see you go, user deleted successfully"}


# -------------------------------------------------------------------
# Admin endpoints
# -------------------------------------------------------------------
@router.get("/users")
def list_users(admin: dict = Depends(require_admin), db: Database = Depends(get_db)):
    users = db["user"].find({}).sort("created_at", -1)
    return {"success": True, "users": [serialize_user(u) for u in users]}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, admin: dict = Depends(require_admin), db: Database = Depends(get_db)):
    oid = parse_object_id(user_id, "User")
    result = db["user"].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFound("User not found")
    logger.info("Admin %s deleted user %s", admin["_id"], user_id)
    return {"success": True, "message": "User deleted successfully"}
