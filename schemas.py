"""
Database Schemas for the blog platform

Each Pydantic model maps to a MongoDB collection using the lowercase
class name as the collection name. References to other documents are
stored as id strings.
"""
import re
from typing import Optional, List
from pydantic import BaseModel, Field, EmailStr
from datetime import datetime

from config import DEFAULT_BLOG_PHOTO


class User(BaseModel):
    """
    Collection: "user"
    """
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="Password hash (bcrypt/argon2)")
    algo: str = Field("bcrypt", description="Algorithm used for password_hash")
    answer: str = Field(..., description="Password reset answer")
    role: str = Field("user", pattern="^(user|admin)$")
    avatar: Optional[str] = Field(None, description="Avatar image URL")
    interests: List[str] = []
    about: str = ""
    phone: str = ""
    address: str = ""
    gender: str = ""
    birthday: Optional[datetime] = None
    blogs: List[str] = Field(default_factory=list, description="Ids of authored posts")


class BlogPost(BaseModel):
    """
    Collection: "blogpost"
    """
    title: str
    description: str
    photo: str = DEFAULT_BLOG_PHOTO
    author: str = Field(..., description="Author user id")
    category: Optional[str] = Field(None, description="Category id")
    likes: List[str] = Field(default_factory=list, description="Ids of users who liked the post")
    views: int = 0
    featured: bool = False
    tags: List[str] = []
    slug: str


class Category(BaseModel):
    """
    Collection: "category"
    """
    name: str
    slug: str


def slugify(text: str) -> str:
    s = re.sub(r"[^a-zA-Z0-9\s-]", "", text).strip().lower()
    s = re.sub(r"[\s-]+", "-", s)
    return s
