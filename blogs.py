import logging
import re
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.database import Database

from config import DEFAULT_BLOG_PHOTO, FEATURED_LIMIT
from database import (
    create_document, get_db, get_documents, now, parse_object_id, serialize, update_fields, users_by_id,
)
from errors import NotFound, ValidationError
from schemas import BlogPost, slugify
from security import ensure_owner_or_admin, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["blogs"])


# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------
class BlogCreateIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    photo: Optional[str] = None
    category: Optional[str] = None
    featured: bool = False
    tags: List[str] = []
    slug: Optional[str] = None


class BlogUpdateIn(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    photo: Optional[str] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    tags: Optional[List[str]] = None
    slug: Optional[str] = None


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def with_authors(db: Database, docs: List[dict]) -> List[dict]:
    """Serialize posts with the sanitized author record embedded."""
    authors = users_by_id(db, (d.get("author") for d in docs))
    out = []
    for d in docs:
        item = serialize(d)
        item["author"] = authors.get(d.get("author"), d.get("author"))
        out.append(item)
    return out


def load_blog(db: Database, blog_id: str) -> dict:
    blog = db["blogpost"].find_one({"_id": parse_object_id(blog_id, "Blog")})
    if not blog:
        raise NotFound("Blog not found")
    return blog


# -------------------------------------------------------------------
# Read endpoints
# -------------------------------------------------------------------
@router.get("")
def list_blogs(db: Database = Depends(get_db)):
    blogs = get_documents(db, "blogpost")
    return {"success": True, "blogs": with_authors(db, blogs)}


@router.get("/featured")
def featured_blogs(db: Database = Depends(get_db)):
    blogs = get_documents(db, "blogpost", {"featured": True}, limit=FEATURED_LIMIT)
    return {"success": True, "blogs": with_authors(db, blogs)}


@router.get("/tag/{tag}")
def blogs_by_tag(tag: str, db: Database = Depends(get_db)):
    blogs = get_documents(db, "blogpost", {"tags": {"$in": [tag]}})
    return {"success": True, "blogs": with_authors(db, blogs)}


@router.get("/related")
def related_blogs(tags: List[str] = Query(...), db: Database = Depends(get_db)):
    blogs = get_documents(db, "blogpost", {"tags": {"$in": tags}})
    return {"success": True, "blogs": with_authors(db, blogs)}


@router.get("/search")
def search_blogs(query: str = Query(..., min_length=1), db: Database = Depends(get_db)):
    title = {"$regex": re.escape(query), "$options": "i"}
    blogs = get_documents(db, "blogpost", {"title": title})
    return {"success": True, "blogs": with_authors(db, blogs)}


@router.get("/{blog_id}")
def get_blog(blog_id: str, db: Database = Depends(get_db)):
    blog = db["blogpost"].find_one_and_update(
        {"_id": parse_object_id(blog_id, "Blog")},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not blog:
        raise NotFound("Blog not found")
    return {"success": True, "blog": with_authors(db, [blog])[0]}


# -------------------------------------------------------------------
# Write endpoints
# -------------------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def create_blog(data: BlogCreateIn, user: dict = Depends(get_current_user),
                db: Database = Depends(get_db)):
    author_id = str(user["_id"])
    slug = slugify(data.slug or data.title)
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit")

    blog = BlogPost(
        title=data.title,
        description=data.description,
        photo=data.photo or DEFAULT_BLOG_PHOTO,
        author=author_id,
        category=data.category,
        featured=data.featured,
        tags=data.tags,
        slug=slug,
    )
    blog_id = create_document(db, "blogpost", blog)
    db["user"].update_one({"_id": user["_id"]}, {"$addToSet": {"blogs": blog_id}})
    logger.info("User %s created blog %s", author_id, blog_id)

    doc = db["blogpost"].find_one({"_id": ObjectId(blog_id)})
    return {"success": True, "message": "Blog created successfully", "data": serialize(doc)}


@router.put("/{blog_id}")
def update_blog(blog_id: str, data: BlogUpdateIn, user: dict = Depends(get_current_user),
                db: Database = Depends(get_db)):
    blog = load_blog(db, blog_id)
    ensure_owner_or_admin(user, blog.get("author"), "update")

    changes = update_fields(data)
    if changes.get("slug") is not None:
        changes["slug"] = slugify(changes["slug"])
    changes["updated_at"] = now()
    updated = db["blogpost"].find_one_and_update(
        {"_id": blog["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFound("Blog not found")
    return {"success": True, "message": "Blog updated successfully", "data": serialize(updated)}


@router.patch("/like/{blog_id}")
def toggle_like(blog_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Add the caller to the post's likes, or remove them if already there."""
    oid = parse_object_id(blog_id, "Blog")
    user_id = str(user["_id"])
    posts = db["blogpost"]

    blog = posts.find_one_and_update(
        {"_id": oid, "likes": {"$ne": user_id}},
        {"$addToSet": {"likes": user_id}},
        return_document=ReturnDocument.AFTER,
    )
    if blog is None:
        blog = posts.find_one_and_update(
            {"_id": oid, "likes": user_id},
            {"$pull": {"likes": user_id}},
            return_document=ReturnDocument.AFTER,
        )
    if blog is None:
        raise NotFound("Blog not found")
    return {"success": True, "blog": serialize(blog)}


@router.delete("/{blog_id}")
def delete_blog(blog_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    blog = load_blog(db, blog_id)
    ensure_owner_or_admin(user, blog.get("author"), "delete")

    db["blogpost"].delete_one({"_id": blog["_id"]})
    author = blog.get("author")
    if author and ObjectId.is_valid(author):
        db["user"].update_one({"_id": ObjectId(author)}, {"$pull": {"blogs": str(blog["_id"])}})
    logger.info("User %s deleted blog %s", user["_id"], blog["_id"])
    return {"success": True, "message": "Blog deleted successfully"}
