import logging

from bson import ObjectId
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, get_db, get_documents, now, parse_object_id, serialize
from errors import Conflict, NotFound
from schemas import Category, slugify
from security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1)


@router.get("")
def list_categories(db: Database = Depends(get_db)):
    return {"success": True, "data": [serialize(c) for c in get_documents(db, "category")]}


@router.get("/{slug}")
def get_category(slug: str, db: Database = Depends(get_db)):
    category = db["category"].find_one({"slug": slug})
    if not category:
        raise NotFound("Category not found")
    return {"success": True, "category": serialize(category)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(data: CategoryIn, admin: dict = Depends(require_admin),
                    db: Database = Depends(get_db)):
    # lookup-before-insert; two concurrent creates can still both succeed
    if db["category"].find_one({"name": data.name}):
        raise Conflict("Category already exists")

    category_id = create_document(db, "category", Category(name=data.name, slug=slugify(data.name)))
    logger.info("Admin %s created category %s", admin["_id"], category_id)
    category = db["category"].find_one({"_id": ObjectId(category_id)})
    return {"success": True, "message": "Category created successfully", "category": serialize(category)}


@router.put("/{category_id}")
def update_category(category_id: str, data: CategoryIn, admin: dict = Depends(require_admin),
                    db: Database = Depends(get_db)):
    updated = db["category"].find_one_and_update(
        {"_id": parse_object_id(category_id, "Category")},
        {"$set": {"name": data.name, "slug": slugify(data.name), "updated_at": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFound("Category not found")
    return {"success": True, "message": "Category updated successfully", "category": serialize(updated)}


@router.delete("/{category_id}")
def delete_category(category_id: str, admin: dict = Depends(require_admin),
                    db: Database = Depends(get_db)):
    deleted = db["category"].find_one_and_delete({"_id": parse_object_id(category_id, "Category")})
    if not deleted:
        raise NotFound("Category not found")
    logger.info("Admin %s deleted category %s", admin["_id"], category_id)
    return {"success": True, "message": "Category deleted successfully", "category": serialize(deleted)}
