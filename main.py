import os
import logging
import shutil
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from config import DATABASE_NAME, DATABASE_URL, PORT, UPLOAD_DIR, configure_logging
from errors import register_error_handlers
from security import require_admin
from blogs import router as blogs_router
from categories import router as categories_router
from users import router as users_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            database.ensure_indexes(database.db)
        except PyMongoError as e:
            logger.warning("Could not ensure indexes: %s", e)
    yield


app = FastAPI(title="Blog Platform API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(users_router)
app.include_router(blogs_router)
app.include_router(categories_router)

os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")


# -------------------------------------------------------------------
# Root
# -------------------------------------------------------------------
@app.get("/")
def root():
    return {"message": "Welcome to the API"}


@app.head("/")
def root_head():
    # Explicit HEAD route for health checks
    return {}


# -------------------------------------------------------------------
# Uploads
# -------------------------------------------------------------------
@app.post("/upload", status_code=status.HTTP_200_OK)
def upload_image(image: UploadFile = File(...)):
    _, ext = os.path.splitext(image.filename or "")
    filename = f"{uuid.uuid4().hex}{ext.lower()}"
    with open(os.path.join(UPLOAD_DIR, filename), "wb") as out:
        shutil.copyfileobj(image.file, out)
    logger.info("Stored upload %s as %s", image.filename, filename)
    return {"success": True, "message": "File uploaded successfully", "path": f"/uploads/{filename}"}


# -------------------------------------------------------------------
# Diagnostics (admin only)
# -------------------------------------------------------------------
@app.get("/test")
def test_database(admin: dict = Depends(require_admin), db: Database = Depends(database.get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if DATABASE_URL else "❌ Not Set",
        "database_name": DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["connection_status"] = "Connected"
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
