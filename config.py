import os
import logging

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "blog")

JWT_SECRET = os.getenv("JWT_SECRET", "supersecret-blog-platform")
JWT_EXPIRE_MIN = int(os.getenv("JWT_EXPIRE_MIN", "60"))

# bcrypt | argon2, applied to newly hashed passwords only
PASSWORD_HASH_ALGO = os.getenv("PASSWORD_HASH_ALGO", "bcrypt")
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))

DEFAULT_BLOG_PHOTO = (
    "https://t4.ftcdn.net/jpg/04/99/93/31/"
    "360_F_499933117_ZAUBfv3P1HEOsZDrnkbNCt4jc3AodArl.jpg"
)
FEATURED_LIMIT = 3


def is_production() -> bool:
    return ENVIRONMENT == "production"


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
