from pathlib import Path

from dotenv import load_dotenv
import os

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 30))
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
CORS_ORIGIN_REGEX = os.getenv("CORS_ORIGIN_REGEX", r"^https://.*\.vercel\.app$")
UPLOADS_DIR = os.getenv("UPLOADS_DIR") or str(Path(__file__).resolve().parents[2] / "uploads")
REGIONS_API_BASE_URL = os.getenv(
    "REGIONS_API_BASE_URL",
    "https://www.emsifa.com/api-wilayah-indonesia/api",
).rstrip("/")
REGIONS_TIMEOUT = int(os.getenv("REGIONS_TIMEOUT", 15))
BOOTSTRAP_MODES = ("background", "sync", "off")
DB_BOOTSTRAP_MODE = str(os.getenv("DB_BOOTSTRAP_MODE") or "background").strip().lower()

def parse_cors_origins(value: str):
    if not value:
        return []
    if value.strip() == "*":
        return ["*"]
    return [origin.strip() for origin in value.split(",") if origin.strip()]
