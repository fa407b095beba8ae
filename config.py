import os
from dotenv import load_dotenv

load_dotenv()


def _csv(name, default):
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///studyshelf.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # File uploads
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    UPLOAD_FOLDER = os.path.join(BASE_DIR, "uploads")
    LOCAL_BOOKS_FOLDER = os.getenv("LOCAL_BOOKS_FOLDER", os.path.join(BASE_DIR, "local_books"))
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50 MB max upload

    # Cloudinary (PDF rasterization + page storage)
    CLOUDINARY_URL = os.getenv("CLOUDINARY_URL", "")
    CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "books")

    # Completion providers
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "")

    # Model variants per provider, tried in order
    OPENAI_MODELS = _csv("OPENAI_MODELS", ["gpt-4"])
    GEMINI_MODELS = _csv("GEMINI_MODELS", [
        "gemini-2.0-flash",
        "gemini-1.5-flash",
        "gemini-1.5-pro",
        "gemini-1.0-pro",
    ])
    DEEPSEEK_MODELS = _csv("DEEPSEEK_MODELS", ["deepseek-chat"])

    # Used when a model reference carries no provider kind
    PROVIDER_PRIORITY = _csv("PROVIDER_PRIORITY", ["openai", "gemini", "deepseek"])
    PROVIDER_TIMEOUT = int(os.getenv("PROVIDER_TIMEOUT", "120"))

    METADATA_PROVIDER = os.getenv("METADATA_PROVIDER", "gemini")
    METADATA_FALLBACK_PROVIDER = os.getenv("METADATA_FALLBACK_PROVIDER") or None
    QUIZ_PROVIDER = os.getenv("QUIZ_PROVIDER") or None

    # Quiz defaults
    QUIZ_MIN_QUESTIONS = 10
    QUIZ_AUTO_PAGE_LIMIT = 3

    # OCR
    OCR_LANG = os.getenv("OCR_LANG", "eng")
    TESSERACT_CMD = os.getenv("TESSERACT_CMD", "")

    # Page work
    DOWNLOAD_WORKERS = int(os.getenv("DOWNLOAD_WORKERS", "8"))
    DOWNLOAD_TIMEOUT = int(os.getenv("DOWNLOAD_TIMEOUT", "60"))
    PAGE_WORKERS = int(os.getenv("PAGE_WORKERS", "1"))
