import os


def _csv_env(name: str, default: str) -> tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(p.strip() for p in raw.split(",") if p.strip())


class Config:
    # Secrets

    SECRET_KEY = os.environ.get("SECRET_KEY", "your-very-secure-key")

    # Paths
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    UPLOAD_FOLDER = os.path.join(BASE_DIR, "uploads")
    LOG_DIR = os.path.join(BASE_DIR, "logs")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # DB
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "instance", "service_orders.db"),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    MAX_CONTENT_LENGTH = 32 * 1024 * 1024

    # Import: allowed file extensions (tabular + scanned documents)
    ALLOWED_EXTENSIONS = {"csv", "txt", "tsv", "xlsx", "xls", "pdf", "png", "jpg", "jpeg", "tif", "tiff"}

    # Import feature flags
    IMPORT_ENABLED = int(os.environ.get("IMPORT_ENABLED", "1"))

    # Fields compared to decide between "updated" and "skipped" on re-import
    IMPORT_COMPARE_FIELDS = _csv_env(
        "IMPORT_COMPARE_FIELDS", "issue_description,service_details,total_amount"
    )
    IMPORT_DEFAULT_WARRANTY_DAYS = int(os.environ.get("IMPORT_DEFAULT_WARRANTY_DAYS", "90"))
    PHONE_COUNTRY_CODE = os.environ.get("PHONE_COUNTRY_CODE", "55")

    # OCR: "tesseract" (local) or "vision" (Google Cloud Vision REST)
    OCR_BACKEND = os.environ.get("OCR_BACKEND", "tesseract").strip().lower()
    OCR_TIMEOUT = float(os.environ.get("OCR_TIMEOUT", "60"))
    GOOGLE_CLOUD_VISION_API_KEY = os.environ.get("GOOGLE_CLOUD_VISION_API_KEY", "")

    # OCR tools (Windows defaults; can be overridden by environment variables)
    POPPLER_BIN   = os.environ.get("POPPLER_BIN",  r"C:\Program Files\poppler\bin")
    TESSERACT_EXE = os.environ.get("TESSERACT_EXE", r"C:\Program Files\Tesseract-OCR\tesseract.exe")
    TESSERACT_LANG = os.environ.get("TESSERACT_LANG", "por+eng")

    SENTRY_DSN = os.environ.get("SENTRY_DSN", "").strip()
