from pathlib import Path
from dotenv import load_dotenv
import os

load_dotenv()

BASE_DIR = Path(__file__).parent

# Data directory (gitignored)
DATA_DIR = BASE_DIR / "data"
DATA_DIR.mkdir(exist_ok=True)

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/transport.db")

# Environment: "development" exposes error messages on 500 responses
APP_ENV: str = os.getenv("APP_ENV", "production").lower()
DEBUG: bool = APP_ENV == "development"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# API
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]

# Pagination
DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

# Fleet
MAINTENANCE_INTERVAL_DAYS: int = int(os.getenv("MAINTENANCE_INTERVAL_DAYS", "90"))

# Dashboard
DASHBOARD_CURRENCY: str = os.getenv("DASHBOARD_CURRENCY", "INR")
