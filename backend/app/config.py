# backend/app/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[1]

POSTGRES_USER = os.getenv("POSTGRES_USER", "dealer")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "12345")
POSTGRES_DB = os.getenv("POSTGRES_DB", "bike_dealer_db")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")

# DATABASE_URL wins if set (tests point it at sqlite)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_SECRET_KEY")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Where invoice PDFs live, and where report files are written before streaming
INVOICE_DIR = Path(os.getenv("INVOICE_DIR", str(BASE_DIR / "invoices")))
REPORT_TMP_DIR = Path(os.getenv("REPORT_TMP_DIR", str(BASE_DIR / "temp")))

SHOP_NAME = os.getenv("SHOP_NAME", "SAI MOTORS")
SHOP_ADDRESS = os.getenv("SHOP_ADDRESS", "")
SHOP_PHONE = os.getenv("SHOP_PHONE", "")
SHOP_EMAIL = os.getenv("SHOP_EMAIL", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
