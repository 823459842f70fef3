import logging
import os

STORE_BACKEND = os.getenv("STORE_BACKEND", "local").lower()
DATA_DIR = os.getenv("DATA_DIR", "data")
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

COUNTRY_CODE = os.getenv("COUNTRY_CODE", "91")
REPORT_SIGNATURE = os.getenv("REPORT_SIGNATURE", "Hitesh Sir")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 8000))


def configure_logging():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
