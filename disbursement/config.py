import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DB_PATH = os.path.join(BASE_DIR, "disbursements.db")


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{DB_PATH}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Merchants processed in parallel; periods of one merchant never are.
    DISBURSEMENT_MAX_WORKERS = int(os.getenv("DISBURSEMENT_MAX_WORKERS", "4"))
    DISBURSEMENT_REFERENCE_ATTEMPTS = int(os.getenv("DISBURSEMENT_REFERENCE_ATTEMPTS", "5"))

    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "EUR")
    IMPORT_BATCH_SIZE = int(os.getenv("IMPORT_BATCH_SIZE", "1000"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
