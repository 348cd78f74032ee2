import os

from dotenv import load_dotenv

# .env has to be loaded before any of the values below are read
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./library.db")

# Settings
LOAN_PERIOD_DAYS = int(os.getenv("LOAN_PERIOD_DAYS", "14"))
DAILY_FINE_AMOUNT = float(os.getenv("DAILY_FINE_AMOUNT", "1.0"))
TRANSACTION_TIMEOUT = float(os.getenv("TRANSACTION_TIMEOUT", "5.0"))  # seconds

SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "True").lower() in ("true", "1", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
