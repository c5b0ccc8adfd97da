import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shorturls.db")
BASE_URL = os.getenv("BASE_URL")
FRONTEND_URL = os.getenv("FRONTEND_URL")
LOG_DIR = os.getenv("LOG_DIR", "logs")

DEFAULT_VALIDITY_MIN = int(os.getenv("DEFAULT_VALIDITY_MIN", "30"))
SHORTCODE_LENGTH = int(os.getenv("SHORTCODE_LENGTH", "6"))
MAX_GENERATION_ATTEMPTS = int(os.getenv("MAX_GENERATION_ATTEMPTS", "10"))
