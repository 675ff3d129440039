import os
from dotenv import load_dotenv

load_dotenv()

# ------------------------------------------------------------------------------
# DATABASE
# ------------------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./strings.db")

# ------------------------------------------------------------------------------
# NATURAL LANGUAGE INTERPRETER (Gemini)
# ------------------------------------------------------------------------------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")

INTERPRETER_MAX_RETRIES = int(os.getenv("INTERPRETER_MAX_RETRIES", "3"))
INTERPRETER_BASE_DELAY = float(os.getenv("INTERPRETER_BASE_DELAY", "1.0"))
INTERPRETER_TIMEOUT = float(os.getenv("INTERPRETER_TIMEOUT", "20.0"))

# ------------------------------------------------------------------------------
# SERVER
# ------------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
PORT = int(os.getenv("PORT", "8000"))
