"""
Configuration for the Page Generation Agent Backend
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Configuration
# Checked lazily by the generation client factory so tests and tooling can import config without keys
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

# Paths
BASE_DIR = Path(__file__).parent
DOCS_ROOT = Path(os.getenv("DOCS_ROOT", str(BASE_DIR / "docs")))

# AI Configuration - Using Gemini
AI_MODEL = os.getenv("AI_MODEL", "gemini-2.0-flash")
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.3"))
AI_MAX_RETRIES = int(os.getenv("AI_MAX_RETRIES", "2"))
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", "60"))

# Hard ceiling around a single generation call, enforced on our side of the client
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "120"))

# Generation Rate Limiting (shared by every run on this machine)
RATE_LIMIT_MAX_CALLS = int(os.getenv("RATE_LIMIT_MAX_CALLS", "4"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_MIN_INTERVAL_SECONDS = float(os.getenv("RATE_LIMIT_MIN_INTERVAL_SECONDS", "3"))
RATE_LIMIT_SAFETY_MARGIN_SECONDS = float(os.getenv("RATE_LIMIT_SAFETY_MARGIN_SECONDS", "1"))
RATE_LIMIT_STATE_FILE = os.getenv("RATE_LIMIT_STATE_FILE")  # None = derived from the working directory
RATE_LIMIT_REDIS_URL = os.getenv("RATE_LIMIT_REDIS_URL")  # set to share one budget across hosts

# Orchestration Limits
MAX_RUN_STEPS = int(os.getenv("MAX_RUN_STEPS", "100"))
MAX_REPAIR_ATTEMPTS = int(os.getenv("MAX_REPAIR_ATTEMPTS", "3"))
MAX_REPLANS = int(os.getenv("MAX_REPLANS", "2"))

# Reference documentation association: heuristic, search or generation
DOCS_ASSOCIATOR = os.getenv("DOCS_ASSOCIATOR", "heuristic").lower()

# Database (run checkpoints and finished run records)
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'page_agent.db'}")

# Server Configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:8000,http://127.0.0.1:8000,http://localhost:3001",
    ).split(",")
    if origin.strip()
]
