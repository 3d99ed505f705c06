from __future__ import annotations

import os
import pathlib
import re
from zoneinfo import ZoneInfo

WORKBOT_TIMEZONE = os.getenv("WORKBOT_TIMEZONE", "Asia/Kolkata").strip() or "Asia/Kolkata"
LOCAL_TZ = ZoneInfo(WORKBOT_TIMEZONE)
LLM_DEBUG = os.getenv("LLM_DEBUG", "0") == "1"

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# -------------------------
# LLM providers
# -------------------------
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "nvidia").strip().lower() or "nvidia"
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "").strip()
NVIDIA_API_KEY = os.getenv("NVIDIA_API_KEY", "").strip()
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
CLIENT_URL = os.getenv("WORKBOT_CLIENT_URL", "http://localhost:5173").strip()

PROVIDER_BASE_URLS = {
    "openai": None,
    "openrouter": "https://openrouter.ai/api/v1",
    "nvidia": "https://integrate.api.nvidia.com/v1",
}

# Tried in order until one returns a non-empty completion.
PROVIDER_MODELS = {
    "openai": [
        "gpt-4o-mini",
        "gpt-4.1-mini",
    ],
    "openrouter": [
        "openai/gpt-oss-120b:free",
        "meta-llama/llama-3.3-70b-instruct:free",
        "google/gemma-3-27b-it:free",
        "z-ai/glm-4.5-air:free",
    ],
    "nvidia": [
        "meta/llama-3.3-70b-instruct",
        "google/gemma-3-27b-it",
        "mistralai/mistral-nemotron",
        "nvidia/llama-3.1-nemotron-ultra-253b-v1",
    ],
    "gemini": [
        "gemini-flash-latest",
    ],
}
_MODELS_OVERRIDE = [m.strip() for m in os.getenv("WORKBOT_LLM_MODELS", "").split(",") if m.strip()]
if _MODELS_OVERRIDE:
  PROVIDER_MODELS[LLM_PROVIDER] = _MODELS_OVERRIDE

EXTRACTION_TIMEOUT_SECONDS = float(os.getenv("EXTRACTION_TIMEOUT_SECONDS", "15"))
PARAPHRASE_TIMEOUT_SECONDS = float(os.getenv("PARAPHRASE_TIMEOUT_SECONDS", "12"))
PARAPHRASE_ENABLED = os.getenv("WORKBOT_PARAPHRASE", "0") == "1"

# -------------------------
# Pipeline limits
# -------------------------
HISTORY_WINDOW = 6
TEAM_RESOLVE_LIMIT = 100
TEAM_USER_LIMIT = 200
MAX_RECOMMENDATIONS = 5
MAX_QUESTION_LENGTH = 1000

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent
DATA_FILE = pathlib.Path(
    os.getenv("WORKBOT_DATA_FILE", str(BASE_DIR / "workbot_data.json")))
