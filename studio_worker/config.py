"""
Environment-driven configuration for the generation worker.

Values are read once at import (after load_dotenv). The provider credential is
the exception: it is read on every call so a missing key is reported per request.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ── Provider ─────────────────────────────────────────────────────────────────

KIE_API_BASE = os.environ.get("KIE_API_BASE", "https://api.kie.ai").rstrip("/")
KIE_REQUEST_TIMEOUT = float(os.environ.get("KIE_REQUEST_TIMEOUT", "30"))

# ── Polling ──────────────────────────────────────────────────────────────────

POLL_INTERVAL_SECONDS = float(os.environ.get("POLL_INTERVAL_SECONDS", "2"))

# (test call, real call) attempt budgets per media type
IMAGE_POLL_ATTEMPTS = (15, 30)   # ~30s / ~1 min
VIDEO_POLL_ATTEMPTS = (60, 180)  # ~2 min / ~6 min

# ── Object store ─────────────────────────────────────────────────────────────

SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
REFERENCE_BUCKET = os.environ.get("REFERENCE_BUCKET", "reference-assets")

# ── Server ───────────────────────────────────────────────────────────────────

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
PORT = int(os.environ.get("PORT", "8080"))


def get_kie_api_key() -> str:
    """Bearer credential for the provider, or "" when not configured."""
    return os.environ.get("KIEAI_API_KEY") or os.environ.get("KIE_API_KEY", "")


def storage_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)


def get_worker_secret() -> str:
    """Shared secret for /generate/*, or "" when not configured. Read per request."""
    return os.environ.get("WORKER_SHARED_SECRET", "")
