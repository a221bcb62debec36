"""
Company Lens: Runtime Configuration
─────────────────────────────────────
Environment-driven settings shared by the engine and the API.
Source adapters read their own API keys at module level.
"""

import os

from dotenv import load_dotenv

load_dotenv()

REDIS_URL       = os.environ.get("REDIS_URL", "redis://localhost:6379")
CACHE_NAMESPACE = os.environ.get("CACHE_NAMESPACE", "gemini_cache_")
PORT            = int(os.environ.get("PORT", "8000"))

# 0 means unbounded
MAX_CONCURRENT_CALLS = int(os.environ.get("MAX_CONCURRENT_CALLS", "0"))

# Companies whose dashboard state is kept in process
MAX_DASHBOARDS = int(os.environ.get("MAX_DASHBOARDS", "256"))

# ── Live-call deadlines (seconds) ─────────────────────────────
TIMEOUTS = {
    "company_info": 5.0,
    "news":         5.0,
    "filings":      5.0,
    "market":       10.0,
    "ai_section":   10.0,
    "competitor":   120.0,
    "bulk":         120.0,
    "assistant":    30.0,
}

# ── Bulk remote-compute retry policy ──────────────────────────
BULK_RETRY_ATTEMPTS = 2
BULK_RETRY_DELAY    = 2.0
