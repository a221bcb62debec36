"""
Company Lens: TTL Configuration
─────────────────────────────────
Single source of truth for cache expiry.
Organised by where a section's data comes from.
"""

# ── Per source-kind TTL (seconds) ─────────────────────────────

TTL = {
    # Slow-changing: AI analysis is regenerated daily
    "ai":       24 * 3600,      # 1 day
    "remote":   24 * 3600,      # 1 day   (bulk remote-compute results)

    # Fast-changing
    "filings":  3600,           # 1 hour
    "market":   3600,           # 1 hour  (Alpha Vantage 25/day free tier)
    "news":     2 * 3600,       # 2 hours
}

# Bulk completion flag shares the AI expiry
BULK_FLAG_TTL = TTL["remote"]

# Memory tier housekeeping: nothing is read back after the longest expiry
MEMORY_RETENTION      = max(TTL.values())
MEMORY_SWEEP_INTERVAL = 10 * 60


def _fmt_age(seconds: float) -> str:
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h"
    return f"{int(seconds // 86400)}d"
