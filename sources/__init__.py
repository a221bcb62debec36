"""
Company Lens Data Sources
───────────────────────────
Adapters for the third-party services the dashboard draws on.
Each returns a SourceResult; none of them raise for ordinary failures.
"""

from .base import DataSource, SourceResult

__all__ = ["DataSource", "SourceResult"]
