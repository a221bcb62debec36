"""
Company Lens: Section State Model
───────────────────────────────────
Per-section view state and the per-company dashboard that holds it.
This is what the API serves and what the websocket pushes.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from research_engine.catalog.sections import Section


@dataclass
class SectionState:
    section:    Section
    loading:    bool = False
    data:       Any = None
    errored:    bool = False
    origin:     Optional[str] = None    # "memory" | "persistent" | "live" | "fallback"
    error:      Optional[str] = None
    updated_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "section":    self.section.value,
            "loading":    self.loading,
            "data":       self.data,
            "errored":    self.errored,
            "origin":     self.origin,
            "error":      self.error,
            "updated_at": int(self.updated_at),
        }


@dataclass
class DashboardState:
    company:     str
    sections:    Dict[Section, SectionState] = field(default_factory=dict)
    bulk_status: str = "none"               # "none" | "loading" | "complete" | "error"
    bulk_error:  Optional[str] = None

    def section(self, section: Section) -> SectionState:
        if section not in self.sections:
            self.sections[section] = SectionState(section=section)
        return self.sections[section]

    def loading_sections(self) -> list:
        return [s.value for s, st in self.sections.items() if st.loading]

    def to_dict(self) -> dict:
        return {
            "company":     self.company,
            "sections":    {s.value: st.to_dict() for s, st in self.sections.items()},
            "loading":     self.loading_sections(),
            "bulk_status": self.bulk_status,
            "bulk_error":  self.bulk_error,
        }
