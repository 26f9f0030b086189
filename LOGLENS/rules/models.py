"""
Rule Description Models - Structured highlight/event/filter rule inputs

These are the already-parsed rule descriptions handed to the compiler by the
configuration loader or by the UI when the user adds a rule interactively.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class FilterMode(Enum):
    """How a filter rule affects visibility"""
    INCLUDE = "include"
    EXCLUDE = "exclude"


class StyleSpec(BaseModel):
    fg: Optional[str] = None
    bg: Optional[str] = None
    bold: bool = False

    def to_rich(self) -> str:
        """Render as a Rich style string, e.g. 'bold red on black'"""
        parts = []
        if self.bold:
            parts.append("bold")
        if self.fg:
            parts.append(self.fg)
        if self.bg:
            parts.append(f"on {self.bg}")
        return " ".join(parts)


class HighlightRule(BaseModel):
    pattern: str
    regex: bool = False
    case_sensitive: bool = False
    style: Optional[StyleSpec] = None


class EventRule(BaseModel):
    name: str
    pattern: str
    regex: bool = False
    case_sensitive: bool = True
    style: Optional[StyleSpec] = None
    critical: bool = False


class FilterRule(BaseModel):
    pattern: str
    regex: bool = False
    case_sensitive: bool = False
    mode: FilterMode = FilterMode.INCLUDE
    enabled: bool = True
