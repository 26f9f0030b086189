"""
RuleSet Compiler Module - Turns rule descriptions into compiled matchers

Handles:
- Plain and regular-expression pattern compilation
- Style resolution and validation through Rich
- Deterministic auto color assignment for highlights
- Versioning of compiled RuleSets
"""
import itertools
import re
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from rich.errors import StyleSyntaxError
from rich.style import Style

from .models import EventRule, FilterMode, FilterRule, HighlightRule, StyleSpec


# Auto-assigned highlight colors, in order of first use
PALETTE = (
    "bright_green",
    "bright_cyan",
    "bright_magenta",
    "bright_yellow",
    "bright_blue",
    "orange1",
    "deep_pink1",
    "spring_green1",
    "gold1",
    "medium_purple1",
    "turquoise2",
    "dark_orange",
)

_version_counter = itertools.count(1)
_version_lock = threading.Lock()


def _next_version() -> int:
    with _version_lock:
        return next(_version_counter)


class RuleError(Exception):
    """Raised when a rule cannot be compiled; names the offending rule"""

    def __init__(self, kind: str, index: int, pattern: str, reason: str):
        self.kind = kind
        self.index = index
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"{kind} rule #{index} ({pattern!r}): {reason}")


class PlainMatcher:
    """Literal substring matcher"""

    def __init__(self, pattern: str, case_sensitive: bool):
        self.pattern = pattern
        self.case_sensitive = case_sensitive
        # Case folding can change string length, so insensitive matching goes
        # through an escaped regex to keep offsets aligned with the line
        self._folded = None if case_sensitive else re.compile(re.escape(pattern), re.IGNORECASE)

    def matches(self, text: str) -> bool:
        if self._folded is None:
            return self.pattern in text
        return self._folded.search(text) is not None

    def find_all(self, text: str) -> List[Tuple[int, int]]:
        """Return (start, end) of every non-overlapping occurrence"""
        if self._folded is not None:
            return [m.span() for m in self._folded.finditer(text)]

        spans = []
        step = len(self.pattern)
        start = text.find(self.pattern)
        while start != -1:
            spans.append((start, start + step))
            start = text.find(self.pattern, start + step)
        return spans


class RegexMatcher:
    """Compiled regular-expression matcher"""

    def __init__(self, pattern: str, case_sensitive: bool):
        self.pattern = pattern
        self.case_sensitive = case_sensitive
        self.regex = re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None

    def find_all(self, text: str) -> List[Tuple[int, int]]:
        return [m.span() for m in self.regex.finditer(text) if m.end() > m.start()]


PatternMatcher = Union[PlainMatcher, RegexMatcher]


def build_matcher(pattern: str, regex: bool, case_sensitive: bool) -> PatternMatcher:
    """
    Build a matcher for a pattern

    Raises:
        re.error: If a regex pattern does not compile
    """
    if regex:
        return RegexMatcher(pattern, case_sensitive)
    return PlainMatcher(pattern, case_sensitive)


@dataclass(frozen=True)
class CompiledHighlight:
    pattern: str
    matcher: PatternMatcher
    style: str


@dataclass(frozen=True)
class CompiledEvent:
    name: str
    pattern: str
    matcher: PatternMatcher
    style: Optional[str]
    critical: bool


@dataclass(frozen=True)
class CompiledFilter:
    pattern: str
    matcher: PatternMatcher
    mode: FilterMode
    enabled: bool


@dataclass(frozen=True)
class RuleSet:
    """Immutable, versioned collection of compiled rules"""
    version: int
    highlights: Tuple[CompiledHighlight, ...] = ()
    events: Tuple[CompiledEvent, ...] = ()
    filters: Tuple[CompiledFilter, ...] = ()

    @property
    def event_names(self) -> List[str]:
        """Distinct event names in declaration order"""
        return list(dict.fromkeys(event.name for event in self.events))

    def default_filter_states(self) -> List[bool]:
        return [f.enabled for f in self.filters]

    @classmethod
    def empty(cls) -> "RuleSet":
        return compile_ruleset([], [], [])


def assign_colors(highlights: Sequence[HighlightRule]) -> List[str]:
    """
    Resolve a foreground color for every highlight rule

    Explicit colors are kept. Rules without one take the next palette color in
    declaration order, skipping colors that other rules claim explicitly and
    cycling when there are more rules than free colors.
    """
    claimed = {rule.style.fg for rule in highlights if rule.style and rule.style.fg}
    available = [color for color in PALETTE if color not in claimed] or list(PALETTE)

    colors = []
    auto_index = 0
    for rule in highlights:
        if rule.style and rule.style.fg:
            colors.append(rule.style.fg)
        else:
            colors.append(available[auto_index % len(available)])
            auto_index += 1
    return colors


def _resolve_style(kind: str, index: int, pattern: str, style_spec: StyleSpec) -> str:
    style = style_spec.to_rich()
    try:
        Style.parse(style)
    except StyleSyntaxError as e:
        raise RuleError(kind, index, pattern, f"invalid style {style!r}: {e}") from e
    return style


def _compile_matcher(kind: str, index: int, pattern: str, regex: bool,
                     case_sensitive: bool) -> PatternMatcher:
    if not pattern:
        raise RuleError(kind, index, pattern, "empty pattern")
    try:
        return build_matcher(pattern, regex, case_sensitive)
    except re.error as e:
        raise RuleError(kind, index, pattern, f"invalid regex: {e}") from e


def compile_ruleset(highlights: Sequence[HighlightRule],
                    events: Sequence[EventRule],
                    filters: Sequence[FilterRule]) -> RuleSet:
    """
    Compile rule descriptions into a new RuleSet

    Either every rule compiles and a RuleSet with a fresh version is returned,
    or RuleError is raised and nothing is produced.

    Raises:
        RuleError: On an invalid regex, empty pattern or unparseable style
    """
    colors = assign_colors(highlights)
    compiled_highlights = []
    for index, (rule, color) in enumerate(zip(highlights, colors)):
        matcher = _compile_matcher("highlight", index, rule.pattern, rule.regex, rule.case_sensitive)
        style_spec = rule.style.model_copy(update={"fg": color}) if rule.style else StyleSpec(fg=color)
        style = _resolve_style("highlight", index, rule.pattern, style_spec)
        compiled_highlights.append(CompiledHighlight(rule.pattern, matcher, style))

    compiled_events = []
    for index, rule in enumerate(events):
        matcher = _compile_matcher("event", index, rule.pattern, rule.regex, rule.case_sensitive)
        style = _resolve_style("event", index, rule.pattern, rule.style) if rule.style else None
        compiled_events.append(CompiledEvent(rule.name, rule.pattern, matcher, style, rule.critical))

    compiled_filters = []
    for index, rule in enumerate(filters):
        matcher = _compile_matcher("filter", index, rule.pattern, rule.regex, rule.case_sensitive)
        compiled_filters.append(CompiledFilter(rule.pattern, matcher, rule.mode, rule.enabled))

    return RuleSet(
        version=_next_version(),
        highlights=tuple(compiled_highlights),
        events=tuple(compiled_events),
        filters=tuple(compiled_filters),
    )
