"""
Matcher Module - Applies a compiled RuleSet to a single line

Handles:
- Highlight spans with first-declared-rule-wins overlap resolution
- Event triggers and the critical flag
- Filter hits and include/exclude visibility
"""
import bisect
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from .compiler import CompiledFilter, RuleSet
from .models import FilterMode


@dataclass(frozen=True)
class HighlightSpan:
    """Character range [start, end) of a line painted with a resolved style"""
    start: int
    end: int
    style: str
    rule_index: int


@dataclass(frozen=True)
class Classification:
    """Result of matching one line against one RuleSet version"""
    ruleset_version: int
    spans: Tuple[HighlightSpan, ...]
    events: Tuple[str, ...]
    critical: bool
    filter_hits: FrozenSet[int]
    line_style: Optional[str] = None


def _unclaimed(start: int, end: int, starts: List[int], ends: List[int]) -> List[Tuple[int, int]]:
    """Pieces of [start, end) not covered by the sorted, disjoint claimed intervals"""
    pieces = []
    cursor = start
    i = bisect.bisect_right(ends, start)
    while i < len(starts) and starts[i] < end:
        if starts[i] > cursor:
            pieces.append((cursor, starts[i]))
        cursor = max(cursor, ends[i])
        i += 1
    if cursor < end:
        pieces.append((cursor, end))
    return pieces


def highlight_spans(text: str, ruleset: RuleSet) -> Tuple[HighlightSpan, ...]:
    """
    Compute highlight spans for a line

    Each rule contributes its non-overlapping matches. Where two rules overlap
    the earlier-declared rule keeps the region; later rules only paint what is
    still uncovered.
    """
    starts: List[int] = []
    ends: List[int] = []
    spans = []

    for rule_index, rule in enumerate(ruleset.highlights):
        for start, end in rule.matcher.find_all(text):
            for piece_start, piece_end in _unclaimed(start, end, starts, ends):
                pos = bisect.bisect_left(starts, piece_start)
                starts.insert(pos, piece_start)
                ends.insert(pos, piece_end)
                spans.append(HighlightSpan(piece_start, piece_end, rule.style, rule_index))

    spans.sort(key=lambda span: span.start)
    return tuple(spans)


def match_events(text: str, ruleset: RuleSet) -> Tuple[str, ...]:
    """Names of all event rules triggered by the line, in declaration order"""
    names = []
    for event in ruleset.events:
        if event.name not in names and event.matcher.matches(text):
            names.append(event.name)
    return tuple(names)


def filter_hits(text: str, ruleset: RuleSet) -> FrozenSet[int]:
    """Indices of every filter rule (enabled or not) whose pattern matches"""
    return frozenset(
        index for index, rule in enumerate(ruleset.filters) if rule.matcher.matches(text)
    )


def classify(text: str, ruleset: RuleSet) -> Classification:
    """Match a line against a RuleSet; pure and deterministic"""
    names = []
    critical = False
    line_style = None
    for event in ruleset.events:
        if event.matcher.matches(text):
            if event.name not in names:
                names.append(event.name)
            if line_style is None and event.style:
                line_style = event.style
            critical = critical or event.critical

    return Classification(
        ruleset_version=ruleset.version,
        spans=highlight_spans(text, ruleset),
        events=tuple(names),
        critical=critical,
        filter_hits=filter_hits(text, ruleset),
        line_style=line_style,
    )


def filters_allow(hits: FrozenSet[int], filters: Sequence[CompiledFilter],
                  enabled: Sequence[bool]) -> bool:
    """
    Decide visibility from a line's filter hits and the enabled filter stack

    With at least one enabled include filter the line must hit one of them.
    A hit on any enabled exclude filter hides the line. Disabled filters are
    ignored.
    """
    has_include = False
    included = False
    for index, rule in enumerate(filters):
        if not enabled[index]:
            continue
        hit = index in hits
        if rule.mode is FilterMode.EXCLUDE:
            if hit:
                return False
        else:
            has_include = True
            included = included or hit
    return included or not has_include


def is_visible(text: str, ruleset: RuleSet, enabled: Optional[Sequence[bool]] = None) -> bool:
    """Visibility of a line under a RuleSet's filters (defaults to each rule's enabled flag)"""
    if enabled is None:
        enabled = ruleset.default_filter_states()
    return filters_allow(filter_hits(text, ruleset), ruleset.filters, enabled)
