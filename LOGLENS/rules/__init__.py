"""
Rules Package - Highlight, event and filter rule engine

Package Structure:
- models: Rule descriptions (HighlightRule, EventRule, FilterRule, StyleSpec)
- compiler: RuleSet compilation, color assignment (compile_ruleset, RuleSet, RuleError)
- matcher: Per-line classification and filter visibility (classify, Classification)
"""
from .models import EventRule, FilterMode, FilterRule, HighlightRule, StyleSpec
from .compiler import (
    PALETTE,
    RuleError,
    RuleSet,
    assign_colors,
    build_matcher,
    compile_ruleset,
)
from .matcher import (
    Classification,
    HighlightSpan,
    classify,
    filters_allow,
    is_visible,
    match_events,
)

__all__ = [
    # Rule descriptions
    'HighlightRule',
    'EventRule',
    'FilterRule',
    'FilterMode',
    'StyleSpec',

    # Compiler
    'PALETTE',
    'RuleError',
    'RuleSet',
    'assign_colors',
    'build_matcher',
    'compile_ruleset',

    # Matching
    'Classification',
    'HighlightSpan',
    'classify',
    'filters_allow',
    'is_visible',
    'match_events',
]
