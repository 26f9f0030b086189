"""
Configuration Module - Viewer settings and rule files

Handles:
- Viewer settings with LOGLENS_* environment overrides (.env supported)
- Loading highlight, event and filter rules from a JSON rule file
- Runtime rule changes: reloading the rule file and adding rules interactively
"""
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from LOGLENS.rules.compiler import RuleSet, compile_ruleset
from LOGLENS.rules.models import EventRule, FilterMode, FilterRule, HighlightRule, StyleSpec
from LOGLENS.store.log_store import LogStore

ENV_PREFIX = "LOGLENS_"
CUSTOM_EVENT_STYLE = StyleSpec(bg="grey30")


class ViewerSettings(BaseModel):
    capacity: Optional[int] = Field(default=None, ge=1)
    save_path: Optional[str] = None
    follow: bool = False
    timeline_buckets: int = Field(default=60, ge=1)
    chunk_size: int = Field(default=64 * 1024, ge=1)
    log_dir: str = "app_log"
    refresh_interval: float = Field(default=0.5, gt=0)

    @classmethod
    def from_env(cls, **overrides) -> "ViewerSettings":
        """
        Build settings from LOGLENS_* environment variables

        A .env file in the working directory is loaded first. Keyword
        overrides (e.g. from the command line) win over the environment;
        None overrides are ignored.
        """
        load_dotenv()
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class RuleConfig(BaseModel):
    highlights: List[HighlightRule] = Field(default_factory=list)
    events: List[EventRule] = Field(default_factory=list)
    filters: List[FilterRule] = Field(default_factory=list)

    def compile(self) -> RuleSet:
        """Compile into a RuleSet; raises RuleError for an invalid rule"""
        return compile_ruleset(self.highlights, self.events, self.filters)


def load_rule_config(path) -> RuleConfig:
    """
    Read a JSON rule file

    Raises:
        OSError: If the file cannot be read
        json.JSONDecodeError: If the file is not valid JSON
        pydantic.ValidationError: If a rule is malformed
    """
    with open(Path(path), 'r', encoding='utf-8') as rule_file:
        data = json.load(rule_file)
    return RuleConfig.model_validate(data)


class RuleManager:
    """
    Owns the rule descriptions behind the store's current RuleSet

    Every change compiles a candidate configuration first. On RuleError the
    candidate is discarded and the installed RuleSet stays active.
    """

    def __init__(self, store: LogStore, config: Optional[RuleConfig] = None, path=None):
        """
        Initialize the rule manager

        Args:
            store: LogStore receiving recompiled RuleSets
            config: Rule descriptions the store's RuleSet was compiled from
            path: Rule file used by reload()
        """
        self.store = store
        self.config = config or RuleConfig()
        self.path = path
        self.logger = logging.getLogger(__name__)

    def reload(self) -> RuleSet:
        """
        Read the rule file again and install its rules

        Raises:
            ValueError: If no rule file was given, or it is malformed
            OSError: If the file cannot be read
            RuleError: If a rule does not compile
        """
        if not self.path:
            raise ValueError("no rule file to reload")
        ruleset = self._install(load_rule_config(self.path))
        self.logger.info(f"Reloaded rules from {self.path}")
        return ruleset

    def add_highlight(self, pattern: str, regex: bool = False) -> RuleSet:
        rule = HighlightRule(pattern=pattern, regex=regex)
        return self._install(self.config.model_copy(update={"highlights": self.config.highlights + [rule]}),
                             keep_filter_states=True)

    def add_event(self, pattern: str, regex: bool = False, name: Optional[str] = None) -> RuleSet:
        """Track a custom event, named after its pattern unless a name is given"""
        name = name or pattern
        if any(rule.name == name for rule in self.config.events):
            return self.store.ruleset
        rule = EventRule(name=name, pattern=pattern, regex=regex, style=CUSTOM_EVENT_STYLE)
        return self._install(self.config.model_copy(update={"events": self.config.events + [rule]}),
                             keep_filter_states=True)

    def add_filter(self, pattern: str, mode: FilterMode = FilterMode.INCLUDE, regex: bool = False) -> RuleSet:
        """Append an enabled filter; an identical pattern and mode is not added twice"""
        if any(rule.pattern == pattern and rule.mode is mode for rule in self.config.filters):
            return self.store.ruleset
        rule = FilterRule(pattern=pattern, mode=mode, regex=regex)
        return self._install(self.config.model_copy(update={"filters": self.config.filters + [rule]}),
                             keep_filter_states=True)

    def _install(self, candidate: RuleConfig, keep_filter_states: bool = False) -> RuleSet:
        ruleset = candidate.compile()
        states = self.store.filter_states() if keep_filter_states else []
        self.store.install_ruleset(ruleset)
        # Appended rules keep the indices of existing filters
        for index, enabled in enumerate(states[:len(ruleset.filters)]):
            self.store.set_filter_enabled(index, enabled)
        self.config = candidate
        return ruleset
