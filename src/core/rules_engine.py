"""Rule compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Any, Iterable, List, Optional, Union

from core.errors import ErrorKind, Failure, RuleConfigError

LOGGER = logging.getLogger(__name__)

RULE_TYPES = ("equals", "includes", "regex")
DEFAULT_TYPING_MS = 800


@dataclass(frozen=True)
class DelayAction:
    ms: int


@dataclass(frozen=True)
class TypingAction:
    ms: int = DEFAULT_TYPING_MS


@dataclass(frozen=True)
class TextAction:
    text: str


@dataclass(frozen=True)
class AudioAction:
    file: Optional[str] = None
    url: Optional[str] = None
    as_voice: bool = False


Action = Union[DelayAction, TypingAction, TextAction, AudioAction]


@dataclass(frozen=True)
class Rule:
    """Normalized auto-reply rule used by the engine."""

    type: str
    match: str
    reply: str
    actions: List[Action] = field(default_factory=list)


@dataclass(frozen=True)
class RuleEvaluation:
    """Result of one matching pass: the winning rule plus skipped-rule diagnostics."""

    rule: Optional[Rule]
    diagnostics: List[Failure] = field(default_factory=list)


def _as_int(value: Any, default: int) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def build_action(raw: dict) -> Optional[Action]:
    """Return the typed action for one config entry, or None if it is unusable."""

    kind = str(raw.get("do", "")).strip().lower()
    if kind == "delay":
        return DelayAction(ms=_as_int(raw.get("ms"), 0))
    if kind == "typing":
        return TypingAction(ms=_as_int(raw.get("ms"), DEFAULT_TYPING_MS))
    if kind == "text":
        return TextAction(text=str(raw.get("text") or ""))
    if kind == "audio":
        as_voice = raw.get("as_voice", raw.get("asVoice", False))
        return AudioAction(
            file=raw.get("file") or None,
            url=raw.get("url") or None,
            as_voice=bool(as_voice),
        )
    return None


def build_actions(actions_config: Optional[Iterable[Any]]) -> List[Action]:
    actions: List[Action] = []
    for raw in actions_config or []:
        if not isinstance(raw, dict):
            LOGGER.warning("Skipping non-object action: %r", raw)
            continue
        action = build_action(raw)
        if action is None:
            LOGGER.warning("Skipping unknown action: %r", raw.get("do"))
            continue
        actions.append(action)
    return actions


def build_rules(rules_config: Any) -> List[Rule]:
    """Normalize rule configs, keeping declaration order.

    Each rule must carry a string ``reply``. ``type`` defaults to "includes"
    and ``match`` to an empty string. Regex patterns are not compiled here: a
    broken pattern only disables its own rule at evaluation time.
    """

    if not isinstance(rules_config, list):
        raise RuleConfigError('"rules" must be a list')

    compiled: List[Rule] = []
    for index, rule in enumerate(rules_config):
        if not isinstance(rule, dict) or not isinstance(rule.get("reply"), str):
            raise RuleConfigError(f'rule #{index} must have a string "reply"')
        rule_type = str(rule.get("type") or "includes").strip().lower()
        if rule_type not in RULE_TYPES:
            LOGGER.warning("Rule #%s has unknown type %r and will never match", index, rule_type)
        match = rule.get("match")
        compiled.append(
            Rule(
                type=rule_type,
                match=match if isinstance(match, str) else "",
                reply=rule["reply"],
                actions=build_actions(rule.get("actions")),
            )
        )
    return compiled


def _rule_matches(rule: Rule, text: str) -> bool:
    if rule.type == "equals":
        return text.lower() == rule.match.lower()
    if rule.type == "includes":
        return rule.match.lower() in text.lower()
    if rule.type == "regex":
        return re.compile(rule.match, re.IGNORECASE).search(text) is not None
    return False


def match_rule(rules: Iterable[Rule], text: Optional[str]) -> RuleEvaluation:
    """Return the first rule matching the given text.

    Matching logic:
    - The text is trimmed once; all comparisons ignore case.
    - "equals" compares the whole text, "includes" checks containment and
      "regex" searches anywhere in the text.
    - A rule whose pattern fails to compile is skipped and reported.
    """

    trimmed = (text or "").strip()
    diagnostics: List[Failure] = []

    for index, rule in enumerate(rules):
        try:
            if _rule_matches(rule, trimmed):
                return RuleEvaluation(rule=rule, diagnostics=diagnostics)
        except (re.error, OverflowError, RecursionError) as exc:
            LOGGER.warning("Invalid rule #%s (%s %r): %s", index, rule.type, rule.match, exc)
            diagnostics.append(
                Failure(kind=ErrorKind.RULE_EVALUATION, detail=f"rule #{index}: {exc}")
            )

    return RuleEvaluation(rule=None, diagnostics=diagnostics)
