from __future__ import annotations

import pytest

from core.errors import ErrorKind, RuleConfigError
from core.rules_engine import (
    AudioAction,
    DelayAction,
    TextAction,
    TypingAction,
    build_rules,
    match_rule,
)


def test_first_matching_rule_wins() -> None:
    rules = build_rules(
        [
            {"type": "equals", "match": "hi", "reply": "A"},
            {"type": "includes", "match": "h", "reply": "B"},
        ]
    )
    evaluation = match_rule(rules, "hi")
    assert evaluation.rule is not None
    assert evaluation.rule.reply == "A"


def test_invalid_regex_is_skipped_and_reported() -> None:
    rules = build_rules(
        [
            {"type": "regex", "match": "(", "reply": "A"},
            {"type": "includes", "match": "hi", "reply": "B"},
        ]
    )
    evaluation = match_rule(rules, "hi there")
    assert evaluation.rule is not None
    assert evaluation.rule.reply == "B"
    assert [d.kind for d in evaluation.diagnostics] == [ErrorKind.RULE_EVALUATION]


def test_oversized_repetition_is_skipped_and_reported() -> None:
    rules = build_rules(
        [
            {"type": "regex", "match": "a{99999999999}", "reply": "A"},
            {"type": "includes", "match": "hi", "reply": "B"},
        ]
    )
    evaluation = match_rule(rules, "hi there")
    assert evaluation.rule is not None
    assert evaluation.rule.reply == "B"
    assert [d.kind for d in evaluation.diagnostics] == [ErrorKind.RULE_EVALUATION]


def test_equals_trims_and_ignores_case() -> None:
    rules = build_rules([{"type": "equals", "match": "Precio", "reply": "ok"}])
    assert match_rule(rules, "  PRECIO \n").rule is not None
    assert match_rule(rules, "precio please").rule is None


def test_type_defaults_to_includes() -> None:
    rules = build_rules([{"match": "menu", "reply": "here"}])
    assert rules[0].type == "includes"
    assert match_rule(rules, "Can I see the MENU?").rule is not None


def test_regex_searches_anywhere_in_text() -> None:
    rules = build_rules([{"type": "regex", "match": r"order\s+#?\d+", "reply": "tracking"}])
    assert match_rule(rules, "where is Order #1234 now").rule is not None
    assert match_rule(rules, "no numbers here").rule is None


def test_no_match_returns_none() -> None:
    rules = build_rules([{"type": "equals", "match": "x", "reply": "A"}])
    evaluation = match_rule(rules, "hello")
    assert evaluation.rule is None
    assert evaluation.diagnostics == []


def test_empty_text_only_matches_empty_includes() -> None:
    rules = build_rules(
        [
            {"type": "equals", "match": "x", "reply": "A"},
            {"type": "includes", "match": "", "reply": "catch-all"},
        ]
    )
    assert match_rule(rules, None).rule.reply == "catch-all"


def test_build_rules_requires_string_reply() -> None:
    with pytest.raises(RuleConfigError):
        build_rules([{"type": "includes", "match": "hi"}])
    with pytest.raises(RuleConfigError):
        build_rules({"rules": []})


def test_build_rules_parses_actions_in_order() -> None:
    rules = build_rules(
        [
            {
                "match": "audio",
                "reply": "sending",
                "actions": [
                    {"do": "typing"},
                    {"do": "delay", "ms": 300},
                    {"do": "dance"},
                    {"do": "text", "text": "here it comes"},
                    {"do": "audio", "file": "hello.ogg", "asVoice": True},
                ],
            }
        ]
    )
    assert rules[0].actions == [
        TypingAction(ms=800),
        DelayAction(ms=300),
        TextAction(text="here it comes"),
        AudioAction(file="hello.ogg", url=None, as_voice=True),
    ]
