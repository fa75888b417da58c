"""Auto-reply gate and reply orchestration (core domain).

Each conversation gets at most one automated reply. The gate is checked and
the conversation marked as triggered without any await in between, so two
messages racing on the same conversation cannot both pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, List, Optional

from core.actions import ActionOutcome, ActionRunner
from core.config import AutoReplyPolicy
from core.errors import Failure
from core.flag_sets import FlagSets
from core.models import InboundMessage
from core.outbound import OutboundService
from core.rules_engine import Rule, build_rules, match_rule

LOGGER = logging.getLogger(__name__)

REPLY_RULE = "rule"
REPLY_WELCOME = "welcome"
REPLY_NONE = "none"


class AutoReplyState:
    """Process-wide auto-reply configuration.

    Rules are replaced wholesale on every configure call; there is no
    incremental editing.
    """

    def __init__(self) -> None:
        self.enabled = False
        self.welcome_text: Optional[str] = None
        self.rules: List[Rule] = []

    def configure(self, rules_config: Any, welcome: Any = None, enabled: bool = True) -> int:
        """Validate and install a new rule set. Returns the number of rules."""

        rules = build_rules(rules_config)
        welcome_text = welcome.strip() if isinstance(welcome, str) and welcome.strip() else None
        self.rules = rules
        self.welcome_text = welcome_text
        self.enabled = enabled
        return len(rules)

    def disable(self) -> None:
        self.enabled = False

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "rules": len(self.rules),
            "welcome": self.welcome_text,
        }


def seeded_state(rules_config: Any, welcome: Any = None, enabled: bool = False) -> AutoReplyState:
    """Start-up state from the config file.

    Enabled with no rules and no welcome is honored: triggers are still spent.
    """

    state = AutoReplyState()
    if enabled or rules_config or welcome:
        state.configure(rules_config or [], welcome, enabled=enabled)
    return state


@dataclass(frozen=True)
class ReplyOutcome:
    """What the engine did for one inbound message."""

    eligible: bool
    kind: str = REPLY_NONE
    rule: Optional[Rule] = None
    failure: Optional[Failure] = None
    diagnostics: List[Failure] = field(default_factory=list)
    action_outcomes: List[ActionOutcome] = field(default_factory=list)


class AutoReplyEngine:
    def __init__(
        self,
        state: AutoReplyState,
        flags: FlagSets,
        outbound: OutboundService,
        actions: ActionRunner,
        policy: AutoReplyPolicy = AutoReplyPolicy(),
    ) -> None:
        self._state = state
        self._flags = flags
        self._outbound = outbound
        self._actions = actions
        self._policy = policy

    def is_eligible(self, message: InboundMessage) -> bool:
        conversation_id = message.conversation_id
        return (
            self._state.enabled
            and not message.from_me
            and conversation_id not in self._flags.triggered_once
            and (not message.sender_known or conversation_id in self._flags.unknown_override)
        )

    async def handle(self, message: InboundMessage) -> ReplyOutcome:
        if not self.is_eligible(message):
            return ReplyOutcome(eligible=False)

        conversation_id = message.conversation_id
        # No await between the gate above and this mark.
        self._flags.triggered_once.add(conversation_id)

        rules = list(self._state.rules)
        welcome = self._state.welcome_text
        evaluation = match_rule(rules, message.body)
        rule = evaluation.rule

        if rule is not None and rule.reply.strip():
            kind = REPLY_RULE
            text = rule.reply.strip()
        elif welcome:
            kind = REPLY_WELCOME
            text = welcome
        else:
            LOGGER.info("Auto-reply for %s: no rule matched and no welcome text", conversation_id)
            if not self._policy.consume_trigger_without_reply:
                self._flags.triggered_once.discard(conversation_id)
            return ReplyOutcome(eligible=True, diagnostics=evaluation.diagnostics)

        try:
            await self._outbound.send_text(conversation_id, text)
        except Exception as exc:
            failure = Failure.from_exception(exc)
            LOGGER.error("Auto-reply to %s failed: %s", conversation_id, failure.detail)
            if not self._policy.consume_trigger_on_failure:
                self._flags.triggered_once.discard(conversation_id)
            return ReplyOutcome(
                eligible=True,
                kind=kind,
                rule=rule if kind == REPLY_RULE else None,
                failure=failure,
                diagnostics=evaluation.diagnostics,
            )

        LOGGER.info("Auto-reply (%s) sent to %s", kind, conversation_id)
        action_outcomes: List[ActionOutcome] = []
        if kind == REPLY_RULE and rule.actions:
            action_outcomes = await self._actions.run(conversation_id, rule.actions)

        return ReplyOutcome(
            eligible=True,
            kind=kind,
            rule=rule if kind == REPLY_RULE else None,
            diagnostics=evaluation.diagnostics,
            action_outcomes=action_outcomes,
        )
