"""Relay engine: turns one authenticated chat event into one Decision.

Pipeline for a single event:

    idempotency lookup -> policy gate -> slash fast-path
        | memory read/record -> classifier -> extractor
    -> decision builder -> idempotency store

Credential resolution and signature checks happen before ``process`` is
called; usage reporting happens after, driven by ``RelayResult.billable``.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

from src.core.auth.models import ResolvedIdentity
from src.core.classifier import Classification, IntentClassifier, Outcome
from src.core.classifier.intent import BULK_DELETE_KEYWORDS, DELETE_COUNT_CLARIFICATION
from src.core.commands import (
    BotPersona,
    CommandMapping,
    extract_params,
    merge_params,
    missing_required,
    render_template,
)
from src.core.decisions import Decision, IntentKind, builder
from src.core.memory import ConversationMemory, Role, format_context
from src.core.policy import BotConfiguration, PolicyGate
from src.core.relay.idempotency import IdempotencyGuard
from src.utils.logging import set_bot_id, set_request_id

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    """Lookup collaborator for a bot's active command mappings."""

    def list_active_mappings(self, bot_id: str, tenant_id: str) -> list[CommandMapping]: ...


class PersonaStore(Protocol):
    """Lookup collaborator for bot personas."""

    def get_bot(self, bot_id: str) -> BotPersona | None: ...


@dataclass(frozen=True)
class RelayEvent:
    """One inbound chat message forwarded by a bot runtime.

    Attributes:
        content: Message text, mentions included.
        channel_id: Channel the message was posted in.
        guild_id: Server the channel belongs to.
        author_id: User who wrote the message.
        bot_id: Relay bot id claimed by the caller.
        bot_client_id: The bot's own platform user id.
        is_reply_to_bot: True when the message replies to one of the bot's.
        referenced_message_content: Text of the message being replied to.
    """

    content: str
    channel_id: str
    guild_id: str | None = None
    author_id: str | None = None
    bot_id: str | None = None
    bot_client_id: str | None = None
    is_reply_to_bot: bool = False
    referenced_message_content: str | None = None


@dataclass(frozen=True)
class RelayResult:
    """Outcome of processing one event.

    Attributes:
        decision: The Decision, or None when there is nothing to do.
        request_id: Correlation id for logs and the response header.
        billable: True if the event went through classification and
            produced a fresh decision.
        replayed: True if the decision came from the idempotency cache.
        bot_id: Effective bot id the event was processed for.
        usage_key: Key for the usage report (idempotency key or decision id).
    """

    decision: Decision | None
    request_id: str
    billable: bool = False
    replayed: bool = False
    bot_id: str | None = None
    usage_key: str | None = None


def _missing_question(command: CommandMapping, missing: str) -> str:
    if missing == "amount":
        if command.name.lower() in BULK_DELETE_KEYWORDS:
            return DELETE_COUNT_CLARIFICATION
        return f"How many should I use for {command.name}?"
    return f"Who should I {command.name}? Please mention the user."


class RelayEngine:
    """Orchestrates the per-event decision pipeline.

    Collaborators are injected so tests can swap any of them; the
    interface layer wires the SQLite repository in for the three stores.

    Attributes:
        classifier: Intent classifier wrapping the language-model client.
        gate: Policy gate backed by the configuration store.
        memory: Conversation memory.
        idempotency: Replay cache.
        catalog: Command mapping lookup.
        personas: Bot persona lookup.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        gate: PolicyGate,
        memory: ConversationMemory | None = None,
        idempotency: IdempotencyGuard | None = None,
        catalog: CatalogStore | None = None,
        personas: PersonaStore | None = None,
    ) -> None:
        self.classifier = classifier
        self.gate = gate
        self.memory = memory if memory is not None else ConversationMemory()
        self.idempotency = idempotency if idempotency is not None else IdempotencyGuard()
        self.catalog = catalog
        self.personas = personas

    async def process(
        self,
        event: RelayEvent,
        identity: ResolvedIdentity,
        idempotency_key: str | None = None,
    ) -> RelayResult:
        """Produce the Decision for one event.

        Args:
            event: The inbound chat event.
            identity: Resolved caller identity. A key bound to a bot
                overrides the bot id claimed in the event.
            idempotency_key: Caller-supplied replay key, if any.

        Returns:
            RelayResult with the decision and billing flags.
        """
        request_id = f"req_{uuid.uuid4().hex}"
        set_request_id(request_id)
        bot_id = identity.bot_id or event.bot_id
        set_bot_id(bot_id)
        tenant_id = identity.tenant_id

        replay = self.idempotency.lookup(tenant_id, bot_id, idempotency_key)
        if replay is not None:
            return RelayResult(
                decision=replay.decision,
                request_id=request_id,
                replayed=True,
                bot_id=bot_id,
            )

        gate = self.gate.evaluate(bot_id, event.channel_id)
        if gate.blocked is not None:
            self.idempotency.store(tenant_id, bot_id, idempotency_key, gate.blocked)
            return RelayResult(decision=gate.blocked, request_id=request_id, bot_id=bot_id)

        content = (event.content or "").strip()
        if not content:
            logger.debug("Empty content, nothing to classify")
            self.idempotency.store(tenant_id, bot_id, idempotency_key, None)
            return RelayResult(decision=None, request_id=request_id, bot_id=bot_id)

        slash = self.classifier.classify_slash(content)
        if slash is not None:
            decision = self._build_slash(slash)
        else:
            decision = await self._classify_natural(
                event, content, bot_id, tenant_id, gate.config
            )

        self.idempotency.store(tenant_id, bot_id, idempotency_key, decision)
        if decision is None:
            return RelayResult(decision=None, request_id=request_id, bot_id=bot_id)

        logger.info(
            "Decision %s intent=%s confidence=%.2f",
            decision.id,
            decision.intent.value,
            decision.confidence,
        )
        return RelayResult(
            decision=decision,
            request_id=request_id,
            billable=True,
            bot_id=bot_id,
            usage_key=idempotency_key or decision.id,
        )

    def _build_slash(self, classification: Classification) -> Decision:
        parsed = classification.slash
        return builder.command(
            name=parsed.name,
            slash=parsed.raw,
            args=parsed.args,
            confidence=classification.confidence,
        )

    async def _classify_natural(
        self,
        event: RelayEvent,
        content: str,
        bot_id: str | None,
        tenant_id: str,
        config: BotConfiguration,
    ) -> Decision | None:
        commands: list[CommandMapping] = []
        persona = None
        if bot_id:
            if self.catalog is not None:
                commands = self.catalog.list_active_mappings(bot_id, tenant_id)
            if self.personas is not None:
                persona = self.personas.get_bot(bot_id)
                if persona is not None and persona.tenant_id != tenant_id:
                    logger.warning("Bot %s does not belong to tenant %s", bot_id, tenant_id)
                    persona = None

        context = format_context(
            self.memory.context_for(event.channel_id, bot_id, event.author_id)
        )
        self.memory.record(event.channel_id, bot_id, event.author_id, Role.USER, content)

        referenced = event.referenced_message_content if event.is_reply_to_bot else None
        classification = await self.classifier.classify(
            content,
            commands,
            persona=persona,
            context=context,
            referenced_message=referenced,
            confidence_threshold=config.confidence_threshold,
            response_style=config.response_style,
        )

        decision = self._build_natural(classification, content, event.bot_client_id)
        if decision is not None and decision.intent is IntentKind.REPLY:
            self.memory.record(
                event.channel_id, bot_id, event.author_id, Role.BOT, decision.reply_text or ""
            )
        return decision

    def _build_natural(
        self,
        classification: Classification,
        content: str,
        bot_client_id: str | None,
    ) -> Decision | None:
        outcome = classification.outcome

        if outcome is Outcome.COMMAND and classification.command is not None:
            command = classification.command
            extracted = extract_params(content, command, bot_client_id=bot_client_id)
            params = merge_params(classification.params, extracted)
            missing = missing_required(command, params)
            if missing:
                logger.info("Command %s is missing %s, asking for it", command.name, missing)
                return builder.clarification(
                    _missing_question(command, missing),
                    confidence=classification.confidence,
                )
            return builder.command(
                name=command.name,
                slash=render_template(command.output_template, params),
                args=params,
                confidence=classification.confidence,
            )

        if outcome is Outcome.CLARIFICATION and classification.text:
            return builder.clarification(classification.text, confidence=classification.confidence)

        if outcome is Outcome.CONVERSATION and classification.text:
            return builder.reply(classification.text, confidence=classification.confidence)

        return None
