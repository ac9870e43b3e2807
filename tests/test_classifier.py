"""Tests for intent classification, JSON extraction and the litellm client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import RateLimitError

from src.core.classifier import (
    SLASH_CONFIDENCE,
    IntentClassifier,
    LiteLLMClient,
    Outcome,
    extract_json_object,
    keyword_fallback,
)
from src.core.classifier.intent import DELETE_COUNT_CLARIFICATION, GENERIC_CLARIFICATION
from src.core.commands import CommandMapping
from src.core.errors import ClassificationFailure

CATALOG = [
    CommandMapping(
        id="1",
        tenant_id="t1",
        bot_id="b1",
        name="warn",
        pattern="warn {user} for {reason}",
        output_template="/warn {user} {reason}",
    ),
    CommandMapping(
        id="2",
        tenant_id="t1",
        bot_id="b1",
        name="purge",
        pattern="delete {amount} messages",
        output_template="/purge amount={amount}",
    ),
]


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_plain_object(self) -> None:
        assert extract_json_object('{"isCommand": true}') == {"isCommand": True}

    def test_object_in_code_fence(self) -> None:
        text = 'Here you go:\n```json\n{"isCommand": false, "conversationalResponse": "hi"}\n```'
        assert extract_json_object(text)["conversationalResponse"] == "hi"

    def test_braces_inside_strings(self) -> None:
        text = 'x {"conversationalResponse": "use {curly} \\"quotes\\""} y'
        assert extract_json_object(text)["conversationalResponse"] == 'use {curly} "quotes"'

    def test_skips_invalid_candidate(self) -> None:
        assert extract_json_object('{not json} then {"a": 1}') == {"a": 1}

    def test_skips_unclosed_brace(self) -> None:
        text = 'Note: use { for sets. {"isCommand": false, "conversationalResponse": "hi"}'
        assert extract_json_object(text)["conversationalResponse"] == "hi"

    @pytest.mark.parametrize("text", ["", "no json here", '{"open": ', "[1, 2]"])
    def test_failure(self, text: str) -> None:
        with pytest.raises(ClassificationFailure):
            extract_json_object(text)


class TestKeywordFallback:
    """Tests for keyword_fallback."""

    def test_purge_without_number_asks_for_count(self) -> None:
        result = keyword_fallback("please purge the chat")
        assert result.outcome is Outcome.CLARIFICATION
        assert result.text == DELETE_COUNT_CLARIFICATION
        assert result.fallback is True

    def test_purge_with_number_generic_question(self) -> None:
        assert keyword_fallback("purge 20 messages").text == GENERIC_CLARIFICATION

    def test_mention_digits_do_not_count(self) -> None:
        assert keyword_fallback("<@123> clear it").text == DELETE_COUNT_CLARIFICATION

    def test_moderation_keyword(self) -> None:
        assert keyword_fallback("can you ban that guy").text == GENERIC_CLARIFICATION

    def test_no_keyword_no_intent(self) -> None:
        result = keyword_fallback("good morning everyone")
        assert result.outcome is Outcome.NO_INTENT
        assert result.text is None


class TestIntentClassifier:
    """Tests for IntentClassifier."""

    def test_slash_fast_path_skips_provider(self, fake_llm) -> None:
        classifier = IntentClassifier(fake_llm)

        result = classifier.classify_slash("/ban user=42 reason=spam")

        assert result.outcome is Outcome.COMMAND
        assert result.confidence == SLASH_CONFIDENCE
        assert result.params == {"user": "42", "reason": "spam"}
        assert fake_llm.call_count == 0

    def test_slash_fast_path_ignores_plain_text(self, fake_llm) -> None:
        assert IntentClassifier(fake_llm).classify_slash("ban 42") is None

    @pytest.mark.asyncio
    async def test_command_match(self, fake_llm) -> None:
        fake_llm.responses = [
            '{"isCommand": true, "bestMatch": {"commandId": "1", "confidence": 85, '
            '"params": {"user": "123"}}}'
        ]
        result = await IntentClassifier(fake_llm).classify("warn <@123> for spamming", CATALOG)

        assert result.outcome is Outcome.COMMAND
        assert result.command.name == "warn"
        assert result.confidence == 0.85
        assert result.params == {"user": "123"}

    @pytest.mark.asyncio
    async def test_numeric_command_id(self, fake_llm) -> None:
        fake_llm.responses = ['{"isCommand": true, "bestMatch": {"commandId": 2, "confidence": 0.9}}']
        result = await IntentClassifier(fake_llm).classify("delete 5 messages", CATALOG)

        assert result.command.name == "purge"
        assert result.confidence == 0.9
        assert result.params == {}

    @pytest.mark.asyncio
    async def test_unknown_command_id_falls_back(self, fake_llm) -> None:
        fake_llm.responses = ['{"isCommand": true, "bestMatch": {"commandId": "99", "confidence": 95}}']
        result = await IntentClassifier(fake_llm).classify("warn him", CATALOG)

        assert result.outcome is Outcome.CLARIFICATION
        assert result.fallback is True

    @pytest.mark.asyncio
    async def test_below_threshold_asks(self, fake_llm) -> None:
        fake_llm.responses = ['{"isCommand": true, "bestMatch": {"commandId": "1", "confidence": 40}}']
        result = await IntentClassifier(fake_llm).classify(
            "maybe warn", CATALOG, confidence_threshold=0.7
        )

        assert result.outcome is Outcome.CLARIFICATION
        assert "warn" in result.text
        assert result.fallback is False

    @pytest.mark.asyncio
    async def test_clarification_from_model(self, fake_llm) -> None:
        fake_llm.responses = ['{"isCommand": true, "clarificationQuestion": "Who should I warn?"}']
        result = await IntentClassifier(fake_llm).classify("warn someone", CATALOG)

        assert result.outcome is Outcome.CLARIFICATION
        assert result.text == "Who should I warn?"

    @pytest.mark.asyncio
    async def test_conversation(self, fake_llm) -> None:
        fake_llm.responses = ['{"isCommand": false, "conversationalResponse": "Hey there!"}']
        result = await IntentClassifier(fake_llm).classify("hi bot", CATALOG)

        assert result.outcome is Outcome.CONVERSATION
        assert result.text == "Hey there!"
        assert result.confidence == 1.0

    @pytest.mark.asyncio
    async def test_empty_object_is_no_intent(self, fake_llm) -> None:
        fake_llm.responses = ['{"isCommand": false}']
        result = await IntentClassifier(fake_llm).classify("ok", CATALOG)
        assert result.outcome is Outcome.NO_INTENT

    @pytest.mark.asyncio
    async def test_provider_failure_purge_asks_for_count(self, fake_llm) -> None:
        fake_llm.error = ClassificationFailure("provider down")
        result = await IntentClassifier(fake_llm).classify("purge the spam", CATALOG)

        assert result.outcome is Outcome.CLARIFICATION
        assert result.text == DELETE_COUNT_CLARIFICATION
        assert "amount" not in result.params

    @pytest.mark.asyncio
    async def test_unexpected_error_falls_back(self, fake_llm) -> None:
        fake_llm.error = RuntimeError("boom")
        result = await IntentClassifier(fake_llm).classify("hello", CATALOG)
        assert result.outcome is Outcome.NO_INTENT

    @pytest.mark.asyncio
    async def test_malformed_output_falls_back(self, fake_llm) -> None:
        fake_llm.responses = ["I think they want to kick someone"]
        result = await IntentClassifier(fake_llm).classify("kick him", CATALOG)

        assert result.outcome is Outcome.CLARIFICATION
        assert result.text == GENERIC_CLARIFICATION

    @pytest.mark.asyncio
    async def test_prompt_carries_context(self, fake_llm) -> None:
        await IntentClassifier(fake_llm).classify(
            "yes do it",
            CATALOG,
            context="User: warn bob\nBot: Who is bob?",
            referenced_message="Who is bob?",
        )
        assert "User: warn bob" in fake_llm.prompts[0]
        assert '"Who is bob?"' in fake_llm.prompts[0]


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestLiteLLMClient:
    """Tests for LiteLLMClient."""

    @pytest.mark.asyncio
    async def test_returns_content(self) -> None:
        with patch(
            "src.core.classifier.llm.acompletion",
            new=AsyncMock(return_value=_completion('{"isCommand": false}')),
        ) as mock_completion:
            client = LiteLLMClient(model="test/model", api_key="k", timeout=5, max_retries=0)
            assert await client.classify("prompt") == '{"isCommand": false}'

        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "test/model"
        assert kwargs["messages"] == [{"role": "system", "content": "prompt"}]
        assert kwargs["api_key"] == "k"

    @pytest.mark.asyncio
    async def test_empty_content_is_failure(self) -> None:
        with patch(
            "src.core.classifier.llm.acompletion",
            new=AsyncMock(return_value=_completion("")),
        ):
            client = LiteLLMClient(model="m", api_key="k", timeout=5, max_retries=0)
            with pytest.raises(ClassificationFailure):
                await client.classify("prompt")

    @pytest.mark.asyncio
    async def test_timeout_is_failure(self) -> None:
        async def slow(**kwargs):
            await asyncio.sleep(1)
            return _completion("late")

        with patch("src.core.classifier.llm.acompletion", new=slow):
            client = LiteLLMClient(model="m", api_key="k", timeout=0.05, max_retries=0)
            with pytest.raises(ClassificationFailure, match="deadline"):
                await client.classify("prompt")

    @pytest.mark.asyncio
    async def test_retries_rate_limit_only(self) -> None:
        rate_limited = RateLimitError("slow down", llm_provider="openai", model="m")
        mock_completion = AsyncMock(side_effect=[rate_limited, _completion("ok")])

        with patch("src.core.classifier.llm.acompletion", new=mock_completion):
            client = LiteLLMClient(model="m", api_key="k", timeout=10, max_retries=1)
            assert await client.classify("prompt") == "ok"

        assert mock_completion.call_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self) -> None:
        mock_completion = AsyncMock(side_effect=ValueError("bad request"))

        with patch("src.core.classifier.llm.acompletion", new=mock_completion):
            client = LiteLLMClient(model="m", api_key="k", timeout=10, max_retries=3)
            with pytest.raises(ClassificationFailure, match="Provider error"):
                await client.classify("prompt")

        assert mock_completion.call_count == 1
