"""Tests for the AI gateway."""

import pytest

from conftest import FakeGateway
from shopping_sync.ai_gateway import (
    MISSING_KEY_MESSAGE,
    RATE_LIMIT_MESSAGE,
    AIError,
    AIMissingKeyError,
    AIModelError,
    AIRateLimitError,
    AIResponseError,
    ClaudeGateway,
    GeminiGateway,
    classify_ai_error,
    create_gateway,
    is_model_error,
    is_retryable,
    strip_fences,
)
from shopping_sync.config import ConfigManager
from shopping_sync.models import CategoryDef, PurchaseLog, PurchaseLogItem

CATEGORIES = [CategoryDef(id="dairy", name="Dairy & Eggs"), CategoryDef(id="none", name="Uncategorized")]


class StatusError(Exception):
    """SDK-style error carrying an HTTP status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class TestClassification:
    """Tests for error classification helpers."""

    def test_rate_limit_message(self):
        assert classify_ai_error(AIRateLimitError("slow down")) == RATE_LIMIT_MESSAGE
        assert classify_ai_error(AIError("429 Too Many Requests")) == RATE_LIMIT_MESSAGE
        assert classify_ai_error(AIError("quota exceeded")) == RATE_LIMIT_MESSAGE

    def test_missing_key_message(self):
        assert classify_ai_error(AIMissingKeyError(MISSING_KEY_MESSAGE)) == MISSING_KEY_MESSAGE

    def test_generic_message_is_truncated(self):
        message = classify_ai_error(AIError("something very unexpected happened"))
        assert message == "AI service error: something very unexp..."

    def test_model_and_retryable_detection(self):
        assert is_model_error(StatusError("bad", 404))
        assert is_model_error(Exception("models/foo is not found"))
        assert is_retryable(StatusError("busy", 503))
        assert is_retryable(Exception("RESOURCE_EXHAUSTED"))
        assert not is_retryable(Exception("invalid argument"))

    def test_strip_fences(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_fences('  {"a": 1} ') == '{"a": 1}'


class TestRetryAndFallback:
    """Tests for the shared request loop."""

    def test_missing_key(self):
        gateway = FakeGateway(api_key="")
        with pytest.raises(AIMissingKeyError):
            gateway.categorize("Milk", CATEGORIES)

    def test_retries_with_backoff(self):
        answer = {"category_name": "Dairy & Eggs"}
        gateway = FakeGateway(
            StatusError("429", 429), StatusError("overloaded", 503), answer, retry_delay=2.0, backoff=1.5
        )
        suggestion = gateway.categorize("Milk", CATEGORIES)
        assert suggestion.category_name == "Dairy & Eggs"
        assert gateway.sleeps == [2.0, 3.0]

    def test_gives_up_after_max_retries(self):
        gateway = FakeGateway(*[StatusError("429 quota", 429)] * 3, max_retries=2)
        with pytest.raises(AIRateLimitError):
            gateway.categorize("Milk", CATEGORIES)
        assert len(gateway.sleeps) == 2

    def test_falls_back_to_next_model(self):
        gateway = FakeGateway(StatusError("not found", 404), {"category_name": "Dairy & Eggs"})
        gateway.categorize("Milk", CATEGORIES)
        assert gateway.models_used == ["primary-model", "fallback-model"]
        assert gateway.model == "fallback-model"

    def test_all_models_rejected(self):
        gateway = FakeGateway(StatusError("not found", 404), StatusError("not found", 404))
        with pytest.raises(AIModelError):
            gateway.categorize("Milk", CATEGORIES)

    def test_other_errors_wrapped(self):
        gateway = FakeGateway(RuntimeError("socket closed"))
        with pytest.raises(AIError):
            gateway.categorize("Milk", CATEGORIES)
        assert gateway.sleeps == []


class TestOperations:
    """Tests for the four gateway operations."""

    def test_categorize_prompt_lists_categories(self):
        gateway = FakeGateway({"category_name": "Dairy & Eggs", "suggested_emoji": "🥛"})
        gateway.categorize("Kefir", CATEGORIES)
        assert "Kefir" in gateway.prompts[0]
        assert "Dairy & Eggs, Uncategorized" in gateway.prompts[0]

    def test_empty_answer(self):
        assert FakeGateway("").categorize("Milk", CATEGORIES) is None
        assert FakeGateway("  ").parse_free_text("milk", CATEGORIES).items == []

    def test_fenced_answer(self):
        gateway = FakeGateway('```json\n{"items": [{"name": "Milk"}], "dish_name": null}\n```')
        parsed = gateway.parse_free_text("milk", CATEGORIES)
        assert [i.name for i in parsed.items] == ["Milk"]
        assert parsed.dish_name is None

    def test_malformed_answer(self):
        with pytest.raises(AIResponseError):
            FakeGateway("not json").parse_free_text("milk", CATEGORIES)

    def test_wrong_shape(self):
        with pytest.raises(AIResponseError):
            FakeGateway({"items": "milk"}).parse_free_text("milk", CATEGORIES)

    def test_generate_set_items(self):
        gateway = FakeGateway(
            {"set_emoji": "🍕", "items": [{"name": "Dough", "category_name": "Bakery", "emoji": "🍞"}]}
        )
        generated = gateway.generate_set_items("Pizza", CATEGORIES)
        assert generated.set_emoji == "🍕"
        assert generated.items[0].category_name == "Bakery"

    def test_analyze_history_sends_logs(self):
        gateway = FakeGateway([{"name": "Breakfast", "items": [{"name": "Eggs"}]}])
        logs = [PurchaseLog(date="2026-03-01", items=[PurchaseLogItem(name="Eggs")])]

        suggestions = gateway.analyze_history(logs, CATEGORIES)

        assert suggestions[0].name == "Breakfast"
        assert "2026-03-01" in gateway.prompts[0]

    def test_analyze_history_requires_list(self):
        with pytest.raises(AIResponseError):
            FakeGateway({"name": "Breakfast"}).analyze_history([], CATEGORIES)


class TestCreateGateway:
    """Tests for the gateway factory."""

    def _config(self, tmp_path, body: str) -> ConfigManager:
        path = tmp_path / "config.toml"
        path.write_text(body)
        return ConfigManager(path)

    def test_gemini_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "gem-key")
        gateway = create_gateway(self._config(tmp_path, ""))
        assert isinstance(gateway, GeminiGateway)
        assert gateway.api_key == "gem-key"
        assert gateway.model == "gemini-2.0-flash"

    def test_claude_with_settings(self, tmp_path):
        gateway = create_gateway(
            self._config(
                tmp_path,
                '[ai]\nbackend = "claude"\napi_key = "k"\nmodels = ["claude-a", "claude-b"]\nmax_retries = 1\n',
            )
        )
        assert isinstance(gateway, ClaudeGateway)
        assert gateway.models == ["claude-a", "claude-b"]
        assert gateway.max_retries == 1

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(ValueError):
            create_gateway(self._config(tmp_path, '[ai]\nbackend = "oracle"\n'))
