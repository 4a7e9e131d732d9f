"""AI gateway: categorization, free-text parsing, set generation and history mining.

Backends only implement ``_generate`` (prompt in, JSON text out). Retry on
rate limits, model fallback and response parsing live in the base class so
callers see either a parsed result or a single ``AIError``.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from .log_config import get_logger
from .models import (
    DEFAULT_SET_EMOJI,
    CategoryDef,
    CategorySuggestion,
    GeneratedSet,
    ParsedText,
    PurchaseLog,
    SuggestedSet,
)

if TYPE_CHECKING:
    from .config import ConfigManager

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "AI limit reached. Try again in a minute."
MISSING_KEY_MESSAGE = "AI API key not found."

_MODEL_ERROR_MARKERS = ("400", "404", "not found")
_RETRYABLE_MARKERS = ("429", "503", "quota", "RESOURCE_EXHAUSTED", "UNAVAILABLE", "Overloaded")


class AIError(Exception):
    """Raised when an AI request fails for good."""


class AIRateLimitError(AIError):
    """Rate limit or quota still exceeded after all retries."""


class AIMissingKeyError(AIError):
    """No API key configured for the AI backend."""


class AIModelError(AIError):
    """Every configured model was rejected."""


class AIResponseError(AIError):
    """The service answered with something that is not the expected JSON."""


def classify_ai_error(exc: Exception) -> str:
    """Turn an AI failure into one of three user-facing messages."""
    message = str(exc)
    if isinstance(exc, AIRateLimitError) or "429" in message or "quota" in message:
        return RATE_LIMIT_MESSAGE
    if isinstance(exc, AIMissingKeyError):
        return message
    return f"AI service error: {message[:20]}..."


def _status_of(exc: Exception) -> int | None:
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_model_error(exc: Exception) -> bool:
    if _status_of(exc) in (400, 404):
        return True
    message = str(exc)
    return any(marker in message for marker in _MODEL_ERROR_MARKERS)


def is_retryable(exc: Exception) -> bool:
    if _status_of(exc) in (429, 503):
        return True
    message = str(exc)
    return any(marker in message for marker in _RETRYABLE_MARKERS)


def strip_fences(text: str) -> str:
    """Remove a markdown code fence around a JSON answer."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [line for line in lines[1:] if not line.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def _category_names(categories: list[CategoryDef]) -> str:
    return ", ".join(c.name for c in categories)


_CATEGORIZE_PROMPT = """\
Pick a shopping category for the product "{name}".
Existing categories: {categories}.
If none fits, invent a short new category name.

Answer with JSON only:
{{"category_name": "...", "suggested_emoji": "...", "is_new": true|false}}
"""

_PARSE_PROMPT = """\
Extract shopping items from this text: "{text}".

Rules:
1. Capitalize the first letter of every item name.
2. Keep grammatical number as spoken ("Apples" stays "Apples"); drop quantities ("10 eggs" is "Eggs").
3. A bare dish ("Pizza") is a single item and dish_name is null. A request for a
   dish's ingredients ("everything for pizza") lists the ingredients and sets dish_name.
4. Use these categories when they fit: {categories}.

Answer with JSON only:
{{"items": [{{"name": "...", "category_name": "...", "suggested_emoji": "..."}}], "dish_name": null}}
"""

_GENERATE_SET_PROMPT = """\
Create a shopping list for the set named "{name}".

Rules:
1. If the name is a dish, list its ingredients, never the dish itself.
2. If the name is a task or occasion ("Cleaning", "Party"), list the items needed.
3. Capitalize the first letter of every item name.
4. Use these categories when they fit: {categories}.

Answer with JSON only:
{{"set_emoji": "...", "items": [{{"name": "...", "category_name": "...", "emoji": "..."}}]}}
"""

_ANALYZE_PROMPT = """\
Analyze this purchase history and suggest 3 shopping sets of items that are
regularly bought together.
History: {history}
Categories: {categories}
Capitalize all item names.

Answer with a JSON array only:
[{{"name": "...", "emoji": "...", "items": [{{"name": "...", "category_name": "...", "emoji": "..."}}]}}]
"""


class AIGateway(ABC):
    """Abstract base for AI-backed list assistance.

    Args:
        api_key: Backend credential; calls fail with AIMissingKeyError when empty
        models: Model identifiers tried in order when one is rejected
        max_retries: Retries for rate-limit/overload failures
        retry_delay: First retry delay in seconds
        backoff: Multiplier applied to the delay after each retry
        sleep: Sleep function, replaceable in tests
    """

    default_models: tuple[str, ...] = ()

    def __init__(
        self,
        api_key: str = "",
        models: list[str] | None = None,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        backoff: float = 1.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.models = list(models or self.default_models)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.backoff = backoff
        self.sleep = sleep
        self._model_index = 0

    @property
    def model(self) -> str:
        return self.models[self._model_index] if self.models else ""

    @abstractmethod
    def _generate(self, prompt: str, model: str) -> str:
        """Send one prompt to one model and return the raw text answer."""
        ...

    def _call(self, prompt: str) -> str:
        if not self.api_key:
            raise AIMissingKeyError(MISSING_KEY_MESSAGE)

        retries = self.max_retries
        delay = self.retry_delay
        while True:
            try:
                return self._generate(prompt, self.model)
            except AIError:
                raise
            except Exception as e:
                logger.debug("AI request failed: %s", e)
                if is_model_error(e) and self._model_index < len(self.models) - 1:
                    self._model_index += 1
                    logger.warning("Model error, switching to %s", self.model)
                    continue
                if retries > 0 and is_retryable(e):
                    logger.info("AI rate limit hit, retrying in %.1fs (%d left)", delay, retries)
                    self.sleep(delay)
                    retries -= 1
                    delay *= self.backoff
                    continue
                if is_retryable(e):
                    raise AIRateLimitError(str(e)) from e
                if is_model_error(e):
                    raise AIModelError(str(e)) from e
                raise AIError(str(e)) from e

    def _request_json(self, prompt: str) -> Any:
        text = self._call(prompt)
        if not text or not text.strip():
            return None
        try:
            return json.loads(strip_fences(text))
        except json.JSONDecodeError as e:
            raise AIResponseError(f"Malformed AI response: {e}") from e

    @staticmethod
    def _validate(model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise AIResponseError(f"Unexpected AI response: {e.error_count()} errors") from e

    def categorize(
        self, product_name: str, categories: list[CategoryDef]
    ) -> CategorySuggestion | None:
        """Suggest a category for a product, possibly a new one."""
        data = self._request_json(
            _CATEGORIZE_PROMPT.format(name=product_name, categories=_category_names(categories))
        )
        if data is None:
            return None
        return self._validate(CategorySuggestion, data)

    def parse_free_text(self, text: str, categories: list[CategoryDef]) -> ParsedText:
        """Split dictated or typed text into individual products."""
        data = self._request_json(
            _PARSE_PROMPT.format(text=text, categories=_category_names(categories))
        )
        if data is None:
            return ParsedText()
        return self._validate(ParsedText, data)

    def generate_set_items(self, set_name: str, categories: list[CategoryDef]) -> GeneratedSet:
        data = self._request_json(
            _GENERATE_SET_PROMPT.format(name=set_name, categories=_category_names(categories))
        )
        if data is None:
            return GeneratedSet(set_emoji=DEFAULT_SET_EMOJI)
        return self._validate(GeneratedSet, data)

    def analyze_history(
        self, logs: list[PurchaseLog], categories: list[CategoryDef]
    ) -> list[SuggestedSet]:
        """Mine purchase logs for bundles that recur across days."""
        history = json.dumps(
            [
                {"date": log.date.isoformat(), "items": [item.name for item in log.items]}
                for log in logs
            ],
            ensure_ascii=False,
        )
        data = self._request_json(
            _ANALYZE_PROMPT.format(history=history, categories=_category_names(categories))
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise AIResponseError("Expected a list of suggested sets")
        return [self._validate(SuggestedSet, entry) for entry in data]


class GeminiGateway(AIGateway):
    """AI gateway backed by Google Gemini."""

    default_models = ("gemini-2.0-flash", "gemini-1.5-flash")

    def _generate(self, prompt: str, model: str) -> str:
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self.api_key)
        client = genai.GenerativeModel(
            model, generation_config={"response_mime_type": "application/json"}
        )
        response = client.generate_content(prompt)
        return response.text


class ClaudeGateway(AIGateway):
    """AI gateway backed by Anthropic Claude."""

    default_models = ("claude-sonnet-4-5-20250929",)

    def _generate(self, prompt: str, model: str) -> str:
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic SDK is required: pip install anthropic") from None

        client = anthropic.Anthropic(api_key=self.api_key)
        response = client.messages.create(
            model=model,
            max_tokens=2048,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text


def create_gateway(config: ConfigManager) -> AIGateway:
    """Create an AI gateway based on configuration."""
    ai = config.ai

    match ai.backend:
        case "gemini":
            gateway_class: type[AIGateway] = GeminiGateway
        case "claude":
            gateway_class = ClaudeGateway
        case _:
            raise ValueError(f"Unknown AI backend: {ai.backend!r} (choose gemini or claude)")

    return gateway_class(
        api_key=ai.api_key,
        models=ai.models or None,
        max_retries=ai.max_retries,
        retry_delay=ai.retry_delay,
        backoff=ai.backoff,
    )
