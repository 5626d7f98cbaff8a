"""
Classification oracles for Braindump.

An oracle takes a ClassificationRequest and returns the raw reply text; the
validator decides whether that text is usable. Two implementations:

- LLMClassifier: Anthropic (default) or OpenAI over HTTP.
- RuleBasedClassifier: offline keywords plus the date rules, for use without
  an API key and for deterministic runs.
"""

import json
import logging
import os
import re
import time
from typing import Any

import httpx

from braindump.config import load_config
from braindump.contract import build_contract
from braindump.dates import find_date_phrase, find_recurrence, parse_time, resolve
from braindump.errors import OracleTimeoutError, OracleUnavailableError, ResponseParseError
from braindump.interfaces import Oracle
from braindump.merge import identity_key
from braindump.models import CATEGORY_LABELS, Category, ClassificationRequest

logger = logging.getLogger(__name__)

# Default models for each provider
DEFAULT_MODELS = {
    "anthropic": "claude-haiku-4-5-20251001",  # Fast and cheap for classification
    "openai": "gpt-4o-mini",
}

SYSTEM_PROMPT = "You are a structured note-organizing assistant."


class LLMClassifier(Oracle):
    """LLM-backed oracle. Supports Anthropic and OpenAI."""

    name = "llm"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or load_config()
        self.llm_config = self.config.get("llm", {})
        self.transport = transport
        self.timeout = float(self.config.get("organizer", {}).get("timeout_seconds", 60.0))
        self.max_retries = int(self.llm_config.get("max_retries", 2))
        self.retry_backoff = float(self.llm_config.get("retry_backoff", 1.5))

        # Determine provider (anthropic is default, check for keys)
        self.provider = self.llm_config.get("provider", "anthropic")

        # Get API key based on provider
        if self.provider == "anthropic":
            self.api_key = (
                self.llm_config.get("anthropic_api_key")
                or os.environ.get("ANTHROPIC_API_KEY")
            )
            self.model = self.llm_config.get("model", DEFAULT_MODELS["anthropic"])
            self.base_url = self.llm_config.get("base_url", "https://api.anthropic.com/v1")
            if not self.api_key:
                raise ValueError(
                    "Anthropic API key not found. Set ANTHROPIC_API_KEY env var or add to config."
                )
        elif self.provider == "openai":
            self.api_key = (
                self.llm_config.get("openai_api_key")
                or os.environ.get("OPENAI_API_KEY")
            )
            self.model = self.llm_config.get("model", DEFAULT_MODELS["openai"])
            self.base_url = self.llm_config.get("base_url", "https://api.openai.com/v1")
            if not self.api_key:
                raise ValueError(
                    "OpenAI API key not found. Set OPENAI_API_KEY env var or add to config."
                )
        else:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

    def classify(self, request: ClassificationRequest) -> str:
        """Send the contract, return the model's text reply."""
        prompt = request.contract or build_contract(request)
        start_time = time.time()

        if self.provider == "anthropic":
            reply = self._call_anthropic(prompt)
        else:
            reply = self._call_openai(prompt)

        processing_time = int((time.time() - start_time) * 1000)
        logger.info(f"{self.provider}/{self.model} answered in {processing_time}ms")
        return reply

    def _call_anthropic(self, prompt: str) -> str:
        """Call Anthropic API."""
        data = self._post(
            "/messages",
            headers={
                "x-api-key": self.api_key,
                "Content-Type": "application/json",
                "anthropic-version": "2023-06-01",
            },
            payload={
                "model": self.model,
                "max_tokens": 2048,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.3,  # Lower temp for consistent classification
            },
        )
        try:
            return data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseParseError(f"Unexpected Anthropic payload: {e}", raw=json.dumps(data)) from e

    def _call_openai(self, prompt: str) -> str:
        """Call OpenAI API."""
        data = self._post(
            "/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            payload={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.3,
                "response_format": {"type": "json_object"},
            },
        )
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseParseError(f"Unexpected OpenAI payload: {e}", raw=json.dumps(data)) from e

    def _post(self, path: str, headers: dict[str, str], payload: dict[str, Any]) -> dict[str, Any]:
        """POST with 429 backoff; transport failures become oracle errors."""
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = client.post(f"{self.base_url}{path}", headers=headers, json=payload)
                except httpx.TimeoutException as e:
                    raise OracleTimeoutError(f"{self.provider} timed out after {self.timeout}s") from e
                except httpx.TransportError as e:
                    raise OracleUnavailableError(f"{self.provider} unreachable: {e}") from e

                if response.status_code == 429 and attempt < self.max_retries:
                    delay = self.retry_backoff * (2 ** attempt)
                    logger.warning(f"{self.provider} rate limited, retrying in {delay:.1f}s")
                    time.sleep(delay)
                    continue

                try:
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    raise OracleUnavailableError(
                        f"{self.provider} HTTP {response.status_code}: {response.text[:200]}"
                    ) from e

                try:
                    return response.json()
                except ValueError as e:
                    raise ResponseParseError("Reply body is not JSON", raw=response.text) from e

        raise OracleUnavailableError(f"{self.provider} still rate limited after {self.max_retries} retries")


CATEGORY_KEYWORDS = {
    Category.SHOPPING_LIST: ["buy", "purchase", "order", "groceries", "grocery", "shopping"],
    Category.IMPORTANT_DATES_EVENTS: [
        "birthday", "anniversary", "deadline", "wedding", "holiday", "christmas", "due",
    ],
    Category.PLAN: [
        "research", "learn", "explore", "prepare", "plan", "compare", "study", "look into",
    ],
    Category.THINK: ["idea", "ideas", "what if", "maybe", "concept", "wonder", "reflect"],
}


def _has_keyword(text: str, keywords: list[str]) -> bool:
    lowered = text.lower()
    return any(re.search(rf"\b{re.escape(keyword)}\b", lowered) for keyword in keywords)


def categorize(text: str, dated: bool = False) -> Category:
    """
    Pick a category by keyword, in the contract's classification order.

    Purchases always win; anything dated and not an occasion is a Do.
    """
    if _has_keyword(text, CATEGORY_KEYWORDS[Category.SHOPPING_LIST]):
        return Category.SHOPPING_LIST
    if _has_keyword(text, CATEGORY_KEYWORDS[Category.IMPORTANT_DATES_EVENTS]):
        return Category.IMPORTANT_DATES_EVENTS
    if dated:
        return Category.DO
    if _has_keyword(text, CATEGORY_KEYWORDS[Category.PLAN]):
        return Category.PLAN
    if _has_keyword(text, CATEGORY_KEYWORDS[Category.THINK]):
        return Category.THINK
    return Category.DO


class RuleBasedClassifier(Oracle):
    """
    Deterministic offline oracle.

    One item per distinct fragment, text kept verbatim. Dates, times and
    recurrence come from the same rules the contract describes.
    """

    name = "rules"

    def classify(self, request: ClassificationRequest) -> str:
        fragments = request.fragments or [request.new_input_text]
        output: dict[str, list[dict[str, Any]]] = {label: [] for label in CATEGORY_LABELS.values()}
        seen: set[str] = set()

        for fragment in fragments:
            text = fragment.strip()
            key = identity_key(text)
            if not text or key in seen:
                continue
            seen.add(key)

            item = self._classify_fragment(text, request)
            category = categorize(text, dated=bool(item["date"] or item["time"]))
            output[category.label].append(item)

        return "```json\n" + json.dumps(output, indent=2) + "\n```"

    @staticmethod
    def _classify_fragment(text: str, request: ClassificationRequest) -> dict[str, Any]:
        date_value = None
        if phrase := find_date_phrase(text):
            kind, params = phrase
            date_value = resolve(kind, params, request.anchor_date).date.isoformat()

        return {
            "item": text,
            "recurrence": find_recurrence(text),
            "date": date_value,
            "time": parse_time(text),
            "completed": False,
        }


def build_oracle(config: dict[str, Any], name: str | None = None) -> Oracle:
    """Oracle named by ``name`` or by the ``organizer.classifier`` setting."""
    name = name or config.get("organizer", {}).get("classifier", "llm")
    if name == "rules":
        return RuleBasedClassifier()
    if name == "llm":
        return LLMClassifier(config)
    raise ValueError(f"Unknown classifier: {name}")
