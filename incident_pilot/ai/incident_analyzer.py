"""Incident Analyzer: LLM tagging and triage notes with a keyword fallback.

The analyzer never raises to its caller. A missing API key, a timeout, a
model error and an unparseable reply all produce the same deterministic
keyword-based result, so the rest of the service can treat analysis as
always available.
"""

import asyncio
import json
from typing import Optional

from openai import AsyncOpenAI

from ..errors import AdapterFailure
from ..models.constants import CATEGORIES, SEVERITIES
from ..utils.logging import get_logger

logger = get_logger("ai.incident_analyzer")

KEYWORD_VOCABULARY = (
    "server", "network", "email", "database", "vpn", "security",
    "phishing", "malware", "outage", "performance", "access",
    "password", "backup", "firewall", "virus", "attack",
)
MAX_TAGS = 5

FALLBACK_NO_KEY = (
    "AI analysis requires an OpenAI API key. "
    "This incident was tagged automatically from keywords."
)
FALLBACK_UNAVAILABLE = (
    "AI analysis is temporarily unavailable. A manual review is recommended."
)

_SYSTEM_PROMPT = """You are an expert analyst for IT and cyber-security incidents. Analyze the incident and provide:
1. Relevant tags (3-5 keywords) for categorization
2. A short analysis of the incident and its likely causes (2-3 sentences)
3. Resolution suggestions based on similar incidents

Respond in JSON format:
{
  "tags": ["tag1", "tag2", "tag3"],
  "analysis": "Short incident analysis...",
  "suggested_category": "it or cyber, only if the current category looks wrong",
  "suggested_severity": "critical, high, medium or low, only if the current severity looks wrong"
}"""


def extract_keywords(title: str, description: str) -> list[str]:
    """Vocabulary terms found as substrings of the title and description, at most five."""
    text = f"{title} {description}".lower()
    return [word for word in KEYWORD_VOCABULARY if word in text][:MAX_TAGS]


def _normalize_tags(raw) -> list[str]:
    if not isinstance(raw, list):
        return []
    tags = []
    for tag in raw:
        if not isinstance(tag, str):
            continue
        tag = tag.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


class IncidentAnalyzer:
    """Wraps an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 10.0,
        max_tokens: int = 500,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._model = model
        self._timeout = timeout
        self._max_tokens = max_tokens
        if client is not None:
            self._client = client
        elif api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        else:
            self._client = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def analyze(self, title: str, description: str, category: str, severity: str) -> dict:
        """Return ``{"tags", "analysis"}`` plus optional category/severity suggestions."""
        if not self.enabled:
            logger.debug("ai_analysis_disabled")
            return self._fallback(title, description, FALLBACK_NO_KEY)

        try:
            result = await asyncio.wait_for(
                self._complete(title, description, category, severity),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("ai_analysis_timeout", timeout=self._timeout)
            return self._fallback(title, description, FALLBACK_UNAVAILABLE)
        except Exception as exc:
            logger.error("ai_analysis_failed", error=str(exc))
            return self._fallback(title, description, FALLBACK_UNAVAILABLE)

        logger.info("ai_analysis_complete", tags=result["tags"], model=self._model)
        return result

    async def _complete(self, title: str, description: str, category: str, severity: str) -> dict:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Analyze this {category.upper()} incident:\n\n"
                        f"Title: {title}\n\n"
                        f"Description: {description}\n\n"
                        f"Severity: {severity}\n\n"
                        "Provide an analysis and recommendations."
                    ),
                },
            ],
            response_format={"type": "json_object"},
            max_tokens=self._max_tokens,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AdapterFailure("Empty response from model")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise AdapterFailure("Model reply is not valid JSON", {"error": str(exc)}) from exc
        if not isinstance(data, dict):
            raise AdapterFailure("Model reply is not a JSON object")

        tags = _normalize_tags(data.get("tags"))
        analysis = data.get("analysis")
        if not tags or not isinstance(analysis, str) or not analysis.strip():
            raise AdapterFailure("Model reply is missing tags or analysis")

        result = {"tags": tags, "analysis": analysis.strip()}
        suggested_category = str(data.get("suggested_category") or "").strip().lower()
        if suggested_category in CATEGORIES:
            result["suggested_category"] = suggested_category
        suggested_severity = str(data.get("suggested_severity") or "").strip().lower()
        if suggested_severity in SEVERITIES:
            result["suggested_severity"] = suggested_severity
        return result

    @staticmethod
    def _fallback(title: str, description: str, analysis: str) -> dict:
        return {"tags": extract_keywords(title, description), "analysis": analysis}
