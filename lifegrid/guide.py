from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from loguru import logger

from .models import DayDraft, normalize_score
from .tags import canonical_mood, parse_tags

GUIDE_PROVIDER_SETTING_KEY = "guide_provider"
GUIDE_MODEL_SETTING_KEY = "guide_model"
GUIDE_API_KEY_SETTING_KEY = "guide_api_key"
GUIDE_ENDPOINT_SETTING_KEY = "guide_endpoint"


@dataclass(frozen=True)
class GuideContext:
    day: date
    quality_score: int
    mood: str
    activities: str
    morning_plan: str
    evening_reflection: str

    @classmethod
    def from_draft(cls, day: date, draft: DayDraft) -> GuideContext:
        return cls(
            day=day,
            quality_score=normalize_score(draft.quality_score),
            mood=draft.mood,
            activities=draft.activities,
            morning_plan=draft.morning_plan,
            evening_reflection=draft.evening_reflection,
        )


class ReflectionGuideGenerator(Protocol):
    def generate(self, context: GuideContext) -> str: ...


@dataclass(frozen=True)
class _Prompts:
    wins: tuple[str, str]
    gaps: tuple[str, str]
    gratitude: str
    tomorrow: tuple[str, str]


class LocalReflectionGuide:
    """Rule-based prompts picked by the day's quality score."""

    def generate(self, context: GuideContext) -> str:
        score = normalize_score(context.quality_score)
        prompts = self._prompts_for(score, context)
        has_draft = bool(context.evening_reflection.strip())
        nudge = (
            "Use your current draft and answer these prompts concretely."
            if has_draft
            else "Answer these prompts to reflect on your day."
        )
        lines = [
            f"{format_day(context.day)} Reflection Guide ({score}/10, {canonical_mood(context.mood)})",
            nudge,
            "",
            "1) Wins:",
            *(f"- {prompt}" for prompt in prompts.wins),
            "",
            "2) Gaps:",
            *(f"- {prompt}" for prompt in prompts.gaps),
            "",
            "3) Gratitude:",
            f"- {prompts.gratitude}",
            "",
            "4) Tomorrow:",
            *(f"- {prompt}" for prompt in prompts.tomorrow),
        ]
        return "\n".join(lines)

    @staticmethod
    def _prompts_for(score: int, context: GuideContext) -> _Prompts:
        if score <= 4:
            return _Prompts(
                wins=(
                    "What is one small win you still had, even on a hard day?",
                    "Where did you show effort or resilience despite low energy?",
                ),
                gaps=(
                    "What drained you most today, and what early signal did you miss?",
                    "What is one boundary you could set tomorrow to protect your energy?",
                ),
                gratitude="Name one person, moment, or comfort that helped you get through today.",
                tomorrow=(
                    "Choose one non-negotiable for tomorrow that would make the day 10% better.",
                    "What can you simplify or remove tomorrow to reduce friction?",
                ),
            )
        if score <= 7:
            top_tags = parse_tags(context.activities)[:2]
            tag_text = " and ".join(top_tags) if top_tags else "today's priorities"
            plan_text = "your morning plan" if context.morning_plan.strip() else "your top priority"
            return _Prompts(
                wins=(
                    f"What worked well today in {tag_text}?",
                    "What action are you proud you followed through on?",
                ),
                gaps=(
                    "What felt unfinished, scattered, or avoidable today?",
                    "What one change would have improved your focus or mood?",
                ),
                gratitude="What from today are you genuinely grateful for right now?",
                tomorrow=(
                    f"What is the first meaningful step for {plan_text} tomorrow?",
                    "What is one distraction you will intentionally avoid tomorrow?",
                ),
            )
        return _Prompts(
            wins=(
                "Which part of today gave you the most momentum or joy?",
                "What did you do today that you want to repeat this week?",
            ),
            gaps=(
                "What small improvement could make a good day even more aligned?",
                "Where can you conserve energy without losing impact tomorrow?",
            ),
            gratitude="What are you most thankful for from this strong day?",
            tomorrow=(
                "How will you carry today's momentum into your first hour tomorrow?",
                "What one habit will help you protect this progress?",
            ),
        )


class RemoteReflectionGuide:
    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str,
        endpoint: str = "",
        fallback: ReflectionGuideGenerator | None = None,
    ):
        self.provider = provider.strip().lower()
        self.api_key = api_key.strip()
        self.model = model.strip()
        self.endpoint = endpoint.strip()
        self.fallback = fallback

    def generate(self, context: GuideContext) -> str:
        try:
            return self._generate_remote(context)
        except (RuntimeError, ValueError) as exc:
            if self.fallback is None:
                raise
            logger.warning("Remote reflection guide failed, using local guide: {}", exc)
            return self.fallback.generate(context)

    def _generate_remote(self, context: GuideContext) -> str:
        if not self.model:
            raise ValueError("Model is required.")
        if self.provider in {"gemini", "openai"} and not self.api_key:
            raise ValueError("API key is required for this provider.")

        prompt = _build_guide_prompt(context)
        if self.provider == "gemini":
            endpoint = (
                f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
                f"?key={self.api_key}"
            )
            payload = {
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.4},
            }
            return _guide_text(self.provider, _request_guide(endpoint, payload))

        if self.provider in {"openai", "local"}:
            payload = {
                "model": self.model,
                "temperature": 0.4,
                "messages": [{"role": "user", "content": prompt}],
            }
            url = _chat_completions_url(self.provider, self.endpoint)
            return _guide_text(self.provider, _request_guide(url, payload, api_key=self.api_key))

        raise ValueError(f"Unsupported provider: {self.provider}")


def guide_generator_from_settings(store: Any) -> ReflectionGuideGenerator:
    """Remote generator when a provider is configured, otherwise local templates."""
    local = LocalReflectionGuide()
    provider = (store.get_setting(GUIDE_PROVIDER_SETTING_KEY, "") or "").strip()
    if not provider or provider == "none":
        return local
    return RemoteReflectionGuide(
        provider=provider,
        api_key=store.get_setting(GUIDE_API_KEY_SETTING_KEY, "") or "",
        model=store.get_setting(GUIDE_MODEL_SETTING_KEY, "") or "",
        endpoint=store.get_setting(GUIDE_ENDPOINT_SETTING_KEY, "") or "",
        fallback=local,
    )


def insert_guide(reflection: str, guide: str) -> str:
    if not guide:
        return reflection
    if not reflection.strip():
        return guide
    return f"{reflection}\n\n{guide}"


def format_day(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def _build_guide_prompt(context: GuideContext) -> str:
    tags = parse_tags(context.activities)
    return (
        "You are writing an evening reflection guide for a personal day journal.\n"
        f"Date: {context.day.isoformat()}\n"
        f"Day quality: {normalize_score(context.quality_score)}/10\n"
        f"Mood: {canonical_mood(context.mood)}\n"
        f"Tags: {', '.join(tags) or '(none)'}\n"
        f"Morning plan: {context.morning_plan.strip() or '(none)'}\n"
        f"Reflection draft: {context.evening_reflection.strip() or '(none)'}\n"
        "Return plain text with four numbered sections: 1) Wins, 2) Gaps, 3) Gratitude, 4) Tomorrow.\n"
        "Each section holds one or two short question prompts starting with '- '.\n"
        "No markdown headings, no preamble."
    )


def _chat_completions_url(provider: str, endpoint: str) -> str:
    if endpoint:
        return endpoint
    host = "http://localhost:1234" if provider == "local" else "https://api.openai.com"
    return f"{host}/v1/chat/completions"


def _request_guide(url: str, payload: dict[str, Any], api_key: str = "") -> dict[str, Any]:
    """POST one guide request; transport and decoding problems become RuntimeError."""
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    request = urllib.request.Request(url, data=json.dumps(payload).encode("utf-8"), headers=headers, method="POST")
    try:
        with urllib.request.urlopen(request, timeout=30) as response:
            body = response.read()
    except urllib.error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise RuntimeError(f"Guide request failed ({exc.code}): {detail}") from exc
    except urllib.error.URLError as exc:
        raise RuntimeError(f"Guide provider unreachable: {exc.reason}") from exc

    try:
        decoded = json.loads(body)
    except ValueError as exc:
        raise RuntimeError("Guide provider returned non-JSON response.") from exc
    if not isinstance(decoded, dict):
        raise RuntimeError("Guide provider returned an unexpected response.")
    return decoded


def _guide_text(provider: str, data: dict[str, Any]) -> str:
    """First non-blank text block of a Gemini candidate or a chat completion choice."""
    if provider == "gemini":
        options = data.get("candidates") or []
        blocks = options[0].get("content", {}).get("parts", []) if options else []
    else:
        options = data.get("choices") or []
        content = options[0].get("message", {}).get("content") if options else None
        blocks = content if isinstance(content, list) else [{"text": content}]
    if not options:
        raise RuntimeError(f"{provider} guide response had no results.")

    texts = [block.get("text") for block in blocks if isinstance(block, dict)]
    guide = "\n".join(text.strip() for text in texts if isinstance(text, str) and text.strip())
    if not guide:
        raise RuntimeError(f"{provider} guide response had no text.")
    return guide
