"""Language-model backed skill scoring and insight generation (OpenAI-compatible API)."""
from __future__ import annotations

import re

import openai
from openai import OpenAI

from jobmatch.config import (
    INSIGHT_MAX_WORDS,
    PLACEHOLDER_API_KEYS,
    MatchSettings,
    get_env,
)
from jobmatch.log import get_logger
from jobmatch.models import JobPosting, Outcome, SkillVerdict
from jobmatch.retry import RetryPolicy

log = get_logger(__name__)

_SCORE_RE = re.compile(r"SCORE:\s*(\d+)", re.IGNORECASE)
_REASON_RE = re.compile(r"REASON:\s*(.+)", re.IGNORECASE)

DESCRIPTION_EXCERPT = 500


def parse_skill_verdict(text: str) -> SkillVerdict | None:
    """Read ``SCORE: <n>`` / ``REASON: <text>`` lines; None when no score is present."""
    score_match = _SCORE_RE.search(text or "")
    if not score_match:
        return None
    score = max(0, min(int(score_match.group(1)), 100))
    reason_match = _REASON_RE.search(text)
    reason = reason_match.group(1).strip() if reason_match else "Skills alignment identified"
    return SkillVerdict(score=score, reason=reason)


def skill_prompt(skills: list[str], job: JobPosting) -> str:
    return (
        "Analyze the match between user skills and job requirements:\n"
        f"User Skills: {', '.join(skills)}\n"
        f"Job: {job.title} at {job.company}\n"
        f"Job Description: {job.description[:DESCRIPTION_EXCERPT]}\n"
        f"Requirements: {', '.join(job.requirements)}\n"
        "Rate the skill match from 0-100 and give a brief reason.\n"
        "Reply exactly as:\nSCORE: <0-100>\nREASON: <one sentence>"
    )


class DisabledLanguageModel:
    """Stand-in used when no API key is configured; every call degrades."""

    enabled = False

    def score_skill_match(self, skills: list[str], job: JobPosting) -> Outcome[SkillVerdict]:
        return Outcome.fallback("language model disabled")

    def generate_insight(self, prompt: str) -> Outcome[str]:
        return Outcome.fallback("language model disabled")


# Transient provider errors worth a second try; timeouts are not retried.
RETRYABLE_ERRORS = (openai.RateLimitError, openai.InternalServerError)


class LanguageModelService:
    enabled = True

    def __init__(self, client: OpenAI, model: str, retry_policy: RetryPolicy | None = None) -> None:
        self.client = client
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy(retryable=RETRYABLE_ERRORS)

    def _complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        r = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return (r.choices[0].message.content or "").strip()

    def _attempt(self, prompt: str, max_tokens: int, temperature: float) -> Outcome[str]:
        try:
            text = self.retry_policy.run(
                f"{self.model} completion", self._complete, prompt, max_tokens, temperature
            )
        except openai.APITimeoutError:
            log.warning("Language model timed out (%s)", self.model)
            return Outcome.fallback("timeout")
        except Exception as exc:
            log.warning("Language model call failed (%s)", exc)
            return Outcome.fallback(f"service error: {exc.__class__.__name__}")
        return Outcome.success(text)

    def score_skill_match(self, skills: list[str], job: JobPosting) -> Outcome[SkillVerdict]:
        raw = self._attempt(skill_prompt(skills, job), max_tokens=100, temperature=0.3)
        if not raw.ok:
            return Outcome.fallback(raw.detail)
        verdict = parse_skill_verdict(raw.value or "")
        if verdict is None:
            log.warning("Malformed skill score from language model: %r", (raw.value or "")[:120])
            return Outcome.fallback("malformed response")
        return Outcome.success(verdict)

    def generate_insight(self, prompt: str) -> Outcome[str]:
        raw = self._attempt(prompt, max_tokens=50, temperature=0.7)
        if not raw.ok:
            return Outcome.fallback(raw.detail)
        text = (raw.value or "").strip().strip('"').strip()
        if not text:
            return Outcome.fallback("empty response")
        words = text.split()
        if len(words) > INSIGHT_MAX_WORDS:
            log.debug("Trimming overlong insight (%d words)", len(words))
            text = " ".join(words[:INSIGHT_MAX_WORDS]).rstrip(",;:") + "..."
        return Outcome.success(text)


def build_language_model(settings: MatchSettings) -> LanguageModelService | DisabledLanguageModel:
    api_key = get_env("OPENAI_API_KEY")
    if api_key in PLACEHOLDER_API_KEYS:
        log.info("No OPENAI_API_KEY configured; skill and insight scoring use fallbacks")
        return DisabledLanguageModel()
    client = OpenAI(
        api_key=api_key,
        base_url=settings.llm_base_url or None,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )
    log.info("Language model enabled: %s (timeout %.1fs)", settings.llm_model, settings.llm_timeout_seconds)
    policy = RetryPolicy(max_attempts=settings.llm_max_attempts, retryable=RETRYABLE_ERRORS)
    return LanguageModelService(client, settings.llm_model, policy)
