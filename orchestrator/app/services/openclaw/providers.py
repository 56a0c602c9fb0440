"""Closed catalog of model providers and model selections.

Each provider carries the request key callers use, the environment variable
name the OpenClaw workload expects, and the auth profile it is written under.
Each model selection carries its OpenClaw model string and its provider.

Unrecognized model selections fall back to ``DEFAULT_MODEL``. This is a
deliberate policy kept for compatibility with callers that send free-form
values; use ``ModelChoice.parse(value, strict=True)`` to reject them instead.
"""

from __future__ import annotations

from enum import Enum


class Provider(Enum):
    """Model providers whose API keys may be injected into an agent."""

    GOOGLE = ("google", "GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY")
    OPENAI = ("openai", "OPENAI_API_KEY", "OPENAI_API_KEY")
    ANTHROPIC = ("anthropic", "ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY")
    DEEPSEEK = ("deepseek", "DEEPSEEK_API_KEY", "DEEPSEEK_API_KEY")

    def __init__(self, slug: str, request_env_key: str, runtime_env_key: str) -> None:
        self.slug = slug
        self.request_env_key = request_env_key
        self.runtime_env_key = runtime_env_key

    @property
    def profile_name(self) -> str:
        return f"{self.slug}:default"


class ModelChoice(Enum):
    """Model selections accepted in the ``AI_MODEL`` request key."""

    GEMINI_FLASH = ("gemini-flash", "google/gemini-3-flash", Provider.GOOGLE)
    GPT_4O = ("gpt-4o", "openai/gpt-4o", Provider.OPENAI)
    CLAUDE_SONNET = (
        "claude-sonnet",
        "anthropic/claude-sonnet-4-20250514",
        Provider.ANTHROPIC,
    )
    DEEPSEEK = ("deepseek", "deepseek/deepseek-chat", Provider.DEEPSEEK)

    def __init__(self, model_id: str, openclaw_model: str, provider: Provider) -> None:
        self.model_id = model_id
        self.openclaw_model = openclaw_model
        self.provider = provider

    @classmethod
    def parse(cls, value: str | None, *, strict: bool = False) -> ModelChoice:
        """Resolve a request value to a model choice.

        Missing or unknown values resolve to ``DEFAULT_MODEL`` unless ``strict``
        is set, in which case unknown values raise ``ValueError``.
        """
        normalized = (value or "").strip().lower()
        if not normalized:
            return DEFAULT_MODEL
        for choice in cls:
            if choice.model_id == normalized:
                return choice
        if strict:
            supported = ", ".join(choice.model_id for choice in cls)
            raise ValueError(f"Unsupported model {value!r}; expected one of: {supported}.")
        return DEFAULT_MODEL


DEFAULT_MODEL = ModelChoice.GEMINI_FLASH
