"""Configuration dataclasses for the market assistant core.

Each config is a frozen ``dataclass`` with a ``validate()`` method that
raises ``ValueError`` on invalid combinations, plus ``to_dict()`` /
``from_dict()`` for JSON round-trips.  Unknown keys in ``from_dict`` input
are ignored.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any


# ===================================================================== #
#  Context Window Configuration                                          #
# ===================================================================== #

@dataclass(frozen=True)
class ContextWindowConfig:
    """Budget governing chat-session compaction.

    Attributes
    ----------
    max_context_messages:
        Compaction triggers once the log grows past this many messages.
    min_messages_after_compression:
        Half of this many most-recent non-system messages are always kept.
        Logs with at most this many non-system messages are never compacted.
    important_messages_count:
        How many older messages are kept by importance score.
    summary_input_char_limit:
        Character budget for the text sent to the summarizer.
    """

    max_context_messages: int = 100
    min_messages_after_compression: int = 20
    important_messages_count: int = 10
    summary_input_char_limit: int = 4000

    @property
    def recent_reserve(self) -> int:
        return self.min_messages_after_compression // 2

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        if self.max_context_messages < 1:
            raise ValueError(
                f"max_context_messages must be >= 1, got {self.max_context_messages}"
            )
        if self.min_messages_after_compression < 0:
            raise ValueError(
                "min_messages_after_compression must be >= 0, "
                f"got {self.min_messages_after_compression}"
            )
        if self.important_messages_count < 0:
            raise ValueError(
                f"important_messages_count must be >= 0, got {self.important_messages_count}"
            )
        if self.summary_input_char_limit < 1:
            raise ValueError(
                f"summary_input_char_limit must be >= 1, got {self.summary_input_char_limit}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextWindowConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Pipeline Configuration                                                #
# ===================================================================== #

@dataclass(frozen=True)
class PipelineConfig:
    """Parameters for the three-stage selection pipeline.

    Attributes
    ----------
    stage_timeout:
        Seconds allowed for each model or screening call; ``None`` waits
        indefinitely.
    max_recommendations_cap:
        Hard cap on recommendations kept from the analysis stage.
    """

    stage_timeout: float | None = None
    max_recommendations_cap: int = 8

    def validate(self) -> None:
        if self.stage_timeout is not None and self.stage_timeout <= 0:
            raise ValueError(f"stage_timeout must be > 0, got {self.stage_timeout}")
        if not 1 <= self.max_recommendations_cap <= 8:
            raise ValueError(
                f"max_recommendations_cap must be in [1, 8], got {self.max_recommendations_cap}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  LLM Settings                                                          #
# ===================================================================== #

_VALID_PROVIDERS = frozenset({"openai", "anthropic"})

_ENV_PREFIX = "MARKET_ASSISTANT_"


@dataclass(frozen=True)
class LLMSettings:
    """Which chat model backend to build role models from.

    Attributes
    ----------
    provider:
        ``"openai"`` (also any OpenAI-compatible endpoint via ``base_url``)
        or ``"anthropic"``.
    model:
        Model identifier passed to the provider.
    api_key:
        Provider key; empty means "let the provider read its own env var".
    base_url:
        Optional endpoint override for OpenAI-compatible servers.
    timeout:
        Per-request transport timeout in seconds.
    extra:
        Provider-specific keyword arguments passed through verbatim.
    """

    provider: str = "openai"
    model: str = ""
    api_key: str = ""
    base_url: str = ""
    timeout: float = 60.0
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.extra is None:
            object.__setattr__(self, "extra", {})

    def validate(self) -> None:
        if self.provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"provider must be one of {sorted(_VALID_PROVIDERS)}, "
                f"got '{self.provider}'"
            )
        if not self.model:
            raise ValueError("model must not be empty")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["api_key"] = "***" if self.api_key else ""
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LLMSettings:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> LLMSettings:
        """Build settings from ``MARKET_ASSISTANT_*`` environment variables."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "extra":
                continue
            raw = env.get(_ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            data[f.name] = float(raw) if f.name == "timeout" else raw
        return cls.from_dict(data)


# ===================================================================== #
#  Top-level bundle                                                      #
# ===================================================================== #

@dataclass(frozen=True)
class AppConfig:
    """All configuration sections in one object."""

    context: ContextWindowConfig = field(default_factory=ContextWindowConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    llm: LLMSettings | None = None

    def validate(self) -> None:
        self.context.validate()
        self.pipeline.validate()
        if self.llm is not None:
            self.llm.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "context": self.context.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "llm": self.llm.to_dict() if self.llm is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        llm_data = data.get("llm")
        cfg = cls(
            context=ContextWindowConfig.from_dict(data.get("context") or {}),
            pipeline=PipelineConfig.from_dict(data.get("pipeline") or {}),
            llm=LLMSettings.from_dict(llm_data) if llm_data else None,
        )
        cfg.validate()
        return cfg


def load_config_from_json(path: str) -> AppConfig:
    """Load an :class:`AppConfig` from a JSON file."""
    with open(path, encoding="utf-8") as fh:
        return AppConfig.from_dict(json.load(fh))
