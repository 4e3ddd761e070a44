"""Mentor configuration loader.

Priority (high → low):
  1. CLI flags  (applied by the caller after load_config)
  2. Environment variables  (MENTOR_GENERATION_MODEL, MENTOR_EMBEDDING_MODEL, MENTOR_DB)
  3. Per-project mentor.yaml  (current working directory)
  4. Global ~/.mentor/config.yaml  (model defaults; API keys are rejected)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
YAML is always parsed with yaml.safe_load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".mentor"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "mentor.yaml"

# Matches api_key, api-key, api_secret, *_token, token, *_secret, secret,
# password, passwd, credential(s). Does NOT match max_tokens or max_steps.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "generation", "retrieval", "chat", "database"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (mentor.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536


@dataclass
class GenerationCfg:
    """Chat model configuration (mentor.yaml: generation:).

    Attributes:
        model: LiteLLM model string used for the conversation loop.
        max_steps: Maximum model calls per user turn (tool rounds included).
        temperature: Sampling temperature.
        max_tokens: Output token cap per model call.
    """

    model: str = "openai/gpt-4o"
    max_steps: int = 3
    temperature: float = 0.0
    max_tokens: int = 1024


@dataclass
class RetrievalCfg:
    """Knowledge lookup configuration (mentor.yaml: retrieval:)."""

    top_k: int = 4
    min_similarity: float = 0.5


@dataclass
class ChatCfg:
    """Transcript defaults (mentor.yaml: chat:)."""

    default_title: str = "New Conversation"


@dataclass
class DatabaseCfg:
    """Database location (mentor.yaml: database:)."""

    path: str = ".mentor.db"


@dataclass
class MentorConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    chat: ChatCfg = field(default_factory=ChatCfg)
    database: DatabaseCfg = field(default_factory=DatabaseCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: MentorConfig) -> None:
    """Raise ConfigError for values the assistant cannot run with."""
    if cfg.generation.max_steps < 1:
        raise ConfigError(
            f"generation.max_steps must be >= 1, got {cfg.generation.max_steps}"
        )
    if cfg.retrieval.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {cfg.retrieval.top_k}")
    if not -1.0 <= cfg.retrieval.min_similarity <= 1.0:
        raise ConfigError(
            "retrieval.min_similarity must be within [-1, 1], "
            f"got {cfg.retrieval.min_similarity}"
        )
    if cfg.embedding.dimensions < 1:
        raise ConfigError(
            f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> MentorConfig:
    """Build a *MentorConfig* from a merged raw YAML dict."""
    cfg = MentorConfig()

    try:
        if "embedding" in data:
            e = data["embedding"] or {}
            cfg.embedding = EmbeddingCfg(
                model=str(e.get("model", cfg.embedding.model)),
                dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            )

        if "generation" in data:
            g = data["generation"] or {}
            cfg.generation = GenerationCfg(
                model=str(g.get("model", cfg.generation.model)),
                max_steps=int(g.get("max_steps", cfg.generation.max_steps)),
                temperature=float(g.get("temperature", cfg.generation.temperature)),
                max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            )

        if "retrieval" in data:
            r = data["retrieval"] or {}
            cfg.retrieval = RetrievalCfg(
                top_k=int(r.get("top_k", cfg.retrieval.top_k)),
                min_similarity=float(
                    r.get("min_similarity", cfg.retrieval.min_similarity)
                ),
            )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric value in config: {exc}") from exc

    if "chat" in data:
        c = data["chat"] or {}
        cfg.chat = ChatCfg(
            default_title=str(c.get("default_title", cfg.chat.default_title)),
        )

    if "database" in data:
        d = data["database"] or {}
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    return cfg


def _apply_env_overrides(cfg: MentorConfig) -> MentorConfig:
    """Apply MENTOR_* environment variable overrides (layer 2)."""
    if model := os.environ.get("MENTOR_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("MENTOR_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("MENTOR_DB"):
        cfg.database.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> MentorConfig:
    """Load and return a merged *MentorConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *mentor.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *MentorConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            numeric setting is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg
