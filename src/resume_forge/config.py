"""Application configuration loaded from config.yaml and the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from resume_forge.errors import ConfigError

API_KEY_ENV = "GEMINI_API_KEY"
MODEL_ENV = "GEMINI_MODEL"
MAX_TOKENS_ENV = "GEMINI_MAX_OUTPUT_TOKENS"


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1/models"
    max_output_tokens: int = 4096
    tailor_temperature: float = 0.2
    critique_temperature: float = 0.2
    revise_temperature: float = 0.2
    timeout: float | None = None

    def __post_init__(self):
        if self.max_output_tokens < 1:
            raise ConfigError(f"max_output_tokens must be >= 1, got {self.max_output_tokens}")
        for name in ("tailor_temperature", "critique_temperature", "revise_temperature"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be between 0.0 and 1.0, got {value}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class RenderConfig:
    template_path: str | None = None
    page_format: str = "A4"
    margin: str = "12mm"
    markdown_extensions: tuple[str, ...] = ()
    # Relative template paths are resolved against this directory (set to
    # the directory of the loaded config.yaml).
    base_dir: str | None = None

    @property
    def resolved_template_path(self) -> Path | None:
        if not self.template_path:
            return None
        path = Path(self.template_path).expanduser()
        if not path.is_absolute() and self.base_dir:
            path = Path(self.base_dir) / path
        return path


@dataclass(frozen=True)
class PipelineConfig:
    output_dir: str = "output"
    document_title: str = "Tailored Resume"

    @property
    def resolved_output_dir(self) -> Path:
        return Path(self.output_dir).expanduser()


@dataclass(frozen=True)
class AppConfig:
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)


def _find_config_file() -> Path | None:
    candidates = [
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parent.parent.parent / "config.yaml",
    ]
    for c in candidates:
        if c.exists():
            return c
    return None


def _read_yaml(path: Path) -> dict:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root in {path} must be a mapping, got {type(raw).__name__}")
    return raw


def _mapping(raw: dict, name: str) -> dict:
    data = raw.get(name) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid '{name}' section in config: expected a mapping, got {type(data).__name__}")
    return dict(data)


def _section(data: dict, name: str, cls):
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid '{name}' section in config: {e}") from e


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    *,
    require_api_key: bool = True,
) -> AppConfig:
    """Build the application config.

    YAML values come from ``path`` (or the first ``config.yaml`` found in the
    working directory / project root). The environment overrides the model
    and token cap and supplies the API key, which is mandatory unless
    ``require_api_key`` is False (rendering-only commands).

    Raises ConfigError for unreadable or malformed YAML as well as for
    invalid values.
    """
    if env is None:
        env = os.environ
    if path is None:
        path = _find_config_file()

    raw: dict = {}
    config_dir: Path | None = None
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = _read_yaml(p)
            config_dir = p.resolve().parent

    gemini_raw = _mapping(raw, "gemini")
    api_key = env.get(API_KEY_ENV, "").strip()
    if not api_key and require_api_key:
        raise ConfigError(f"{API_KEY_ENV} missing in environment.")
    gemini_raw["api_key"] = api_key
    if env.get(MODEL_ENV):
        gemini_raw["model"] = env[MODEL_ENV]
    if env.get(MAX_TOKENS_ENV):
        try:
            gemini_raw["max_output_tokens"] = int(env[MAX_TOKENS_ENV])
        except ValueError as e:
            raise ConfigError(
                f"{MAX_TOKENS_ENV} must be an integer, got {env[MAX_TOKENS_ENV]!r}"
            ) from e

    render_raw = _mapping(raw, "render")
    extensions = render_raw.get("markdown_extensions") or ()
    if not isinstance(extensions, (list, tuple)):
        raise ConfigError("Invalid 'render' section in config: markdown_extensions must be a list")
    render_raw["markdown_extensions"] = tuple(extensions)
    render_raw["base_dir"] = str(config_dir) if config_dir else None

    return AppConfig(
        gemini=_section(gemini_raw, "gemini", GeminiConfig),
        render=_section(render_raw, "render", RenderConfig),
        pipeline=_section(_mapping(raw, "pipeline"), "pipeline", PipelineConfig),
    )
