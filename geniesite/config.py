"""Configuration loader — reads config.yaml, validates with Pydantic.

Local and hosted deployments run the same relay; they differ only in the
values here (allowed CORS origins, bind address, port).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_ENV_VAR = "GENIESITE_CONFIG"

DEFAULT_PROMPT_TEMPLATE = """Create a complete HTML website based on: "{prompt}".

Requirements:
- Single HTML file with embedded CSS and JavaScript
- Modern, responsive design
- Use semantic HTML5 elements and give every section a descriptive id
- Return only the HTML document, starting with <!DOCTYPE html>"""


class GeneratorConfig(BaseModel):
    """Top-level server configuration."""

    # Server & CORS
    host: str = "127.0.0.1"
    port: int = Field(default=5000, ge=1, le=65535)
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Upstream model
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 32000
    thinking_budget: int = 8000
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    # Stream pacing & progress heuristic
    thought_delay: float = Field(default=0.04, ge=0)
    progress_step: float = Field(default=2, gt=0)
    progress_cap: float = Field(default=95, gt=0, le=100)

    @field_validator("prompt_template")
    @classmethod
    def must_reference_prompt(cls, v: str) -> str:
        if "{prompt}" not in v:
            raise ValueError("prompt_template must contain a {prompt} placeholder")
        return v

    @model_validator(mode="after")
    def validate_thinking_budget(self) -> GeneratorConfig:
        if self.thinking_budget >= self.max_tokens:
            raise ValueError(
                f"thinking_budget ({self.thinking_budget}) must be lower than "
                f"max_tokens ({self.max_tokens})"
            )
        return self

    def render_prompt(self, prompt: str) -> str:
        """Fill the instruction template with the user's description."""
        return self.prompt_template.replace("{prompt}", prompt)


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: GeneratorConfig | None = None


def load_config(path: str | None = None) -> GeneratorConfig:
    """Read the YAML config from disk, validate, and cache.

    The path defaults to $GENIESITE_CONFIG, then config.yaml. A missing file
    is not an error: the built-in defaults are used instead.
    """
    global _config
    config_file = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)

    if config_file.exists():
        raw = yaml.safe_load(config_file.read_text()) or {}
        _config = GeneratorConfig(**raw)
        logger.info(f"Loaded config from {config_file.resolve()}")
    else:
        _config = GeneratorConfig()
        logger.info(f"No config file at {config_file.resolve()}, using defaults")

    return _config


def get_config() -> GeneratorConfig:
    """Return cached config, loading it on first use."""
    if _config is None:
        return load_config()
    return _config


def set_config(config: GeneratorConfig) -> None:
    """Replace the cached config, e.g. with a test configuration."""
    global _config
    _config = config
