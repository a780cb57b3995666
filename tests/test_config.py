"""Tests for loading and validating the YAML config."""

import pytest
from pydantic import ValidationError

from geniesite import config as config_module
from geniesite.config import CONFIG_ENV_VAR, GeneratorConfig, get_config, load_config


@pytest.fixture(autouse=True)
def reset_cache(monkeypatch):
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def test_load_from_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("port: 8080\nallowed_origins: ['*']\nthought_delay: 0\n")

    config = load_config(str(path))

    assert config.port == 8080
    assert config.allowed_origins == ["*"]
    assert config.thought_delay == 0
    assert get_config() is config


def test_env_var_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "hosted.yaml"
    path.write_text("host: 0.0.0.0\nport: 8080\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert load_config().host == "0.0.0.0"


def test_missing_file_uses_defaults(tmp_path):
    config = load_config(str(tmp_path / "absent.yaml"))
    assert config == GeneratorConfig()
    assert config.port == 5000


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(str(path)) == GeneratorConfig()


def test_prompt_template_needs_placeholder():
    with pytest.raises(ValidationError):
        GeneratorConfig(prompt_template="Build something nice")


def test_thinking_budget_below_max_tokens():
    with pytest.raises(ValidationError):
        GeneratorConfig(max_tokens=4000, thinking_budget=4000)


def test_progress_cap_at_most_100():
    with pytest.raises(ValidationError):
        GeneratorConfig(progress_cap=120)


def test_render_prompt():
    config = GeneratorConfig(prompt_template='Site: "{prompt}" {other}')
    assert config.render_prompt("a café") == 'Site: "a café" {other}'
