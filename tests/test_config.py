from pathlib import Path

from solveitsmart.config import SessionLimits, default_config, load_config

ROOT = Path(__file__).resolve().parents[1]


def test_load_config_fills_defaults(tmp_path) -> None:
    """Missing sections and keys fall back to dataclass defaults."""
    path = tmp_path / "config.yaml"
    path.write_text("app:\n  port: 9000\n  log_level: DEBUG\nlimits:\n  max_steps: 50\n")

    cfg = load_config(str(path))

    assert cfg.app.port == 9000
    assert cfg.app.log_level == "DEBUG"
    assert cfg.app.host == "127.0.0.1"
    assert cfg.limits.max_steps == 50
    assert cfg.limits.max_prompt_chars == 1855
    assert cfg.generation_defaults.tokens_per_step == 4
    assert cfg.model.compression == "4bit"


def test_load_config_empty_file(tmp_path) -> None:
    """An empty file gives the default configuration."""
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(str(path)) == default_config()


def test_default_limits() -> None:
    limits = SessionLimits()
    assert (limits.max_user_input_chars, limits.max_context_tokens, limits.token_reserve) == (
        500,
        2048,
        300,
    )


def test_bundled_config_loads() -> None:
    """The sample config shipped with the repo parses."""
    cfg = load_config(str(ROOT / "configs" / "solveitsmart.yaml"))
    assert cfg.app.problems_path == "data/problems.json"
    assert cfg.limits.max_steps == 1000
