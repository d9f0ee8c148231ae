"""Configuration loading and dataclasses."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml


@dataclass
class AppConfig:
    title: str = "SolveItSmart"
    host: str = "127.0.0.1"
    port: int = 7860
    concurrency_limit: int = 1
    log_level: str = "INFO"
    offline_mode: bool = True
    gpu_index: int | None = 0
    problems_path: str = "data/problems.json"


@dataclass
class ModelSpec:
    local_path: str = "models/gemma-3n-E2B-it"
    compression: str | None = "4bit"
    layer_cache_dir: str = "./cache/airllm_layers"


@dataclass
class GenerationDefaults:
    max_new_tokens: int = 768
    tokens_per_step: int = 4
    temperature: float = 0.0
    top_p: float = 1.0
    do_sample: bool = False
    max_context: int = 2048


@dataclass
class SessionLimits:
    max_prompt_chars: int = 1855
    max_user_input_chars: int = 500
    max_context_tokens: int = 2048
    token_reserve: int = 300
    max_steps: int = 1000


@dataclass
class RootConfig:
    app: AppConfig
    model: ModelSpec
    generation_defaults: GenerationDefaults
    limits: SessionLimits


def default_config() -> RootConfig:
    return RootConfig(
        app=AppConfig(),
        model=ModelSpec(),
        generation_defaults=GenerationDefaults(),
        limits=SessionLimits(),
    )


def _get(data: dict[str, Any], key: str, default: Any) -> Any:
    return data.get(key, default) if isinstance(data, dict) else default


def load_config(path: str) -> RootConfig:
    with open(path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    app_raw = _get(raw, "app", {})
    model_raw = _get(raw, "model", {})
    gen_raw = _get(raw, "generation_defaults", {})
    limits_raw = _get(raw, "limits", {})

    app = AppConfig(
        title=_get(app_raw, "title", AppConfig.title),
        host=_get(app_raw, "host", AppConfig.host),
        port=int(_get(app_raw, "port", AppConfig.port)),
        concurrency_limit=int(_get(app_raw, "concurrency_limit", AppConfig.concurrency_limit)),
        log_level=str(_get(app_raw, "log_level", AppConfig.log_level)),
        offline_mode=bool(_get(app_raw, "offline_mode", AppConfig.offline_mode)),
        gpu_index=_get(app_raw, "gpu_index", AppConfig.gpu_index),
        problems_path=_get(app_raw, "problems_path", AppConfig.problems_path),
    )

    model = ModelSpec(
        local_path=_get(model_raw, "local_path", ModelSpec.local_path),
        compression=_get(model_raw, "compression", ModelSpec.compression),
        layer_cache_dir=_get(model_raw, "layer_cache_dir", ModelSpec.layer_cache_dir),
    )

    gen = GenerationDefaults(
        max_new_tokens=int(_get(gen_raw, "max_new_tokens", GenerationDefaults.max_new_tokens)),
        tokens_per_step=int(_get(gen_raw, "tokens_per_step", GenerationDefaults.tokens_per_step)),
        temperature=float(_get(gen_raw, "temperature", GenerationDefaults.temperature)),
        top_p=float(_get(gen_raw, "top_p", GenerationDefaults.top_p)),
        do_sample=bool(_get(gen_raw, "do_sample", GenerationDefaults.do_sample)),
        max_context=int(_get(gen_raw, "max_context", GenerationDefaults.max_context)),
    )

    limits = SessionLimits(
        max_prompt_chars=int(_get(limits_raw, "max_prompt_chars", SessionLimits.max_prompt_chars)),
        max_user_input_chars=int(
            _get(limits_raw, "max_user_input_chars", SessionLimits.max_user_input_chars)
        ),
        max_context_tokens=int(
            _get(limits_raw, "max_context_tokens", SessionLimits.max_context_tokens)
        ),
        token_reserve=int(_get(limits_raw, "token_reserve", SessionLimits.token_reserve)),
        max_steps=int(_get(limits_raw, "max_steps", SessionLimits.max_steps)),
    )

    return RootConfig(app=app, model=model, generation_defaults=gen, limits=limits)
