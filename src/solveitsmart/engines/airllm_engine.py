"""AirLLM-backed step-wise engine context."""
from __future__ import annotations

import logging
import os
from typing import Any

import torch
from airllm import AutoModel

from ..config import GenerationDefaults, ModelSpec
from .base import ContextFactory, DeviceSpec, EngineInitError

logger = logging.getLogger(__name__)


def build_device(gpu_index: int | None) -> DeviceSpec:
    if torch.cuda.is_available() and gpu_index is not None and gpu_index >= 0:
        return DeviceSpec(kind="cuda", gpu_index=gpu_index)
    return DeviceSpec(kind="cpu", gpu_index=None)


def render_prompt(tokenizer: Any, prompt: str) -> str:
    messages = [{"role": "user", "content": prompt}]
    if hasattr(tokenizer, "apply_chat_template"):
        return tokenizer.apply_chat_template(messages, tokenize=False, add_generation_prompt=True)
    return f"User: {prompt}\nAssistant:"


class AirLLMContext:
    """Generates a completion a few tokens at a time.

    Each ``completion_loop`` call extends the running sequence by up to
    ``tokens_per_step`` tokens and returns only the newly decoded text.
    """

    def __init__(self, model: Any, tokenizer: Any, device: torch.device, gen: GenerationDefaults) -> None:
        self._model = model
        self._tokenizer = tokenizer
        self._device = device
        self._gen = gen
        self._sequence: torch.Tensor | None = None
        self._prompt_tokens = 0
        self._emitted = ""
        self._done = True

    @classmethod
    def create(
        cls, model_path: str, spec: ModelSpec, gen: GenerationDefaults, device: DeviceSpec
    ) -> "AirLLMContext":
        if not os.path.exists(model_path):
            raise EngineInitError(f"Model path not found: {model_path}")
        if device.kind == "cuda" and torch.cuda.is_available():
            index = device.gpu_index if device.gpu_index is not None else 0
            torch_device = torch.device(f"cuda:{index}")
        else:
            torch_device = torch.device("cpu")

        if spec.layer_cache_dir:
            os.makedirs(spec.layer_cache_dir, exist_ok=True)

        try:
            model = AutoModel.from_pretrained(
                model_path,
                layer_shards_saving_path=spec.layer_cache_dir,
                compression=spec.compression,
            )
        except Exception as exc:  # noqa: BLE001
            raise EngineInitError(f"Failed to load model from {model_path}: {exc}") from exc

        tokenizer = getattr(model, "tokenizer", None)
        if tokenizer is None:
            raise EngineInitError("Model tokenizer not available")
        logger.info("Loaded %s on %s", model_path, torch_device)
        return cls(model, tokenizer, torch_device, gen)

    @property
    def is_done(self) -> bool:
        return self._done

    def clear(self) -> None:
        self._sequence = None
        self._emitted = ""
        self._done = True

    def reset_state(self) -> None:
        self._prompt_tokens = 0
        if self._device.type == "cuda":
            torch.cuda.empty_cache()

    def completion_init(self, prompt: str) -> None:
        rendered = render_prompt(self._tokenizer, prompt)
        inputs = self._tokenizer(
            rendered,
            return_tensors="pt",
            truncation=True,
            max_length=self._gen.max_context,
        )
        self._sequence = inputs["input_ids"].to(self._device)
        self._prompt_tokens = int(self._sequence.shape[-1])
        self._emitted = ""
        self._done = False

    def completion_loop(self) -> str:
        if self._done or self._sequence is None:
            return ""

        output_ids = self._model.generate(
            input_ids=self._sequence,
            max_new_tokens=self._gen.tokens_per_step,
            temperature=self._gen.temperature,
            top_p=self._gen.top_p,
            do_sample=self._gen.do_sample,
            use_cache=False,
        )
        if isinstance(output_ids, (list, tuple)):
            if len(output_ids) == 0:
                raise RuntimeError("Empty output from model")
            output_ids = output_ids[0]
        if output_ids.ndim == 1:
            output_ids = output_ids.unsqueeze(0)

        previous_len = int(self._sequence.shape[-1])
        new_ids = output_ids[0][previous_len:]
        self._sequence = output_ids
        generated = int(output_ids.shape[-1]) - self._prompt_tokens

        eos_id = getattr(self._tokenizer, "eos_token_id", None)
        hit_eos = eos_id is not None and bool((new_ids == eos_id).any())
        if new_ids.numel() == 0 or hit_eos or generated >= self._gen.max_new_tokens:
            self._done = True

        text = self._tokenizer.decode(output_ids[0][self._prompt_tokens:], skip_special_tokens=True)
        fragment = text[len(os.path.commonprefix([text, self._emitted])):]
        self._emitted = text
        return fragment

    def close(self) -> None:
        self.clear()
        self._model = None
        self._tokenizer = None
        if torch.cuda.is_available():
            torch.cuda.empty_cache()


def make_context_factory(spec: ModelSpec, gen: GenerationDefaults, device: DeviceSpec) -> ContextFactory:
    def _factory(model_path: str) -> AirLLMContext:
        return AirLLMContext.create(model_path, spec, gen, device)

    return _factory
