"""SolveItSmart UI entrypoint."""
from __future__ import annotations

import argparse
import logging
import os
import threading
from typing import Any

import gradio as gr

from .config import AppConfig, RootConfig, default_config, load_config
from .engines.airllm_engine import build_device, make_context_factory
from .registry import Problem, ProblemRegistry, load_problems
from .session import SessionManager, open_problem
from .ui.state import stream_flow

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SolveItSmart UI")
    parser.add_argument("--config", default="configs/solveitsmart.yaml")
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--title")
    parser.add_argument("--model-path")
    parser.add_argument("--problems")
    parser.add_argument("--gpu-index", type=int)
    parser.add_argument("--log-level")
    parser.add_argument("--offline", action="store_true")
    parser.add_argument("--share", action="store_true")
    return parser.parse_args()


def load_root_config(path: str) -> RootConfig:
    if not os.path.exists(path):
        return default_config()
    return load_config(path)


def apply_overrides(cfg: RootConfig, args: argparse.Namespace) -> RootConfig:
    if args.title:
        cfg.app.title = args.title
    if args.host:
        cfg.app.host = args.host
    if args.port is not None:
        cfg.app.port = args.port
    if args.model_path:
        cfg.model.local_path = args.model_path
    if args.problems:
        cfg.app.problems_path = args.problems
    if args.gpu_index is not None:
        cfg.app.gpu_index = args.gpu_index
    if args.log_level:
        cfg.app.log_level = args.log_level
    if args.offline:
        cfg.app.offline_mode = True
    return cfg


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def ensure_offline(cfg: AppConfig) -> None:
    if cfg.offline_mode:
        os.environ.setdefault("HF_HUB_OFFLINE", "1")
        os.environ.setdefault("TRANSFORMERS_OFFLINE", "1")


def _problem_markdown(problem: Problem) -> str:
    lines = [f"### Problem {problem.id}", "", problem.body]
    if problem.figure_description:
        lines += ["", f"*Figure:* {problem.figure_description}"]
    if problem.techniques:
        lines += ["", f"**Technique:** {problem.technique_label}"]
    return "\n".join(lines)


def build_app(cfg: RootConfig, session: SessionManager, registry: ProblemRegistry) -> gr.Blocks:
    problem_choices = [(f"Problem {p.id}", p.id) for p in registry.list()]

    with gr.Blocks(title=cfg.app.title) as demo:
        gr.Markdown(f"# {cfg.app.title}")

        with gr.Row():
            problem_dd = gr.Dropdown(label="Problem", choices=problem_choices, value=None)
            open_btn = gr.Button("Solve")
        problem_md = gr.Markdown("No problem selected.")
        chatbot = gr.Chatbot(label="Chat")
        user_input = gr.Textbox(
            label="Message",
            placeholder="To proceed effectively, please restrict your question to the solution or the techniques used.",
        )
        with gr.Row():
            send_btn = gr.Button("Send")
            reset_btn = gr.Button("Reset chat")

        def _open_problem(problem_id: str | None):
            if not problem_id:
                yield [], "**error:** select a problem"
                return
            try:
                problem = registry.get(problem_id)
            except KeyError as exc:
                yield [], f"**error:** {exc}"
                return
            header = _problem_markdown(problem)
            messages: list[dict[str, Any]] = [
                {"role": "user", "content": problem.body},
                {"role": "assistant", "content": ""},
            ]
            for text in stream_flow(session, lambda: open_problem(session, problem)):
                messages[-1] = {"role": "assistant", "content": text}
                yield messages, header

        def _open_from_link(request: gr.Request):
            problem_id = request.query_params.get("problem") if request else None
            if not problem_id:
                yield [], "No problem selected.", None
                return
            for messages, header in _open_problem(problem_id):
                yield messages, header, problem_id

        def _handle_chat(message: str, history: list[Any]):
            messages = list(history or [])
            if not message:
                yield messages, ""
                return
            messages = messages + [
                {"role": "user", "content": message},
                {"role": "assistant", "content": ""},
            ]
            for text in stream_flow(session, lambda: session.continue_conversation(message)):
                messages[-1] = {"role": "assistant", "content": text}
                yield messages, ""

        def _reset_chat():
            session.reset_chat()
            return [], ""

        open_btn.click(_open_problem, inputs=[problem_dd], outputs=[chatbot, problem_md])
        send_btn.click(_handle_chat, inputs=[user_input, chatbot], outputs=[chatbot, user_input])
        user_input.submit(_handle_chat, inputs=[user_input, chatbot], outputs=[chatbot, user_input])
        reset_btn.click(_reset_chat, outputs=[chatbot, user_input])
        demo.load(_open_from_link, outputs=[chatbot, problem_md, problem_dd])

    return demo


def main() -> None:
    args = parse_args()
    cfg = load_root_config(args.config)
    cfg = apply_overrides(cfg, args)
    configure_logging(cfg.app.log_level)
    ensure_offline(cfg.app)

    factory = make_context_factory(cfg.model, cfg.generation_defaults, build_device(cfg.app.gpu_index))
    session = SessionManager(cfg.model.local_path, factory, limits=cfg.limits)
    registry = load_problems(cfg.app.problems_path)
    threading.Thread(target=session.ensure_ready, daemon=True).start()

    app = build_app(cfg, session, registry)
    app.queue(default_concurrency_limit=cfg.app.concurrency_limit)
    try:
        app.launch(server_name=cfg.app.host, server_port=cfg.app.port, share=args.share)
    finally:
        session.close()


if __name__ == "__main__":
    main()
