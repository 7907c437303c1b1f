"""Command-line entry-point: ``autodesc generate note.md`` and friends."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from config import Settings, SettingsStore, configure_logging
from engine.document import FileDocument
from engine.pipeline import run_pipeline
from engine.selection import PresetSelectionPrompt, SelectionPrompt, TerminalSelectionPrompt
from services.llm_service import PROVIDERS, default_model_for_provider

_LIST_FIELDS = {"categories"}


class ConsoleNotifier:
    def notify(self, message: str, level: str = "info") -> None:
        prefix = "error: " if level == "error" else ""
        print(f"{prefix}{message}", file=sys.stderr)


def _mask(secret: str) -> str:
    if not secret:
        return ""
    return f"{secret[:3]}...{secret[-4:]}" if len(secret) > 8 else "***"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autodesc",
        description="Generate description, tags and category front matter with an LLM.",
    )
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON file.")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_gen = sub.add_parser("generate", help="Rewrite the front matter of one Markdown file.")
    p_gen.add_argument("path", type=Path)
    p_gen.add_argument("--category", default=None, help="Category to write (created when new).")
    p_gen.add_argument("--tag", dest="tags", action="append", default=None,
                       help="Keep only this generated tag (repeatable; used with tag review).")
    p_gen.add_argument("--no-input", action="store_true", help="Never prompt; skip category selection.")

    p_cfg = sub.add_parser("config", help="Show or change settings.")
    cfg_sub = p_cfg.add_subparsers(dest="config_cmd", required=True)
    cfg_sub.add_parser("show")
    p_set = cfg_sub.add_parser("set")
    p_set.add_argument("key", choices=sorted(Settings.model_fields))
    p_set.add_argument("value")
    cfg_sub.add_parser("reset-prompt")
    cfg_sub.add_parser("providers")

    p_cat = sub.add_parser("categories", help="List or add categories.")
    cat_sub = p_cat.add_subparsers(dest="categories_cmd", required=True)
    cat_sub.add_parser("list")
    p_add = cat_sub.add_parser("add")
    p_add.add_argument("name")

    p_serve = sub.add_parser("serve", help="Run the HTTP service.")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=0)

    return parser


def _cmd_generate(args: argparse.Namespace, store: SettingsStore, settings: Settings) -> int:
    if not args.path.is_file():
        print(f"error: no such file: {args.path}", file=sys.stderr)
        return 1

    current = settings

    def create_category(name: str) -> list[str]:
        nonlocal current
        current = store.add_category(current, name)
        return current.categories

    selector: SelectionPrompt
    if args.no_input or args.category or args.tags is not None:
        selector = PresetSelectionPrompt(category=args.category, tags=args.tags, on_create=create_category)
    else:
        selector = TerminalSelectionPrompt(on_create=create_category)

    outcome = asyncio.run(
        run_pipeline(
            FileDocument(args.path),
            settings=settings,
            selector=selector,
            notifier=ConsoleNotifier(),
        )
    )
    if not outcome.ok or outcome.result is None:
        return 1
    print(outcome.result.description)
    return 0


def _cmd_config(args: argparse.Namespace, store: SettingsStore, settings: Settings) -> int:
    if args.config_cmd == "show":
        data = settings.model_dump()
        data["api_key"] = _mask(settings.api_key)
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0
    if args.config_cmd == "providers":
        for name, provider in PROVIDERS.items():
            print(f"{name:10} {provider.display_name:18} {', '.join(provider.models)}")
        return 0
    if args.config_cmd == "reset-prompt":
        store.reset_prompt(settings)
        return 0

    value: object = args.value
    if args.key in _LIST_FIELDS:
        value = [v.strip() for v in args.value.split(",") if v.strip()]
    changes = {args.key: value}
    if args.key == "api_provider":
        changes["model"] = default_model_for_provider(args.value)
    try:
        store.update(settings, **changes)
    except ValidationError as exc:
        print(f"error: invalid value for {args.key}: {exc.errors()[0]['msg']}", file=sys.stderr)
        return 2
    return 0


def _cmd_categories(args: argparse.Namespace, store: SettingsStore, settings: Settings) -> int:
    if args.categories_cmd == "add":
        try:
            settings = store.add_category(settings, args.name)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
    for category in settings.categories:
        print(category)
    return 0


def _cmd_serve(args: argparse.Namespace, store: SettingsStore, settings: Settings) -> int:
    import uvicorn

    # The app's lifespan builds its own store from the environment.
    os.environ["AUTODESC_SETTINGS_FILE"] = str(store.path)
    uvicorn.run(
        "main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level,
    )
    return 0


_COMMANDS = {
    "generate": _cmd_generate,
    "config": _cmd_config,
    "categories": _cmd_categories,
    "serve": _cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = SettingsStore(args.settings)
    try:
        settings = store.load()
    except (ValidationError, json.JSONDecodeError) as exc:
        print(f"error: cannot read settings file {store.path}: {exc}", file=sys.stderr)
        return 2
    configure_logging(args.log_level or settings.log_level)
    return _COMMANDS[args.cmd](args, store, settings)


if __name__ == "__main__":
    raise SystemExit(main())
