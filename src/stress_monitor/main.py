"""Application entrypoint — start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import re
import sys
from pathlib import Path

import uvicorn

from stress_monitor.config import get_settings
from stress_monitor.logger import setup_logging


def read_samples(path: Path) -> list[float]:
    """Parse BPM values separated by commas, whitespace or newlines.

    Non-numeric tokens (e.g. a CSV header) are skipped.
    """
    values: list[float] = []
    for token in re.split(r"[,\s;]+", path.read_text(encoding="utf-8")):
        if not token:
            continue
        try:
            values.append(float(token))
        except ValueError:
            continue
    return values


async def replay(values: list[float], model_ref: str) -> list[dict]:
    """Feed recorded samples through a fresh pipeline, resetting after each window."""
    from stress_monitor.api.server import build_pipeline
    from stress_monitor.inference.model import ModelHandle

    pipeline = build_pipeline()
    if model_ref:
        pipeline.model_handle = ModelHandle.from_reference(model_ref)
    await pipeline.load_model()

    out: list[dict] = []
    for value in values:
        step = await pipeline.handle(value)
        if step.result is None:
            continue
        out.append(
            {
                "label": step.result.label.display,
                "error": step.result.error,
                "record": step.record.to_sync_payload() if step.record else None,
            }
        )
        pipeline.reset()
    return out


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="stress-monitor",
        description="Heart-rate window sampling and HRV-based stress classification.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── replay ────────────────────────────────────────────────
    replay_parser = sub.add_parser("replay", help="Classify BPM values recorded in a file.")
    replay_parser.add_argument("file", type=Path)
    replay_parser.add_argument("--model", default=None, help="JSON weights file or module:attribute.")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "stress_monitor.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "init-db":
        from stress_monitor.storage.database import init_db

        asyncio.run(init_db())
        print("Database tables created.")
    elif args.command == "replay":
        values = read_samples(args.file)
        results = asyncio.run(replay(values, args.model or settings.model_path))
        for item in results:
            print(json.dumps(item, ensure_ascii=False))
        if not results:
            print(f"No complete window in {len(values)} values.", file=sys.stderr)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
