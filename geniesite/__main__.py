"""Command line entry point.

    python -m geniesite serve [--config PATH]
    python -m geniesite generate "Create a landing page" [--url URL] [--output FILE]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from geniesite.client import GenieSiteClient, Phase
from geniesite.config import CONFIG_ENV_VAR, load_config
from geniesite.schemas import Progress, Thoughts, ThoughtsStart

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    if args.config:
        # geniesite.main reads the config at import time
        os.environ[CONFIG_ENV_VAR] = args.config
    config = load_config(args.config)

    logger.info(f"GenieSite server URL: http://{config.host}:{config.port}")
    logger.info(f"API endpoint: http://{config.host}:{config.port}/api/generate")
    uvicorn.run("geniesite.main:app", host=config.host, port=config.port)
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    def show(item, session) -> None:
        if isinstance(item, ThoughtsStart):
            print(item.message, file=sys.stderr)
        elif isinstance(item, Thoughts):
            sys.stdout.write(item.content)
            sys.stdout.flush()
        elif isinstance(item, Progress):
            print(f"\r{item.message} ({round(item.progress)}%)", end="", file=sys.stderr)

    async def run() -> int:
        async with GenieSiteClient(args.url) as client:
            try:
                session = await client.generate(args.prompt, on_item=show)
            except ValueError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 2
            print(file=sys.stderr)
            if session.phase is not Phase.DONE:
                print(session.messages[-1].content, file=sys.stderr)
                return 1
            path = client.export_code(args.output)
            print(f"Website generated successfully: {path}", file=sys.stderr)
            return 0

    return asyncio.run(run())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="geniesite", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the streaming API server")
    serve.add_argument("--config", help="Path to config.yaml")
    serve.set_defaults(func=cmd_serve)

    generate = sub.add_parser("generate", help="Generate a website from a description")
    generate.add_argument("prompt")
    generate.add_argument("--url", default="http://localhost:5000")
    generate.add_argument("--output", default="website.html")
    generate.set_defaults(func=cmd_generate)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
