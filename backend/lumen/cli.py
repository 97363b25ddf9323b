"""CLI entry points for Lumen.

lumen serve:   runs the local media server
lumen player:  runs a headless screen player against the hosted backend
lumen assets:  manages the asset library (list, tree, mkdir, import, rm)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from lumen.config import settings
from lumen.errors import LumenError

logger = logging.getLogger("lumen")


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size} B"


def cmd_serve(args: argparse.Namespace) -> int:
    from lumen.main import run

    if args.host:
        settings.host = args.host
    if args.port:
        settings.media_port = args.port
    run(assets_dir=args.assets_dir)
    return 0


async def _run_player() -> None:
    from lumen.services.runtime import PlayerRuntime

    runtime = PlayerRuntime()
    stopped = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopped.set)
        except NotImplementedError:
            pass  # Windows: KeyboardInterrupt ends asyncio.run instead

    await runtime.start()
    try:
        await stopped.wait()
    finally:
        await runtime.stop()


def cmd_player(args: argparse.Namespace) -> int:
    if not settings.backend_url:
        logger.error("No backend configured. Set LUMEN_BACKEND_URL and LUMEN_BACKEND_ANON_KEY.")
        return 1
    try:
        asyncio.run(_run_player())
    except KeyboardInterrupt:
        pass
    return 0


def cmd_assets(args: argparse.Namespace) -> int:
    from lumen.services.asset_store import AssetStore

    store = AssetStore(args.assets_dir or settings.assets_dir)
    try:
        if args.action == "list":
            for entry in store.list(args.path):
                marker = "/" if entry.kind == "folder" else ""
                print(f"{entry.relative_path}{marker}\t{_format_size(entry.size_bytes)}")
        elif args.action == "tree":
            for entry in store.list_recursive_flattened():
                print(f"{entry.relative_path}\t{entry.media_type}\t{_format_size(entry.size_bytes)}")
        elif args.action == "mkdir":
            if not store.create_folder(args.path, args.name):
                print(f"Folder already exists: {args.name}", file=sys.stderr)
                return 1
        elif args.action == "import":
            result = store.import_files(args.files, args.into)
            print(f"Imported {len(result.succeeded)} file(s)")
            for source, reason in result.failed:
                print(f"  failed: {source}: {reason}", file=sys.stderr)
            return 1 if result.failed else 0
        elif args.action == "rm":
            if not store.delete(args.path):
                print(f"Nothing deleted: {args.path}", file=sys.stderr)
                return 1
    except LumenError as e:
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lumen", description="Lumen digital signage core")
    parser.add_argument(
        "--log-level", default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Log level (default: {settings.log_level})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the local media server")
    serve.add_argument("--host", default=None, help=f"Host to bind to (default: {settings.host})")
    serve.add_argument(
        "--port", type=int, default=None,
        help=f"Port to listen on (default: {settings.media_port})",
    )
    serve.add_argument("--assets-dir", default=None, help="Asset root to serve")
    serve.set_defaults(func=cmd_serve)

    player = sub.add_parser("player", help="Run a headless screen player")
    player.set_defaults(func=cmd_player)

    assets = sub.add_parser("assets", help="Manage the asset library")
    assets.add_argument("--assets-dir", default=None, help="Asset root (default: from settings)")
    actions = assets.add_subparsers(dest="action", required=True)

    ls = actions.add_parser("list", help="List one folder")
    ls.add_argument("path", nargs="?", default="")
    actions.add_parser("tree", help="List every media file, flattened")

    mkdir = actions.add_parser("mkdir", help="Create a folder")
    mkdir.add_argument("name")
    mkdir.add_argument("--path", default="", help="Parent folder (root-relative)")

    imp = actions.add_parser("import", help="Copy files into the library")
    imp.add_argument("files", nargs="+")
    imp.add_argument("--into", default="", help="Target folder (root-relative)")

    rm = actions.add_parser("rm", help="Delete a file or folder")
    rm.add_argument("path")

    assets.set_defaults(func=cmd_assets)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        settings.log_level = args.log_level

    from lumen.main import setup_logging

    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
