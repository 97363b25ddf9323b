"""Development launcher for the Lumen media server.

Usage:
    Windows: python start_dev.py [--assets-dir PATH]
    Linux:   python3 start_dev.py [--assets-dir PATH]

Runs Uvicorn with --reload against ``lumen.main:create_app``, using the
backend virtual environment when one exists. Press Ctrl+C to stop.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent
BACKEND_DIR = ROOT_DIR / "backend"
VENV_CANDIDATES = (
    BACKEND_DIR / ".venv" / "Scripts" / "python.exe",
    BACKEND_DIR / ".venv" / "bin" / "python",
    ROOT_DIR / ".venv" / "Scripts" / "python.exe",
    ROOT_DIR / ".venv" / "bin" / "python",
)

if os.name == "nt":
    os.system("")  # enable VT100 on Windows 10+

CYAN = "\033[36m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"


def log(level: str, msg: str) -> None:
    colors = {"info": CYAN, "start": GREEN, "error": RED}
    print(f"{colors.get(level, '')}[{level}]{RESET} {msg}")


def resolve_python() -> str:
    for candidate in VENV_CANDIDATES:
        if candidate.exists():
            return str(candidate)
    log("info", "No venv found, using the current interpreter")
    return sys.executable


def check_dependencies(python: str) -> bool:
    result = subprocess.run(
        [python, "-c", "import fastapi, uvicorn, httpx, aiosqlite"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        log("error", "Missing dependencies. Run:")
        log("error", f"  cd {ROOT_DIR} && pip install -e '.[test]'")
        return False
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--assets-dir", default=None, help="Asset root to serve")
    parser.add_argument("--port", default=os.environ.get("LUMEN_MEDIA_PORT", "11222"))
    args = parser.parse_args()

    python = resolve_python()
    if not check_dependencies(python):
        return 1

    env = dict(os.environ)
    env.setdefault("LUMEN_DEBUG", "true")
    env.setdefault("LUMEN_LOG_LEVEL", "DEBUG")
    if args.assets_dir:
        env["LUMEN_ASSETS_DIR"] = str(Path(args.assets_dir).resolve())

    cmd = [
        python, "-m", "uvicorn", "lumen.main:create_app", "--factory",
        "--reload", "--host", "0.0.0.0", "--port", str(args.port),
    ]
    log("start", " ".join(cmd))
    log("info", f"  Media:   http://localhost:{args.port}/<relative path>")
    log("info", f"  Health:  http://localhost:{args.port}/_lumen/health")
    log("info", f"  Stats:   http://localhost:{args.port}/_lumen/stats")

    try:
        return subprocess.run(cmd, cwd=BACKEND_DIR, env=env).returncode
    except KeyboardInterrupt:
        print()
        log("info", "Ctrl+C received, shutting down")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
