#!/usr/bin/env python3
"""
Start the Job Tracker API server for local development.
"""
import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent
APP_ROOT = PROJECT_ROOT / "job_tracker_app"


def build_environment() -> dict:
    """Environment for the server process; values already set win."""
    env = os.environ.copy()
    if 'PYTHONPATH' in env:
        env['PYTHONPATH'] = f"{APP_ROOT}{os.pathsep}{env['PYTHONPATH']}"
    else:
        env['PYTHONPATH'] = str(APP_ROOT)

    defaults = {
        'ENVIRONMENT': 'development',
        'DATABASE_URL': 'sqlite:///./job_tracker.db',
        'CORS_ENABLED': 'true',
        'API_DOCS_ENABLED': 'true',
        'LOG_LEVEL': 'INFO',
    }
    for key, value in defaults.items():
        env.setdefault(key, value)
    return env


def main():
    parser = argparse.ArgumentParser(description="Job Tracker development server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    if not (APP_ROOT / "backend" / "main.py").exists():
        logger.error("Backend main.py not found under %s", APP_ROOT)
        sys.exit(1)

    command = [sys.executable, "-m", "uvicorn", "backend.main:app", "--host", args.host, "--port", str(args.port)]
    if not args.no_reload:
        command.append("--reload")

    logger.info("Starting API on http://%s:%d (docs at /docs)", args.host, args.port)
    try:
        subprocess.run(command, cwd=APP_ROOT, env=build_environment(), check=True)
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
    except subprocess.CalledProcessError as e:
        logger.error("Server exited with status %d", e.returncode)
        sys.exit(e.returncode)


if __name__ == "__main__":
    main()
