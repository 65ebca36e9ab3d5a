#!/usr/bin/env python3
"""
Startup script for the Credit Scan API.
"""

import os
import subprocess
import sys

from dotenv import load_dotenv


def build_command(host: str, port: int, workers: int) -> list:
    """uvicorn command line; reload only in single-worker mode."""
    cmd = [
        sys.executable, "-m", "uvicorn",
        "app:app",
        "--host", host,
        "--port", str(port),
    ]
    if workers == 1:
        cmd.append("--reload")
    else:
        cmd.extend(["--workers", str(workers)])
    return cmd


def main():
    """Main entry point."""
    print("=" * 60)
    print("Credit Scan API Server")
    print("=" * 60)

    load_dotenv()

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    workers = int(os.getenv("WORKERS", "1"))
    auth_enabled = bool(
        os.getenv("CREDITSCAN_AUTH_USERS") and os.getenv("CREDITSCAN_AUTH_PASSWORD")
    )

    print(f"\nConfiguration:")
    print(f"  Host: {host}")
    print(f"  Port: {port}")
    print(f"  Workers: {workers}")
    print(f"  Auth: {'Enabled' if auth_enabled else 'Disabled'}")
    print(f"  Max text chars: {os.getenv('CREDITSCAN_MAX_TEXT_CHARS', '2000000')}")

    print(f"\nAPI Documentation: http://localhost:{port}/docs")
    print("=" * 60)

    try:
        subprocess.run(build_command(host, port, workers))
    except KeyboardInterrupt:
        print("\n\nShutting down server...")
        sys.exit(0)


if __name__ == "__main__":
    main()
