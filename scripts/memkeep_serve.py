"""
CLI for launching the FastAPI server.

Usage:
    python scripts/memkeep_serve.py
    python scripts/memkeep_serve.py --port 8080 --host 127.0.0.1
    python scripts/memkeep_serve.py --config-dir /tmp/memkeep
"""

import argparse
import os
import sys
from pathlib import Path

import uvicorn

from memkeep.persist.paths import CONFIG_DIR_ENV


def main():
    parser = argparse.ArgumentParser(
        description="Launch memkeep FastAPI server"
    )
    
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8765,
        help="Port to bind to",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help=f"Config directory (default: ${CONFIG_DIR_ENV} or ~/.config/memkeep)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    
    args = parser.parse_args()
    
    if args.config_dir is not None:
        os.environ[CONFIG_DIR_ENV] = str(args.config_dir.expanduser())
    
    print(f"Starting memkeep API server on {args.host}:{args.port}")
    print(f"API documentation available at: http://{args.host}:{args.port}/docs")
    
    uvicorn.run(
        "memkeep.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
