"""Run with: python -m sprouttrack"""

import argparse

import uvicorn

from sprouttrack.config import CONFIG


def main() -> None:
    parser = argparse.ArgumentParser(prog="sprouttrack", description="Run the Sprout Track API server.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    uvicorn.run(
        "sprouttrack.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=CONFIG.log_level.lower(),
    )


if __name__ == "__main__":
    main()
