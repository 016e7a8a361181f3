import argparse

import uvicorn

from .infra.logs import setup_logging


def main():
    ap = argparse.ArgumentParser(description="Run the Movie Night server")
    ap.add_argument("--host", default="0.0.0.0")
    ap.add_argument("--port", type=int, default=3001)
    ap.add_argument(
        "--reload", action="store_true", help="restart on code changes"
    )
    args = ap.parse_args()

    setup_logging()
    uvicorn.run(
        "movienight.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
