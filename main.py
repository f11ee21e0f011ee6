#!/usr/bin/env python3
"""
News API -- authenticated CRUD service for news articles.

Usage:
  python main.py
  python main.py --port 9000
  python main.py --host 0.0.0.0 --reload

Configuration comes from the environment (or a .env file), see core/config.py:
  JWT_SECRET        Required. HS256 signing secret for bearer tokens.
  STORAGE_BACKEND   "database" (default) or "memory".
  DATABASE_URL      SQLAlchemy URL. Defaults to a SQLite file under store/.
  AUTH_REQUIRED     "true" (default) gates /news behind a bearer token.
"""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the News API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
