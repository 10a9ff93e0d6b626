"""
asgi.py -- Application assembly and server entry point for Pharmabolt.

Run with:  uvicorn asgi:app --reload
           pharmabolt           (console script; binds 0.0.0.0:$PORT)
"""

import uvicorn

from api.main import app
from core.config import get_settings

__all__ = ["app", "main"]


def main() -> None:
    settings = get_settings()
    uvicorn.run("asgi:app", host="0.0.0.0", port=settings.port, reload=settings.debug)  # nosec B104


if __name__ == "__main__":
    main()
