from __future__ import annotations

import uvicorn

from .config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "bookkeeping.main:create_app",
        factory=True,
        host=settings.http_host,
        port=settings.http_port,
    )


if __name__ == "__main__":
    main()
