"""HTTP listener entrypoint.

Run locally:
    python -m apps.api.intel.server
or
    uvicorn apps.api.intel.main:app --reload --port 3001
"""

from __future__ import annotations

import logging

import uvicorn

from .config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Server starting on port %s", settings.port)
    uvicorn.run("apps.api.intel.main:app", host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
