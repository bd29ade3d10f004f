# src/timecapsule/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from timecapsule.env import load_dotenv_if_present
from timecapsule.logging_util import configure_structured_logging


def main() -> None:
    # Load .env early so TIMECAPSULE_* vars exist before anything reads them.
    load_dotenv_if_present()
    configure_structured_logging()

    from timecapsule.api.app import create_app

    host = os.getenv("TIMECAPSULE_API_HOST", "127.0.0.1")
    port = int(os.getenv("TIMECAPSULE_API_PORT", "8080"))

    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
