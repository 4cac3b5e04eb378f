"""
agora.api.__main__ — Entry point for ``python -m agora.api``
==============================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Serve the FastAPI app with uvicorn (blocking).

Run with::

    uv run python -m agora.api
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("agora")


def main() -> None:
    """Bootstrap and serve the Agora API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # Imported after load_dotenv so JWT_SECRET validation sees .env values.
    from agora.api.deps import get_config, get_engine
    from agora.database.engine import init_db

    # 2. Soft configuration.
    cfg = get_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Database.
    init_db(get_engine())

    # 4. Serve (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Agora API on port %d…", cfg.api_port)
    uvicorn.run("agora.api.main:app", host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
