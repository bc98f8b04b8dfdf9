# src/adminstore/api/__main__.py
from __future__ import annotations

import uvicorn

from adminstore.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so ADMINSTORE_* vars exist before anything reads them.
    load_dotenv_if_present()

    from adminstore.api.app import create_app
    from adminstore.api.structured_logging import configure_structured_logging
    from adminstore.core.store_config import load_store_config

    cfg = load_store_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(cfg=cfg), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
