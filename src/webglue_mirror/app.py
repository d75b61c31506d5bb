from __future__ import annotations

import argparse
import logging

from aiohttp import web

from webglue_mirror.core.config import AppConfig
from webglue_mirror.core.logging_config import configure_logging
from webglue_mirror.web import create_app

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Serve mirrored copies of third-party pages.")
    parser.add_argument("--host", help="Interface to bind (default from config)")
    parser.add_argument("--port", type=int, help="Port to bind (default from config)")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args(argv)

    config = AppConfig.load()
    configure_logging(config, level=logging.DEBUG if args.debug else logging.INFO)

    host = args.host or config.host
    port = args.port or config.port
    logger.info("Serving on http://%s:%s/mirror (cache=%s)", host, port, config.mirror.cache_backend)
    web.run_app(create_app(config), host=host, port=port, print=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
