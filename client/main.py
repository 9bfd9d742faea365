from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from functools import partial
from typing import List, Optional

from client.config import CLIENT_CONFIG, FetchOptions, load_config, resolve_options
from client.core import ProxySession
from client.storage import open_sink
from shared.protocol.errors import ClientError, ConfigError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proxy-fetch",
        description="Connects to the proxy server, sends the given URL to it and "
        "writes the response it returns into the target file.",
    )
    parser.add_argument("--proxy-server", "-p", default=None, help="The proxy server address (host:port)")
    parser.add_argument("--url", default=None, help="The target URL you are trying to read through the proxy")
    parser.add_argument(
        "--target-file", "-f", default=None, help="The file to write the proxy response into ('-' for stdout)"
    )
    parser.add_argument("--read-timeout", type=float, default=None, help="Seconds to wait for each frame")
    parser.add_argument("--connect-timeout", type=float, default=None, help="Seconds to wait for the connection")
    parser.add_argument("--chunk-size", type=int, default=None, help="Maximum bytes per socket read")
    parser.add_argument(
        "--buffered",
        action="store_true",
        default=None,
        help="Keep bytes received past a frame for the next frame instead of dropping them",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--env-file", default=".env", help="Optional .env file with CLIENT_* settings")
    return parser


async def run_fetch(options: FetchOptions) -> bytes:
    async with ProxySession.connect(
        options.host,
        options.port,
        connect_timeout=options.connect_timeout,
        read_timeout=options.read_timeout,
        chunk_size=options.read_chunk_size,
        buffered=options.buffered_reads,
    ) as session:
        return await session.fetch(options.url, partial(open_sink, options.target_file))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # stderr keeps stdout free for '-f -'
    logging.basicConfig(
        level=CLIENT_CONFIG["log_level"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    try:
        load_config(args.env_file)
        if args.log_level:
            logging.getLogger().setLevel(args.log_level.upper())
        options = resolve_options(
            {
                "proxy_server": args.proxy_server,
                "url": args.url,
                "target_file": args.target_file,
                "read_timeout": args.read_timeout,
                "connect_timeout": args.connect_timeout,
                "read_chunk_size": args.chunk_size,
                "buffered_reads": args.buffered,
            }
        )
    except (ConfigError, ValueError) as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    try:
        payload = asyncio.run(run_fetch(options))
    except ClientError as exc:
        logger.error("Fetch failed: %s", exc)
        return EXIT_FAILURE
    logger.info("Received %d bytes for %s", len(payload), options.url)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
