"""
Entrypoint: load .env and config, init logging, perform one request and
print its envelope as JSON.
"""

import argparse
import asyncio
import json
import sys
from typing import Dict, List

import structlog
from dotenv import load_dotenv

from .client import ResilientClient
from .config import Config
from .log import setup_logging
from .transport import Transport

logger = structlog.get_logger(__name__)


def _parse_headers(values: List[str]) -> Dict[str, str]:
    headers = {}
    for value in values or []:
        name, sep, content = value.partition(':')
        if not sep or not name.strip():
            raise argparse.ArgumentTypeError(f"Invalid header (expected 'Name: value'): {value}")
        headers[name.strip()] = content.strip()
    return headers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safefetch",
        description="Perform an HTTP request and print the normalized envelope.",
    )
    parser.add_argument("url", help="Request URL")
    parser.add_argument("-X", "--method", default="GET", help="HTTP method (default: GET)")
    parser.add_argument("-H", "--header", action="append", default=[], help="Request header 'Name: value' (repeatable)")
    parser.add_argument("-d", "--data", default=None, help="Request body")
    parser.add_argument("--timeout", type=float, default=None, help="Deadline in milliseconds")
    parser.add_argument("--config", default=None, help="Path to a config.yaml file")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser


async def run(url: str, options: dict, settings: Config, transport: Transport = None) -> dict:
    """Perform one request and return the envelope as a dict."""
    async with ResilientClient(transport=transport, settings=settings) as client:
        envelope = await client.request(url, options)
    return envelope.as_dict()


def main(argv: List[str] = None, transport: Transport = None) -> int:
    """Main entry point; returns 0 when the response is ok, 1 otherwise."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    try:
        settings = Config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Fatal error during startup: {e}", file=sys.stderr)
        return 2

    log_config = settings.logging
    setup_logging(
        level=args.log_level or log_config.get('level', 'INFO'),
        renderer=log_config.get('renderer', 'json'),
    )

    try:
        headers = _parse_headers(args.header)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    options = {'method': args.method, 'headers': headers}
    if args.data is not None:
        options['body'] = args.data
    if args.timeout:
        options['timeout'] = args.timeout

    logger.debug("cli_request", url=args.url, method=args.method, headers=list(headers))
    result = asyncio.run(run(args.url, options, settings, transport=transport))

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if result['ok'] else 1


if __name__ == "__main__":
    sys.exit(main())
