"""CLI entrypoints for asset proxy operational tasks."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from collections.abc import Sequence

from asset_keys.exceptions import AssetKeyError
from asset_keys.rewrite import rewrite_asset_url
from asset_proxy.config import configure_structlog, get_settings
from asset_proxy.dependencies import get_asset_key_client, get_url_signer


async def _run_sign_url(url: str, lifetime_seconds: int | None) -> int:
    """Sign one URL with the configured credentials and print it."""
    settings = get_settings()
    effective_lifetime = (
        lifetime_seconds if lifetime_seconds is not None else settings.signing.url_lifetime_seconds
    )
    expires_at_ms = int(time.time() * 1000) + effective_lifetime * 1000

    try:
        signed_url = await get_url_signer().sign_url(
            settings.contentful.api_host,
            settings.contentful.access_token.get_secret_value(),
            settings.contentful.space_id,
            settings.contentful.environment_id,
            url,
            expires_at_ms,
        )
    except AssetKeyError as exc:
        print(json.dumps({"error": type(exc).__name__, "detail": exc.detail}), file=sys.stderr)
        return 1
    finally:
        await get_asset_key_client().aclose()

    print(json.dumps({"signed_url": signed_url, "expires_at_ms": expires_at_ms}))
    return 0


def _run_rewrite_asset_url(url: str, asset_host: str) -> int:
    """Print an asset URL rewritten to point at the proxy host."""
    print(rewrite_asset_url(url, asset_host))
    return 0


def _lifetime_seconds(value: str) -> int:
    """Parse a signed URL lifetime; it must be at least one second."""
    try:
        seconds = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from exc
    if seconds < 1:
        raise argparse.ArgumentTypeError("must be at least 1 second")
    return seconds


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m asset_proxy.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)

    sign_parser = subcommands.add_parser("sign-url")
    sign_parser.add_argument("url", help="Fully-qualified asset URL to sign.")
    sign_parser.add_argument(
        "--lifetime-seconds",
        type=_lifetime_seconds,
        default=None,
        help="Optional override for SIGNING__URL_LIFETIME_SECONDS during this run.",
    )

    rewrite_parser = subcommands.add_parser("rewrite-asset-url")
    rewrite_parser.add_argument("url", help="Asset URL as returned by the content API.")
    rewrite_parser.add_argument(
        "--asset-host", required=True, help="Hostname of the asset proxy."
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "sign-url":
        return asyncio.run(_run_sign_url(url=args.url, lifetime_seconds=args.lifetime_seconds))
    if args.command == "rewrite-asset-url":
        return _run_rewrite_asset_url(url=args.url, asset_host=args.asset_host)
    parser.error("Unsupported command")
    return 2


def run() -> int:
    """Console entrypoint: configure logging to stderr, then run the command."""
    configure_structlog(get_settings(), log_file=sys.stderr)
    return main()


if __name__ == "__main__":
    raise SystemExit(run())
