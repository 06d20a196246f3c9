"""Command-line interface for clickbait-resolver."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .cache import SummaryCache
from .config import DISPLAY_STYLES, ConfigError, ResolverConfig, load_config, validate_config
from .logger import get_logger, setup_logger
from .page import PageLoadError, load_page
from .pipeline import HeadlinePipeline
from .providers import ProviderConfigError


def _prepare_config(cfg: ResolverConfig, args: argparse.Namespace) -> ResolverConfig:
    updated = cfg
    if args.style:
        updated = replace(updated, display_style=args.style)
    if args.no_ai:
        updated = replace(updated, use_ai=False)
    if args.max_headlines is not None:
        updated = replace(updated, max_headlines=args.max_headlines)
    if args.batch_size is not None:
        updated = replace(updated, batch_size=args.batch_size)
    if args.verbose:
        updated = replace(updated, debug_mode=True)
    return updated


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clickbait-resolver",
        description="Flag clickbait headlines on a page and attach article summaries."
    )
    parser.add_argument("source", help="HTML file path or http(s) URL of the page to process")
    parser.add_argument("--config", help="Path to config YAML (default: config/config.yaml)")
    parser.add_argument("--out", help="Write the annotated page here (default: stdout)")
    parser.add_argument("--style", choices=DISPLAY_STYLES, help="Summary display style")
    parser.add_argument("--no-ai", action="store_true", help="Use pattern matching only")
    parser.add_argument("--max-headlines", type=int, help="Headlines per pass, 0 for unlimited")
    parser.add_argument("--batch-size", type=int, help="Headlines per classification request")
    parser.add_argument("--base-url", help="Base URL for resolving relative article links")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


async def run(config: ResolverConfig, args: argparse.Namespace) -> int:
    logger = get_logger()

    try:
        document = await load_page(
            args.source,
            base_url=args.base_url,
            timeout=config.summarizer.timeout,
            user_agent=config.summarizer.user_agent
        )
    except PageLoadError as e:
        logger.error(f"Could not load page: {e}")
        return 1

    pipeline = HeadlinePipeline(document, config, cache=SummaryCache(config.cache_file))

    report = await pipeline.process_page()
    await pipeline.wait_for_summaries()

    html = document.to_html()
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(html, encoding="utf-8")
        logger.info(f"Annotated page written to {out_path}")
    else:
        sys.stdout.write(html)

    logger.info(f"Report: {json.dumps(report.to_dict())}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _prepare_config(load_config(args.config), args)
        validate_config(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    # stdout carries the page when no output file is given
    setup_logger(
        config.log_file,
        level=logging.DEBUG if config.debug_mode else logging.INFO,
        stream=None if args.out else sys.stderr
    )

    try:
        return asyncio.run(run(config, args))
    except ProviderConfigError as e:
        get_logger().error(f"Provider configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
