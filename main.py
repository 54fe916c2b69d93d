"""
Quotebot - render a chat message as a quote card image.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import httpx

import lib.utils as utils
from internal.config.manager import ConfigManager
from lib.cache import CacheInterface, DictCache, NullCache, StringKeyGenerator
from lib.logging_utils import initLogging
from lib.markdown import extract_mention_user_ids
from lib.quote_image import QuoteImageConfig, QuoteImageGenerator, QuoteRequest

# Configure basic logging first
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.INFO)
# set higher logging level for httpx to avoid all GET requests being logged
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def buildEmojiCache(cacheConfig: Dict) -> CacheInterface[str, str]:
    """Create the custom emoji cache from the ``[cache]`` section."""
    maxSize = cacheConfig.get("emoji-max-size", 1000)
    if maxSize == 0:
        logger.info("Custom emoji cache disabled")
        return NullCache[str, str]()
    return DictCache[str, str](
        keyGenerator=StringKeyGenerator(),
        defaultTtl=int(cacheConfig.get("emoji-ttl", -1)),
        maxSize=maxSize,
    )


class Quotebot:
    """Wires configuration, HTTP client and the quote generator together."""

    def __init__(self, configPath: Optional[str] = None, configDirs: Optional[List[str]] = None):
        """Initialize configuration and logging."""
        self.configManager = ConfigManager(configPath, configDirs)

        initLogging(self.configManager.getLoggingConfig())

        self.imageConfig = QuoteImageConfig.fromDict(self.configManager.getImageConfig())
        self.emojiCache = buildEmojiCache(self.configManager.getCacheConfig())

    async def render(self, request: QuoteRequest) -> bytes:
        """Render one quote with a client living for the duration of the call."""
        httpConfig = self.configManager.getHttpConfig()
        async with httpx.AsyncClient(
            timeout=httpConfig["timeout"],
            headers={"User-Agent": httpConfig["user-agent"]},
            follow_redirects=True,
        ) as client:
            generator = QuoteImageGenerator(client, self.emojiCache, config=self.imageConfig)
            return await generator.generate(request)

    def run(self, request: QuoteRequest, outputPath: str) -> None:
        """Render a quote and write it to a file ("-" for stdout)."""
        png = asyncio.run(self.render(request))
        if outputPath == "-":
            sys.stdout.buffer.write(png)
            sys.stdout.buffer.flush()
        else:
            Path(outputPath).write_bytes(png)
            logger.info(f"Quote image written to {outputPath} ({len(png)} bytes)")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Quotebot - render a chat message as a quote card image")
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "--config-dir",
        action="append",
        help="Directory to search for .toml config files recursively (can be specified multiple times)",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Pretty-print loaded configuration and exit",
    )
    parser.add_argument("--icon-url", help="Avatar URL of the quoted author")
    parser.add_argument("--name", help="Display name of the quoted author")
    parser.add_argument("--handle", help="Handle (username) of the quoted author, without @")
    textGroup = parser.add_mutually_exclusive_group()
    textGroup.add_argument("--text", help="Message text")
    textGroup.add_argument("--text-file", help="Read message text from file")
    parser.add_argument(
        "--mention",
        action="append",
        metavar="ID=NAME",
        help="Display name of a mentioned user (can be specified multiple times)",
    )
    parser.add_argument("-o", "--output", default="quote.png", help="Output PNG path, - for stdout")
    args = parser.parse_args(argv)

    if args.config:
        args.config = os.path.abspath(args.config)
    if args.config_dir:
        args.config_dir = [os.path.abspath(dir_path) for dir_path in args.config_dir]

    if not args.print_config:
        missing = [
            option
            for option, value in (("--icon-url", args.icon_url), ("--name", args.name), ("--handle", args.handle))
            if not value
        ]
        if args.text is None and args.text_file is None:
            missing.append("--text or --text-file")
        if missing:
            parser.error(f"missing required arguments: {', '.join(missing)}")

    return args


def prettyPrintConfig(config_manager: ConfigManager):
    """Pretty-print the loaded configuration."""
    print("=== Quotebot Configuration ===")
    print()
    print(utils.jsonDumps(config_manager.config, indent=2))


def buildRequest(args) -> QuoteRequest:
    """Create the quote request from parsed arguments."""
    if args.text_file is not None:
        text = Path(args.text_file).read_text(encoding="utf-8")
    else:
        text = args.text

    mentionNames = utils.parseMentionArgs(args.mention)
    for userId in extract_mention_user_ids(text):
        if userId not in mentionNames:
            logger.warning(f"No display name for mentioned user {userId}, it will render as unknown")

    return QuoteRequest(
        iconUrl=args.icon_url,
        text=text,
        name=args.name,
        handle=args.handle,
        mentionNames=mentionNames,
    )


def main():
    """Main entry point."""
    args = parse_arguments()

    try:
        if args.print_config:
            prettyPrintConfig(ConfigManager(args.config, args.config_dir))
            sys.exit(0)

        bot = Quotebot(configPath=args.config, configDirs=args.config_dir)
        bot.run(buildRequest(args), args.output)
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.error(f"Failed to render quote: {e}")
        logger.exception(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
