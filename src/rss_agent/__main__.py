"""Entry point for RSS Agent: python -m rss_agent [options.json] [--once | --dry-run]"""

import asyncio
import json
import logging
import os
import sys

from rss_agent.agent import RssAgent
from rss_agent.config import DEFAULT_OPTIONS, ValidationError, load_options, validate_options
from rss_agent.database import Database
from rss_agent.feed_parser import init_adapter
from rss_agent.poller import start_polling

DEFAULT_DB_PATH = "rss_agent.db"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
# Quiet noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger("rss_agent")


def _raw_options(args: list[str]) -> dict:
    """Options from the first positional argument, RSS_AGENT_CONFIG, or the defaults."""
    paths = [arg for arg in args if not arg.startswith("--")]
    path = paths[0] if paths else os.environ.get("RSS_AGENT_CONFIG")
    if path:
        return load_options(path)
    logger.info("No options file given, using defaults")
    return dict(DEFAULT_OPTIONS)


async def main(args: list[str]) -> int:
    """Initialize and run the RSS Agent."""
    init_adapter()

    try:
        options = validate_options(_raw_options(args))
    except ValidationError as e:
        for message in e.errors:
            print(f"Invalid options: {message}", file=sys.stderr)
        return 2

    db = Database(os.environ.get("RSS_DB_PATH", DEFAULT_DB_PATH))
    db.connect()
    agent = RssAgent(options, db, name=os.environ.get("RSS_AGENT_NAME", "rss_agent"))

    try:
        if "--dry-run" in args:
            print(json.dumps(agent.dry_run().to_dict(), indent=2))
        elif "--once" in args:
            print(json.dumps(agent.check().to_dict(), indent=2))
        else:
            await start_polling(agent.check)
    finally:
        agent.close()
        db.close()
    return 0


def run() -> None:
    # asyncio.run cancels main() on Ctrl+C, so its finally block cleans up first
    try:
        code = asyncio.run(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return
    sys.exit(code)


if __name__ == "__main__":
    run()
