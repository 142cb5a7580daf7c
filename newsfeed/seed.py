"""
Load articles from a JSON file into whichever backend the environment binds.

The file holds a list of objects with the ``NewsService.add_article`` fields:

    [{"title": "...", "summary": "...", "source": "...",
      "category": "Technology", "published_at": "2024-05-01T09:00:00+00:00"}]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from newsfeed.config import get_settings
from newsfeed.dependencies import build_backend, build_storage
from newsfeed.errors import NewsfeedError
from newsfeed.services.news import NewsService

logger = logging.getLogger(__name__)


def seed(path: Path, news: NewsService, stop_on_error: bool = False) -> int:
    items = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(items, list):
        raise ValueError(f"{path} must contain a JSON list of articles")
    loaded = 0
    for index, item in enumerate(items):
        try:
            article = news.add_article(**item)
        except (NewsfeedError, TypeError) as exc:
            logger.error("Skipping entry %d: %s", index, exc)
            if stop_on_error:
                raise
            continue
        logger.info("Loaded %s (%s)", article.title, article.id)
        loaded += 1
    return loaded


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed articles into the newsfeed store")
    parser.add_argument("path", type=Path, help="JSON file with a list of articles")
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Abort on the first invalid entry instead of skipping it",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    backend = build_backend(settings.backend_config(), build_storage(settings))
    logger.info("Seeding into %s backend", backend.mode.value)

    try:
        loaded = seed(args.path, NewsService(backend.store), args.stop_on_error)
    except (OSError, ValueError, NewsfeedError) as exc:
        logger.error("Seeding failed: %s", exc)
        return 1
    logger.info("Loaded %d articles", loaded)
    return 0


if __name__ == "__main__":
    sys.exit(main())
