"""CLI for drafting a newsletter from stored RSS articles."""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv

from article_store.models import create_tables
from common.cli_helpers import date_range_to_datetimes, parse_id_list, setup_logging
from common.config import load_config, set_config
from common.db import get_engine, get_session, get_session_factory
from common.errors import GenerationError, NoContentError
from common.local_io import save_json_local
from generate_newsletter.gateway import stream_newsletter
from generate_newsletter.generate import generate_for_feeds, prompt_for_articles, save_newsletter
from generate_newsletter.helpers import format_newsletter, parse_generate_newsletter_args
from generate_newsletter.schema import NewsletterResult
from refresh_feeds.prepare import prepare_feeds_and_articles

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def _stream(prompt: str, config) -> NewsletterResult:
    printed = 0
    for update in stream_newsletter(
        prompt,
        model=config.generation.model,
        temperature=config.generation.temperature,
    ):
        if isinstance(update, NewsletterResult):
            print()
            return update
        body = update.body or ""
        if len(body) > printed:
            sys.stdout.write(body[printed:])
            sys.stdout.flush()
            printed = len(body)
    raise GenerationError("Stream ended without a newsletter")


def main() -> None:
    args = parse_generate_newsletter_args()
    config = load_config(args.config)
    set_config(config)
    create_tables(get_engine())

    feed_ids = parse_id_list(args.feed_ids)
    try:
        start, end = date_range_to_datetimes(args.start_date, args.end_date)
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(2)

    try:
        if args.stream:
            prepared = prepare_feeds_and_articles(
                feed_ids, start, end, session_factory=get_session_factory(), config=config.feeds
            )
            prompt = prompt_for_articles(
                prepared, start, end,
                user_input=args.user_input,
                char_limit=config.generation.summary_char_limit,
            )
            result = _stream(prompt, config)
            if args.save:
                with get_session() as session:
                    record = save_newsletter(
                        session, args.owner, result, start, end, feed_ids, user_input=args.user_input
                    )
                logger.info("Saved newsletter %s", record.id)
        else:
            generated = generate_for_feeds(
                args.owner,
                feed_ids,
                start,
                end,
                user_input=args.user_input,
                save=args.save,
                config=config,
            )
            result = generated.result
            print(format_newsletter(result))
            if generated.record:
                logger.info("Saved newsletter %s", generated.record.id)

    except NoContentError as e:
        logger.error("%s", e)
        if e.refresh is not None and e.refresh.failed:
            logger.error("Feeds that failed to refresh: %s", ", ".join(e.refresh.failed_feed_ids))
        sys.exit(1)
    except GenerationError as e:
        logger.error("Newsletter generation failed: %s", e)
        sys.exit(1)

    if args.load_local:
        record = result.model_dump()
        record.update(
            owner_id=args.owner,
            feeds_used=feed_ids,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            user_input=args.user_input,
        )
        save_json_local(record, "newsletter")


if __name__ == "__main__":
    main()
