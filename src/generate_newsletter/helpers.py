"""Helper functions for the generate_newsletter CLI."""

from __future__ import annotations

import argparse

from common.cli_helpers import parse_date
from generate_newsletter.schema import NewsletterResult


def format_newsletter(result: NewsletterResult) -> str:
    '''Render a newsletter draft for the terminal.'''

    lines = ["Suggested titles:"]
    lines.extend(f"  {i}. {title}" for i, title in enumerate(result.suggested_titles, 1))
    lines.append("Suggested subject lines:")
    lines.extend(f"  {i}. {subject}" for i, subject in enumerate(result.suggested_subject_lines, 1))
    lines.append("Top announcements:")
    lines.extend(f"  - {item}" for item in result.top_announcements)
    lines.append("")
    lines.append(result.body)
    if result.additional_info:
        lines.append("")
        lines.append(f"Notes: {result.additional_info}")
    return "\n".join(lines)


def parse_generate_newsletter_args() -> argparse.Namespace:
    '''Parse CLI arguments for generate-newsletter.'''

    parser = argparse.ArgumentParser(description="Draft a newsletter from an owner's RSS feeds.")
    parser.add_argument("--owner", required=True)
    parser.add_argument("--feed-ids", required=True, help="Comma-separated list of feed ids.")
    parser.add_argument(
        "--start-date",
        required=True,
        type=lambda s: parse_date(s, "--start-date"),
        help="First day covered, UTC (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--end-date",
        required=True,
        type=lambda s: parse_date(s, "--end-date"),
        help="Last day covered, UTC (YYYY-MM-DD).",
    )
    parser.add_argument("--user-input", default=None, help="Extra instructions for this issue.")
    parser.add_argument("--stream", action="store_true", help="Print the body as it is generated.")
    parser.add_argument("--save", action="store_true", help="Store the newsletter in the database.")
    parser.add_argument("--load-local", action="store_true", help="Also write the newsletter to output/.")
    parser.add_argument("--config", default=None, help="Config name under configs/ (default: CONFIG_ENV or prod).")
    return parser.parse_args()
