"""Assemble the user prompt for newsletter generation."""

from __future__ import annotations

from datetime import datetime

from article_store.models import StoredArticle
from common.text import clean_text, truncate
from generate_newsletter.schema import NewsletterSettings

DEFAULT_SUMMARY_CHAR_LIMIT = 500

_SETTING_LABELS = (
    ("newsletter_name", "Newsletter name"),
    ("description", "Description"),
    ("target_audience", "Target audience"),
    ("default_tone", "Tone"),
    ("brand_voice", "Brand voice"),
    ("company_name", "Company"),
    ("industry", "Industry"),
    ("sender_name", "Sender"),
)


def _format_article(index: int, article: StoredArticle, char_limit: int) -> list[str]:
    lines = [f"Article {index}:"]
    lines.append(f"  Title: {clean_text(article.title) or article.link}")
    if article.feed_title:
        lines.append(f"  Source: {article.feed_title}")
    lines.append(f"  Published: {article.published_at.strftime('%Y-%m-%d %H:%M UTC')}")
    if article.link:
        lines.append(f"  Link: {article.link}")
    if article.source_count > 1:
        lines.append(f"  Reported by {article.source_count} feeds")
    text = clean_text(article.summary) or clean_text(article.content)
    if text:
        lines.append(f"  Summary: {truncate(text, char_limit)}")
    return lines


def build_article_summaries(
    articles: list[StoredArticle],
    char_limit: int = DEFAULT_SUMMARY_CHAR_LIMIT,
) -> str:
    """Format articles into a numbered text block for the prompt."""
    lines = []
    for i, article in enumerate(articles, 1):
        lines.extend(_format_article(i, article, char_limit))
        lines.append("")
    return "\n".join(lines).rstrip()


def _format_settings(settings: NewsletterSettings) -> list[str]:
    lines = []
    for field_name, label in _SETTING_LABELS:
        value = getattr(settings, field_name)
        if value:
            lines.append(f"{label}: {value}")
    if settings.default_tags:
        lines.append(f"Tags: {', '.join(settings.default_tags)}")
    if settings.disclaimer_text:
        lines.append(f"Disclaimer (include verbatim): {settings.disclaimer_text}")
    if settings.custom_footer:
        lines.append(f"Footer (include verbatim): {settings.custom_footer}")
    return lines


def build_newsletter_prompt(
    start: datetime,
    end: datetime,
    article_summaries: str,
    article_count: int,
    user_input: str | None = None,
    settings: NewsletterSettings | None = None,
) -> str:
    """Build the user prompt: period, owner settings, editor notes, then the articles."""
    sections = [
        f"Write a newsletter covering {start.strftime('%Y-%m-%d')} to {end.strftime('%Y-%m-%d')}.",
    ]

    setting_lines = _format_settings(settings) if settings else []
    if setting_lines:
        sections.append("Newsletter settings:\n" + "\n".join(setting_lines))

    if user_input and user_input.strip():
        sections.append(f"Additional instructions from the editor:\n{user_input.strip()}")

    sections.append(f"Articles ({article_count}):\n\n{article_summaries}")
    return "\n\n".join(sections)
