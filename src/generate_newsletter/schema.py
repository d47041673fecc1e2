"""Pydantic models for generated newsletters and the settings that shape them."""

from typing import Optional

from pydantic import BaseModel, Field

SUGGESTION_COUNT = 5


class NewsletterResult(BaseModel):
    """A complete, validated newsletter draft."""

    suggested_titles: list[str] = Field(min_length=SUGGESTION_COUNT, max_length=SUGGESTION_COUNT)
    suggested_subject_lines: list[str] = Field(min_length=SUGGESTION_COUNT, max_length=SUGGESTION_COUNT)
    body: str = Field(min_length=1)
    top_announcements: list[str] = Field(min_length=SUGGESTION_COUNT, max_length=SUGGESTION_COUNT)
    additional_info: Optional[str] = None


class PartialNewsletter(BaseModel):
    """A newsletter draft as far as the model has streamed it."""

    suggested_titles: Optional[list[str]] = None
    suggested_subject_lines: Optional[list[str]] = None
    body: Optional[str] = None
    top_announcements: Optional[list[str]] = None
    additional_info: Optional[str] = None


class NewsletterSettings(BaseModel):
    """Owner preferences applied to the prompt. Every field is optional."""

    newsletter_name: Optional[str] = None
    description: Optional[str] = None
    target_audience: Optional[str] = None
    default_tone: Optional[str] = None
    brand_voice: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    disclaimer_text: Optional[str] = None
    default_tags: list[str] = Field(default_factory=list)
    custom_footer: Optional[str] = None
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
