"""Language model gateway: draft a newsletter from a prompt with OpenAI in JSON mode."""

from __future__ import annotations

import json
import logging
import os
from typing import Iterator

from openai import OpenAI, OpenAIError
from pydantic import ValidationError
from pydantic_core import from_json

from common.errors import GenerationError
from generate_newsletter.instructions import NEWSLETTER_INSTRUCTIONS
from generate_newsletter.schema import NewsletterResult, PartialNewsletter

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


def _get_client() -> OpenAI:
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise GenerationError("OPENAI_API_KEY is not set")
    return OpenAI(api_key=api_key)


def _messages(prompt: str, instructions: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": instructions},
        {"role": "user", "content": prompt},
    ]


def parse_partial_newsletter(text: str) -> dict | None:
    """Decode the streamed output so far, keeping a trailing unterminated string."""
    start = text.find("{")
    if start == -1:
        return None
    try:
        value = from_json(text[start:], allow_partial="trailing-strings")
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def parse_newsletter(content: str | None) -> NewsletterResult:
    """Validate raw model output against the newsletter schema."""
    if not content:
        raise GenerationError("Model returned an empty response")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Model returned invalid JSON: {e}") from e
    try:
        return NewsletterResult.model_validate(data)
    except ValidationError as e:
        raise GenerationError(f"Model output does not match the newsletter schema: {e}") from e


def generate_newsletter(
    prompt: str,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.7,
    instructions: str = NEWSLETTER_INSTRUCTIONS,
) -> NewsletterResult:
    """Generate a complete newsletter in one call."""
    client = _get_client()

    logger.info("Generating newsletter with %s (%d prompt characters)", model, len(prompt))
    try:
        response = client.chat.completions.create(
            model=model,
            messages=_messages(prompt, instructions),
            response_format={"type": "json_object"},
            temperature=temperature,
        )
    except OpenAIError as e:
        raise GenerationError(f"Model call failed: {e}") from e

    return parse_newsletter(response.choices[0].message.content)


def stream_newsletter(
    prompt: str,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.7,
    instructions: str = NEWSLETTER_INSTRUCTIONS,
) -> Iterator[PartialNewsletter | NewsletterResult]:
    """Stream a newsletter as it is generated.

    Yields a PartialNewsletter each time the decodable part of the output
    grows, then the validated NewsletterResult as the last item.

    Raises:
        GenerationError: the call failed or the finished output is invalid.
    """
    client = _get_client()

    logger.info("Streaming newsletter with %s (%d prompt characters)", model, len(prompt))
    chunks: list[str] = []
    last_partial: dict | None = None
    try:
        stream = client.chat.completions.create(
            model=model,
            messages=_messages(prompt, instructions),
            response_format={"type": "json_object"},
            temperature=temperature,
            stream=True,
        )
        for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if not delta:
                continue
            chunks.append(delta)

            partial = parse_partial_newsletter("".join(chunks))
            if not partial or partial == last_partial:
                continue
            try:
                update = PartialNewsletter.model_validate(partial)
            except ValidationError:
                continue
            last_partial = partial
            yield update
    except OpenAIError as e:
        raise GenerationError(f"Model call failed: {e}") from e

    result = parse_newsletter("".join(chunks))
    logger.info("Newsletter stream complete (%d characters)", sum(len(c) for c in chunks))
    yield result
