"""
Generation client: sends a website prompt to Gemini and turns the JSON reply
into a GeneratedCode bundle.
"""
import asyncio
import json
import logging
from typing import Any, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError

from config.settings import Settings
from models.generation import Attachment, GeneratedCode, GeneratedCodePayload, RESPONSE_SCHEMA
from prompts.site_prompts import build_generation_prompt
from services.errors import (
    ConfigurationError,
    MalformedResponseError,
    SchemaViolationError,
    TransportError,
)

logger = logging.getLogger(__name__)


def clean_json_response(text: str) -> str:
    """Strip markdown code fences and surrounding whitespace from a model reply."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        # fence with no newline, e.g. ```{...}```
        cleaned = cleaned[first_newline + 1:] if first_newline != -1 else cleaned[3:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
        cleaned = cleaned.strip()
    return cleaned


def parse_generated_code(text: Optional[str]) -> GeneratedCode:
    """
    Validate a raw model reply against the response contract.

    Raises MalformedResponseError when the text is not a JSON object and
    SchemaViolationError when required fields are missing or mistyped.
    """
    if not text or not text.strip():
        raise MalformedResponseError("The AI returned an empty response.")

    cleaned = clean_json_response(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse model reply as JSON ({e}). Raw text: {text[:500]!r}")
        raise MalformedResponseError("The AI returned a response that was not valid JSON.") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("The AI returned JSON that is not an object.")

    try:
        payload = GeneratedCodePayload.model_validate(data)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        logger.error(f"Model reply violates the response contract: {fields}")
        raise SchemaViolationError(
            f"The AI response is missing or has invalid fields: {', '.join(fields)}."
        ) from e

    return payload.to_generated_code()


def has_usable_input(prompt: str, attachment: Optional[Attachment]) -> bool:
    """A request needs prompt text or an image; other attachments are never sent."""
    return bool(prompt.strip()) or (attachment is not None and attachment.is_image)


class GenerationClient:
    def __init__(self, settings: Settings, client: Any = None):
        self.settings = settings
        self.model_name = settings.gemini_model
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.settings.gemini_api_key)

    def _get_client(self):
        if self._client is None:
            if not self.settings.gemini_api_key:
                raise ConfigurationError("GEMINI_API_KEY is not configured on the server.")
            self._client = genai.Client(api_key=self.settings.gemini_api_key)
            logger.info(f"Gemini client initialised for model {self.model_name}")
        return self._client

    def build_contents(self, full_prompt: str, attachment: Optional[Attachment]) -> List[Any]:
        contents: List[Any] = []
        if attachment is not None and attachment.is_image:
            contents.append(
                types.Part.from_bytes(data=attachment.payload(), mime_type=attachment.type)
            )
        elif attachment is not None:
            logger.info(f"Skipping non-image attachment '{attachment.name}' ({attachment.type})")
        contents.append(full_prompt)
        return contents

    async def generate(
        self,
        prompt: str,
        attachment: Optional[Attachment] = None,
        existing_code: Optional[GeneratedCode] = None,
        personalization_context: str = "",
    ) -> GeneratedCode:
        """
        Run one generation. Raises ConfigurationError before any network call
        when no API key is set, otherwise TransportError, MalformedResponseError
        or SchemaViolationError on failure.
        """
        client = self._get_client()

        full_prompt = build_generation_prompt(
            prompt,
            existing_code=existing_code,
            has_attachment=attachment is not None and attachment.is_image,
            personalization_context=personalization_context,
        )
        contents = self.build_contents(full_prompt, attachment)
        mode = "edit" if existing_code is not None else "create"
        logger.info(f"Starting {mode} generation with {self.model_name}")

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    client.models.generate_content,
                    model=self.model_name,
                    contents=contents,
                    config=types.GenerateContentConfig(
                        response_mime_type="application/json",
                        response_schema=RESPONSE_SCHEMA,
                    ),
                ),
                timeout=self.settings.generation_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Generation timed out after {self.settings.generation_timeout}s")
            raise TransportError("The AI took too long to respond. Please try again.") from e
        except genai_errors.APIError as e:
            logger.error(f"Gemini API error: {e}")
            raise TransportError(f"The AI service returned an error: {e.message or e.status}") from e
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Network error calling Gemini: {e}", exc_info=True)
            raise TransportError("Could not reach the AI service. Please try again.") from e

        text = getattr(response, "text", None)
        if not text:
            logger.error("No text parts found in Gemini response")
            raise TransportError("Empty response from model.")

        code = parse_generated_code(text)
        logger.info(f"Generated '{code.title}' ({len(code.html)} html chars)")
        return code
