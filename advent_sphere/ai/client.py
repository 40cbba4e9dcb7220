"""
AI provider clients

- Image generation: Cloudflare Workers AI (flux-1-schnell) over its REST API
- Prompt generation: Google Gemini through google-genai, in JSON mode
"""
import os
import json
import random
import logging
from typing import Optional

import requests
from google import genai
from google.genai import errors, types
from pydantic import BaseModel

logger = logging.getLogger(__name__)

CLOUDFLARE_ACCOUNT_ID = os.getenv("CLOUDFLARE_ACCOUNT_ID")
CLOUDFLARE_API_TOKEN = os.getenv("CLOUDFLARE_API_TOKEN")
CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4/accounts"
IMAGE_MODEL = "@cf/black-forest-labs/flux-1-schnell"

GOOGLE_GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

REQUEST_TIMEOUT = 60

PROMPT_SYSTEM_INSTRUCTION = """\
You are a prompt generator for image creation. Given a theme from the user, \
output strictly a valid JSON object with two keys: "feedback" and "query".

- "feedback": A short, concise comment or suggestion in Japanese.
- "query": A vivid and detailed image generation prompt in English based on the context.

Do not output any text outside the JSON object.
"""


class AIServiceError(Exception):
    """The provider is not configured or returned an unusable response."""


class PromptSuggestion(BaseModel):
    """Response schema Gemini is asked to follow."""
    feedback: str
    query: str


def generate_image(prompt: str, seed: Optional[int] = None) -> str:
    """
    Generate a JPEG for the prompt.
    Returns the image as a base64 string (no data URI prefix).
    """
    if not CLOUDFLARE_ACCOUNT_ID or not CLOUDFLARE_API_TOKEN:
        raise AIServiceError("Cloudflare Workers AI is not configured")

    url = f"{CLOUDFLARE_API_URL}/{CLOUDFLARE_ACCOUNT_ID}/ai/run/{IMAGE_MODEL}"
    headers = {"Authorization": f"Bearer {CLOUDFLARE_API_TOKEN}"}
    payload = {
        "prompt": prompt,
        "seed": seed if seed is not None else random.randrange(10),
    }

    try:
        response = requests.post(url, headers=headers, json=payload, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Cloudflare image generation request failed: {e}")
        raise AIServiceError(f"Image generation request failed: {e}") from e

    try:
        image = (response.json().get("result") or {}).get("image")
    except ValueError as e:
        raise AIServiceError(f"Image generation returned invalid JSON: {e}") from e
    if not image:
        raise AIServiceError("Image generation returned no image")
    return image


def _history_contents(history: list[dict]) -> list[types.Content]:
    return [
        types.Content(role=message["role"], parts=[types.Part.from_text(text=message["content"])])
        for message in history
    ]


def generate_prompt(theme: str, history: list[dict]) -> dict:
    """
    Turn a theme (plus the conversation so far) into an English image prompt
    and a short feedback comment: {"prompt": ..., "feedback": ...}.
    """
    if not GOOGLE_GEMINI_API_KEY:
        raise AIServiceError("Gemini is not configured")

    client = genai.Client(api_key=GOOGLE_GEMINI_API_KEY)
    contents = _history_contents(history) + [
        types.Content(role="user", parts=[types.Part.from_text(text=f"Theme: {theme}")])
    ]
    config = types.GenerateContentConfig(
        system_instruction=PROMPT_SYSTEM_INSTRUCTION,
        response_mime_type="application/json",
        response_schema=PromptSuggestion,
    )

    try:
        completion = client.models.generate_content(
            model=GEMINI_MODEL, contents=contents, config=config
        )
    except errors.APIError as e:
        logger.error(f"Gemini prompt generation failed: {e}")
        raise AIServiceError(f"Prompt generation failed: {e}") from e

    try:
        result = json.loads((completion.text or "").strip() or "{}")
    except json.JSONDecodeError as e:
        raise AIServiceError(f"Prompt generation returned invalid JSON: {e}") from e
    if not isinstance(result, dict):
        result = {}

    logger.info(f"Generated prompt for theme {theme!r}")
    return {
        "prompt": result.get("query") or "",
        "feedback": result.get("feedback") or "",
    }
