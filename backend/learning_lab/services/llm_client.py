"""
External generation service clients.

Every component that talks to the generative model receives one of these
clients explicitly (see core/deps.py) instead of reaching for a module-level
instance, so tests can hand in a stub.

  generate_text(prompt, model, config)  -> raw text
  generate_image(prompt, model)         -> base64 JPEG or None

Any SDK or network problem surfaces as TransportError; callers never see
provider-specific exception types.
"""
from __future__ import annotations

import base64
import logging
from typing import Literal

from pydantic import BaseModel

logger = logging.getLogger("learninglab.llm")
_prompt_logger = logging.getLogger("learninglab.llm_prompts")


class TransportError(Exception):
    """The external service was unreachable, rate limited or returned an error."""


class GenerationConfig(BaseModel):
    response_format: Literal["text", "json"] = "text"
    tools: list[Literal["google_search"]] = []


class LLMClient:
    """Interface shared by every provider client."""

    def generate_text(
        self,
        prompt: str,
        model: str,
        config: GenerationConfig | None = None,
    ) -> str:
        raise NotImplementedError

    def generate_image(self, prompt: str, model: str) -> str | None:
        raise NotImplementedError


def _log_prompt(enabled: bool, model: str, prompt: str, config: GenerationConfig) -> None:
    if not enabled:
        return
    _prompt_logger.warning(
        "\n%s\n"
        "── PROMPT ──────────────────────────────────────────────\n%s\n"
        "── CONFIG ──────────────────────────────────────────────\n"
        "  model=%s  format=%s  tools=%s\n"
        "%s",
        "=" * 60,
        prompt,
        model,
        config.response_format,
        ",".join(config.tools) or "-",
        "=" * 60,
    )


class GeminiClient(LLMClient):
    def __init__(self, api_key: str, debug_prompts: bool = False):
        from google import genai

        self._client = genai.Client(api_key=api_key)
        self._debug_prompts = debug_prompts

    def generate_text(self, prompt, model, config=None):
        from google.genai import types

        config = config or GenerationConfig()
        _log_prompt(self._debug_prompts, model, prompt, config)

        tools = None
        if "google_search" in config.tools:
            tools = [types.Tool(google_search=types.GoogleSearch())]
        gen_config = types.GenerateContentConfig(
            response_mime_type="application/json" if config.response_format == "json" else None,
            tools=tools,
        )
        try:
            response = self._client.models.generate_content(
                model=model,
                contents=prompt,
                config=gen_config,
            )
        except Exception as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        return response.text or ""

    def generate_image(self, prompt, model):
        from google.genai import types

        _log_prompt(self._debug_prompts, model, prompt, GenerationConfig())
        try:
            response = self._client.models.generate_images(
                model=model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type="image/jpeg",
                ),
            )
        except Exception as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        images = response.generated_images or []
        if not images or images[0].image is None or not images[0].image.image_bytes:
            logger.warning("Image model %s returned no image", model)
            return None
        return base64.b64encode(images[0].image.image_bytes).decode("ascii")


class OpenAIClient(LLMClient):
    def __init__(self, api_key: str, debug_prompts: bool = False):
        from openai import OpenAI

        self._client = OpenAI(api_key=api_key)
        self._debug_prompts = debug_prompts

    def generate_text(self, prompt, model, config=None):
        config = config or GenerationConfig()
        _log_prompt(self._debug_prompts, model, prompt, config)
        if config.tools:
            logger.debug("OpenAI provider ignores tools: %s", config.tools)

        kwargs = {}
        if config.response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except Exception as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        return response.choices[0].message.content or ""

    def generate_image(self, prompt, model):
        _log_prompt(self._debug_prompts, model, prompt, GenerationConfig())
        try:
            response = self._client.images.generate(model=model, prompt=prompt, n=1)
        except Exception as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        data = response.data or []
        if not data or not data[0].b64_json:
            logger.warning("Image model %s returned no image", model)
            return None
        return data[0].b64_json
