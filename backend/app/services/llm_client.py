"""
Language Model Client
Connects the pattern analysis engine to the Gemini text-generation API
"""
import httpx
import logging
from typing import Optional, Protocol

from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# Timeout settings
TIMEOUT = httpx.Timeout(60.0, connect=10.0)


class LLMServiceError(Exception):
    """The language model service failed or answered with an error status."""


class LLMClient(Protocol):
    """Narrow capability the insight augmenter depends on."""

    async def generate(self, system_prompt: str, user_input: str) -> Optional[str]:
        ...


class GeminiClient:
    """
    Gemini generateContent client with strict JSON-object output.

    Usage:
        client = GeminiClient(api_key)
        text = await client.generate(system_prompt, user_input)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.3,
        timeout: httpx.Timeout = TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.timeout = timeout
        self.transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, system_prompt: str, user_input: str) -> dict:
        return {
            "system_instruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"parts": [{"text": user_input}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "responseMimeType": "application/json",
            },
        }

    async def generate(self, system_prompt: str, user_input: str) -> Optional[str]:
        """
        Run one generation call.

        Returns:
            The first candidate's text, or None when the response has none

        Raises:
            LLMServiceError: non-2xx status or a body that is not JSON
            httpx.HTTPError: transport failures
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.url,
                params={"key": self.api_key},
                json=self.build_payload(system_prompt, user_input),
            )

        if response.is_error:
            raise LLMServiceError(
                f"Gemini API error: {response.status_code} {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LLMServiceError(f"Gemini API returned invalid JSON: {e}") from e

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None


def create_llm_client(settings: Optional[Settings] = None) -> Optional[GeminiClient]:
    """
    Build the configured client.

    Returns None when no API key is configured; running without a model
    is a normal mode and the augmenter falls back to its default output.
    """
    settings = settings or default_settings
    if not settings.gemini_api_key:
        logger.info("GEMINI_API_KEY not configured - insight augmentation disabled")
        return None

    return GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        temperature=settings.llm_temperature,
        timeout=httpx.Timeout(settings.llm_timeout_seconds, connect=10.0),
    )
