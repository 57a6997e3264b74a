"""
Thin wrapper around the OpenAI chat completions API.
"""
from typing import Any, Dict, List, Optional
import openai
from core.config import LLMConfig, settings
from core.exceptions import AIServiceException, ConfigurationException
from core.logging import get_logger

logger = get_logger("llm_client")

Message = Dict[str, Any]


class LLMClient:
    """
    Chat-completion client built from an ``LLMConfig``.

    The key is checked when a call is made, not at construction, so the
    application starts without one and only the LLM-backed operations fail.
    An ``openai.AsyncOpenAI``-compatible client can be passed in for tests.
    """

    def __init__(self, config: LLMConfig, client: Optional[Any] = None):
        self.config = config
        self._client = client

    def _get_client(self):
        if not self.config.api_key:
            logger.error("OpenAI API key not configured")
            raise ConfigurationException("OpenAI API key not configured", setting="openai_api_key")
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Send one chat completion request and return the first choice's text.

        Raises:
            ConfigurationException: If no API key is configured
            AIServiceException: If the provider answers with an error or is unreachable
        """
        message = await self.complete_message(messages, model=model, max_tokens=max_tokens,
                                              temperature=temperature)
        return message.content or ""

    async def complete_message(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ):
        """
        Like ``complete``, but returns the first choice's whole message so
        callers offering ``tools`` can read its ``tool_calls``.
        """
        client = self._get_client()
        model = model or self.config.model
        max_tokens = max_tokens or self.config.max_tokens
        temperature = self.config.temperature if temperature is None else temperature

        request = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if tools:
            request["tools"] = tools

        logger.info("Sending chat completion", model=model, max_tokens=max_tokens,
                    message_count=len(messages), tool_count=len(tools or []))
        try:
            response = await client.chat.completions.create(**request)
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else str(e)
            logger.error("OpenAI API error", status_code=e.status_code, body=body[:500])
            raise AIServiceException(
                detail=f"OpenAI API error: {e.status_code} - {body}",
                upstream_status=e.status_code,
                body=body,
            )
        except openai.APIConnectionError as e:
            logger.error("OpenAI API unreachable", error=str(e))
            raise AIServiceException(detail=f"OpenAI API unreachable: {e}")

        message = response.choices[0].message
        logger.info("Chat completion received", model=model, response_length=len(message.content or ""),
                    tool_calls=len(getattr(message, "tool_calls", None) or []))
        return message

    async def complete_with_image(self, prompt: str, image_url: str, max_tokens: Optional[int] = None) -> str:
        """Ask the vision model about one image given as a URL or data URL."""
        messages = [{
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        }]
        return await self.complete(messages, model=self.config.vision_model, max_tokens=max_tokens)


def get_llm_client() -> LLMClient:
    """FastAPI dependency building a client from settings."""
    return LLMClient(settings.llm_config())
