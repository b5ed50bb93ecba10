"""Anthropic API client abstraction."""
import asyncio
import json
import logging

from anthropic import AsyncAnthropic

from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class APIClient:
    """Wrapper around Anthropic API with bounded retry and timeout handling."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-haiku-4-5",
        max_retries: int = 2,
        timeout: float = 30.0,
        retry_delay: float = 1.0,
    ):
        self.client = AsyncAnthropic(api_key=api_key)
        self.model = model
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        self.retry_delay = retry_delay

    async def _create(self, prompt: str, max_tokens: int):
        return await asyncio.wait_for(
            self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=0.1,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}]
            ),
            timeout=self.timeout
        )

    async def call(
        self,
        prompt: str,
        max_tokens: int = 1200,
        semaphore: asyncio.Semaphore | None = None
    ) -> str:
        """Call the API, retrying a bounded number of times with backoff."""
        for attempt in range(self.max_retries):
            try:
                if semaphore:
                    async with semaphore:
                        response = await self._create(prompt, max_tokens)
                else:
                    response = await self._create(prompt, max_tokens)
                return response.content[0].text.strip()

            except Exception as e:
                if attempt < self.max_retries - 1:
                    logger.info("API call failed (%s), retrying", type(e).__name__)
                    await asyncio.sleep(self.retry_delay * 2 ** attempt)
                    continue
                raise


def parse_json(content: str) -> dict:
    """Parse a JSON object from an LLM response, tolerating code fences and chatter."""
    content = content.strip()

    if content.startswith("```"):
        content = content.strip("`")
        if content[:4].lower() == "json":
            content = content[4:]
        content = content.strip()

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        # Fall back to the outermost object in the text
        start, end = content.find("{"), content.rfind("}")
        if start < 0 or end <= start:
            raise ValueError(f"No JSON object in response: {content[:200]!r}")
        try:
            data = json.loads(content[start:end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
