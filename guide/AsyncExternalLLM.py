from typing import List, Dict, Optional

import httpx

from guide.errors import GenerationFailure


class AsyncExternalLLM:
    """
    Async client for an OpenAI-compatible chat completion deployment
    (Azure OpenAI REST). One request, one completion; no streaming.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str = "gpt-4o",
        api_version: str = "2024-06-01",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.deployment = deployment
        self.api_version = api_version
        self.endpoint = f"{endpoint.rstrip('/')}/openai/deployments/{deployment}/chat/completions"
        self.headers = {
            "api-key": api_key,
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=60.0)

    async def complete(self, messages: List[Dict], temperature: float = 0.7) -> str:
        """
        Sends a chat request and returns the first choice's content.
        Any transport, HTTP or shape error becomes GenerationFailure.
        """
        payload = {
            "messages": messages,
            "temperature": temperature,
        }

        try:
            response = await self._client.post(
                self.endpoint,
                params={"api-version": self.api_version},
                headers=self.headers,
                json=payload,
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationFailure(f"Completion request failed: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailure(f"Malformed completion response: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise GenerationFailure("Completion returned no text")
        return content.strip()

    async def aclose(self):
        await self._client.aclose()
