from __future__ import annotations

import json
from urllib import request
from urllib.error import HTTPError, URLError


class LlmServiceError(Exception):
    pass


class ChatCompletionClient:
    """Minimal client for an OpenAI-compatible chat completions endpoint."""

    def __init__(self, *, api_url: str, api_key: str, model: str, timeout: float = 30.0) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        if not self.api_key:
            raise LlmServiceError("llm api key is not configured")
        body = json.dumps(
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        ).encode("utf-8")
        req = request.Request(
            self.api_url,
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with request.urlopen(req, timeout=self.timeout) as response:
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            raise LlmServiceError(f"llm api error: {exc.code} {exc.reason}") from exc
        except (URLError, TimeoutError) as exc:
            raise LlmServiceError("llm api request failed") from exc

        try:
            decoded = json.loads(raw)
            content = decoded["choices"][0]["message"]["content"]
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as exc:
            raise LlmServiceError("llm api response had no completion content") from exc
        if not isinstance(content, str):
            raise LlmServiceError("llm api completion content was not text")
        return content
