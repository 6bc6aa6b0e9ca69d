"""OpenAI-compatible Chat Completions Client"""

import http.client
import json
import socket
import urllib.error
import urllib.request

from commitgen.llm.base import LLMClient, LLMError, LLMResponse


class ChatCompletionsClient(LLMClient):
    """Client for any `/chat/completions` endpoint (DeepSeek, OpenAI, Ollama's /v1)."""

    DEFAULT_BASE_URL = "https://api.deepseek.com"
    DEFAULT_TIMEOUT = 120

    def __init__(self, model: str, api_key: str | None = None, base_url: str | None = None,
                 timeout: int | None = None):
        if not api_key:
            raise LLMError(
                "No API key found. Set CM_API_KEY environment variable:\n"
                "  export CM_API_KEY='your-key-here'"
            )
        self.model = model
        self.api_key = api_key
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip('/')
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    def name(self) -> str:
        return self.model

    def _call_api(self, system: str, prompt: str) -> dict:
        """Make a single non-streaming chat completion request."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
        }
        data = json.dumps(payload).encode('utf-8')
        req = urllib.request.Request(
            f"{self.base_url}/chat/completions",
            data=data,
            method='POST',
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as response:
            return json.loads(response.read().decode('utf-8'))

    def generate(self, system: str, prompt: str) -> LLMResponse:
        try:
            result = self._call_api(system, prompt)
        except urllib.error.HTTPError as e:
            body = e.read().decode('utf-8', errors='replace')[:300]
            raise LLMError(f"{self.model} request failed: {e.code} {body}".rstrip())
        except urllib.error.URLError as e:
            if isinstance(e.reason, (socket.timeout, TimeoutError)):
                raise LLMError(f"{self.model} request timed out after {self.timeout}s. Increase CM_TIMEOUT.")
            raise LLMError(f"{self.model} request failed: {e.reason}")
        except TimeoutError:
            raise LLMError(f"{self.model} request timed out after {self.timeout}s. Increase CM_TIMEOUT.")
        except json.JSONDecodeError:
            raise LLMError(f"{self.model} returned a body that is not JSON")
        except http.client.HTTPException as e:
            raise LLMError(f"Incomplete response from {self.model}: {e}")
        except OSError as e:
            raise LLMError(f"Connection to {self.base_url} lost: {e}")

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise LLMError(f"{self.model} response has no choices[0].message.content")
        if not isinstance(content, str) or not content.strip():
            raise LLMError(f"{self.model} returned an empty message")

        usage = result.get("usage") or {}
        return LLMResponse(
            content=content.strip(),
            model=result.get("model", self.model),
            tokens_used=usage.get("total_tokens", 0) if isinstance(usage, dict) else 0,
        )
