"""
CarbonV2 — Narrative Client
============================
Thin HTTP client for the hosted agent conversation API that turns
structured facts into prose.

    POST {base}/v1/conversations
    X-API-KEY: <key>
    {"agent_id": "...", "inputs": "<prompt>"}

Every failure (transport, non-2xx, undecodable body) is raised as
UpstreamError.  The caller decides whether the narrative was optional.
"""

import logging
from typing import Any, Optional

import httpx

from ..config import Settings
from ..engine.errors import UpstreamError

logger = logging.getLogger("carbonv2.narrative")

CONVERSATION_PATH = "/v1/conversations"


def first_text(response: Any) -> str:
    """
    Pull the first non-empty text out of a conversation response.

    Looks at message.content, then outputs[].content[].text, then a bare
    string `output`.  Returns "" when none is present.
    """
    if not isinstance(response, dict):
        return ""

    message = response.get("message") or {}
    if isinstance(message, dict) and message.get("content"):
        return str(message["content"])

    for output in response.get("outputs") or []:
        if not isinstance(output, dict):
            continue
        content = output.get("content")
        if isinstance(content, str) and content:
            return content
        for chunk in content or []:
            if isinstance(chunk, dict) and chunk.get("text"):
                return str(chunk["text"])

    output = response.get("output")
    if isinstance(output, str) and output:
        return output
    return ""


class NarrativeClient:
    """
    Async client for the conversation endpoint.
    Pass `transport` to route requests to a test double.
    """

    def __init__(
        self,
        api_key: str,
        agent_id: str,
        base_url: str = "https://api.mistral.ai",
        timeout: float = 25.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.agent_id = agent_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["NarrativeClient"]:
        """None when the key or the agent id is missing."""
        if not settings.narrative_configured:
            return None
        return cls(
            api_key=settings.MISTRAL_API_KEY,
            agent_id=settings.MISTRAL_AGENT_ID,
            base_url=settings.MISTRAL_API_BASE,
            timeout=settings.NARRATIVE_TIMEOUT_SECONDS,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"X-API-KEY": self.api_key},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def send_conversation(self, prompt: str) -> dict[str, Any]:
        """POST one prompt to the agent. Returns the decoded JSON body."""
        client = await self._get_client()
        try:
            resp = await client.post(
                CONVERSATION_PATH,
                json={"agent_id": self.agent_id, "inputs": prompt},
            )
        except httpx.HTTPError as e:
            logger.warning("Narrative request failed — %s", e.__class__.__name__)
            raise UpstreamError("narrative service unreachable") from None

        if resp.status_code >= 300:
            logger.warning("Narrative service answered %d", resp.status_code)
            raise UpstreamError(f"narrative service status {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            raise UpstreamError("narrative service returned an undecodable body") from None
        if not isinstance(body, dict):
            raise UpstreamError("narrative service returned an unexpected body")
        return body
