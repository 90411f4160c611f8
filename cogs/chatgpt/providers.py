"""
ChatGPT Provider for the ChatGPT Module
=======================================

Talks to the ChatGPT web backend using a browser session token.
"""

import json
import time
import uuid
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import aiohttp

from .config import DEFAULT_BASE_URL, DEFAULT_MODEL
from .exceptions import (
    ProviderException,
    TimeoutException,
    AuthenticationException
)

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__Secure-next-auth.session-token"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/108.0.0.0 Safari/537.36"
)
# Access tokens are handed out for a few hours; refresh well before that.
ACCESS_TOKEN_TTL = 60 * 60
AUTH_TIMEOUT = 30.0


@dataclass
class LLMResponse:
    """Response from the ChatGPT backend."""
    content: str
    provider_name: str
    model: str
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None
    response_time: Optional[float] = None


def parse_event_stream(lines: Iterable[str]) -> Optional[Dict]:
    """
    Return the last complete event from a server-sent event stream.

    Each event carries the whole answer so far, so the final ``data:`` payload
    before ``[DONE]`` holds the full text. Lines that are not JSON are skipped.
    """
    last_event = None
    for line in lines:
        line = line.strip()
        if not line.startswith("data:"):
            continue

        payload = line[len("data:"):].strip()
        if payload == "[DONE]":
            break

        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            continue

        if isinstance(event, dict) and event.get("message"):
            last_event = event

    return last_event


def extract_text(event: Dict) -> str:
    parts = event.get("message", {}).get("content", {}).get("parts") or []
    return parts[0] if parts else ""


class ChatGPTClient:
    """
    Session-token client for ChatGPT.

    The session token is long lived and may be rotated by the backend; the
    access token derived from it is cached and refreshed when stale.
    """

    name = "chatgpt"

    def __init__(
        self,
        session_token: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        user_agent: str = USER_AGENT
    ):
        self.session_token = session_token
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.user_agent = user_agent

        self._access_token: Optional[str] = None
        self._access_token_expires = 0.0
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent}
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _access_token_valid(self) -> bool:
        return self._access_token is not None and time.monotonic() < self._access_token_expires

    async def ensure_auth(self) -> str:
        """
        Make sure a usable access token is cached.

        Returns:
            The current session token, which differs from the one the client
            was built with if the backend rotated it.

        Raises:
            AuthenticationException: If the session token is rejected
            ProviderException: On network or unexpected backend errors
        """
        if not self._access_token_valid():
            await self.refresh_access_token()
        return self.session_token

    async def refresh_access_token(self) -> str:
        session = await self._get_session()
        url = f"{self.base_url}/api/auth/session"
        headers = {"Cookie": f"{SESSION_COOKIE}={self.session_token}"}

        logger.info(f"[{self.name}] 🔑 Refreshing access token")

        try:
            async with session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=AUTH_TIMEOUT)
            ) as response:
                if response.status in (401, 403):
                    raise AuthenticationException(self.name)

                if response.status != 200:
                    error_text = await response.text()
                    raise ProviderException(
                        self.name,
                        f"Auth error (status {response.status}): {error_text[:200]}"
                    )

                result = await response.json(content_type=None)
                rotated = response.cookies.get(SESSION_COOKIE)

        except asyncio.TimeoutError:
            raise TimeoutException(self.name, AUTH_TIMEOUT)

        except aiohttp.ClientError as e:
            raise ProviderException(
                self.name,
                f"Network error: {str(e)}",
                e
            )

        access_token = (result or {}).get("accessToken")
        if not access_token:
            raise AuthenticationException(self.name, "Session response contained no access token")

        if rotated is not None and rotated.value and rotated.value != self.session_token:
            logger.info(f"[{self.name}] 🔄 Session token rotated by backend")
            self.session_token = rotated.value

        self._access_token = access_token
        self._access_token_expires = time.monotonic() + ACCESS_TOKEN_TTL
        return access_token

    async def generate(self, prompt: str, timeout: float) -> LLMResponse:
        """
        Start a new conversation with ``prompt`` and wait for the answer.

        Args:
            prompt: User text
            timeout: Seconds before the local wait gives up

        Returns:
            LLMResponse object
        """
        await self.ensure_auth()

        start_time = time.time()
        session = await self._get_session()

        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        data = {
            "action": "next",
            "messages": [
                {
                    "id": str(uuid.uuid4()),
                    "role": "user",
                    "content": {"content_type": "text", "parts": [prompt]},
                }
            ],
            "model": self.model,
            "parent_message_id": str(uuid.uuid4()),
        }

        url = f"{self.base_url}/backend-api/conversation"
        logger.info(f"[{self.name}] 📤 Sending POST to {url}")

        try:
            async with session.post(
                url,
                headers=headers,
                json=data,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                logger.info(f"[{self.name}] 📥 Got response: HTTP {response.status}")

                if response.status == 401:
                    # Force a refresh on the next call
                    self._access_token = None
                    raise AuthenticationException(self.name)

                elif response.status == 429:
                    raise ProviderException(
                        self.name,
                        "Rate limited. Please try again later."
                    )

                elif response.status != 200:
                    error_text = await response.text()
                    raise ProviderException(
                        self.name,
                        f"API error (status {response.status}): {error_text[:200]}"
                    )

                lines = []
                async for raw_line in response.content:
                    lines.append(raw_line.decode("utf-8", errors="replace"))

        except asyncio.TimeoutError:
            raise TimeoutException(self.name, timeout)

        except aiohttp.ClientError as e:
            raise ProviderException(
                self.name,
                f"Network error: {str(e)}",
                e
            )

        event = parse_event_stream(lines)
        content = extract_text(event) if event else ""
        if not content:
            raise ProviderException(self.name, "Empty response from ChatGPT")

        response_time = time.time() - start_time
        logger.info(f"[{self.name}] Response received in {response_time:.2f}s")

        return LLMResponse(
            content=content,
            provider_name=self.name,
            model=self.model,
            conversation_id=event.get("conversation_id"),
            message_id=event["message"].get("id"),
            response_time=response_time
        )

    async def send_message(self, text: str, timeout_ms: int) -> str:
        """Send ``text`` and return ChatGPT's answer."""
        response = await self.generate(text, timeout_ms / 1000)
        return response.content

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
