import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytest_asyncio

from cogs.chatgpt.cog import MentionResponder
from cogs.chatgpt.config import ChatGPTConfig
from cogs.chatgpt.storage import KeyValueStore

BOT_ID = 1234


class FakeChatGPT:
    """Stands in for ChatGPTClient."""

    def __init__(self):
        self.token = None
        self.kwargs = {}
        self.answer = "Python is a programming language."
        self.error = None
        self.auth_error = None
        self.rotated_token = None
        self.gate = None
        self.sent = []
        self.closed = False

    async def ensure_auth(self):
        if self.auth_error is not None:
            raise self.auth_error
        if self.rotated_token:
            self.token = self.rotated_token
        return self.token

    async def send_message(self, text, timeout_ms):
        self.sent.append((text, timeout_ms))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.answer

    async def close(self):
        self.closed = True


def http_error(status=500):
    response = MagicMock()
    response.status = status
    response.reason = "Internal Server Error"
    return discord.HTTPException(response, "boom")


def make_message(content, message_id=1):
    placeholder = MagicMock()
    placeholder.id = 1000 + message_id
    placeholder.edit = AsyncMock()

    message = MagicMock()
    message.content = content
    message.id = message_id
    message.channel.id = 42
    message.reply = AsyncMock(return_value=placeholder)
    message.add_reaction = AsyncMock()
    return message


async def wait_for(predicate, attempts=200):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.fixture
def config(tmp_path):
    return ChatGPTConfig(
        token="initial-token",
        timeout_ms=1000,
        cooldown_ms=1,
        storage_path=str(tmp_path / "store.json"),
    )


@pytest.fixture
def store(config):
    return KeyValueStore(config.storage_path)


@pytest.fixture
def fake_client():
    return FakeChatGPT()


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.user.id = BOT_ID
    return bot


@pytest.fixture
def make_cog(bot, config, store, fake_client):
    def factory(token, **kwargs):
        fake_client.token = token
        fake_client.kwargs = kwargs
        return fake_client

    def build():
        return MentionResponder(bot, config=config, storage=store, client_factory=factory)

    return build


@pytest_asyncio.fixture
async def cog(make_cog):
    cog = make_cog()
    await cog.cog_load()
    return cog
