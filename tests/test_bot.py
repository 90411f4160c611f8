from unittest.mock import AsyncMock, MagicMock

import pytest

from bot import COMMAND_PREFIX, EXTENSIONS, Bot


@pytest.mark.asyncio
async def test_mentions_do_not_invoke_commands():
    client = Bot()
    message = MagicMock()
    message.content = "<@1234> gptstats"

    prefix = await client.get_prefix(message)

    assert prefix == COMMAND_PREFIX
    assert not message.content.startswith(prefix)


@pytest.mark.asyncio
async def test_setup_hook_loads_extensions_and_syncs_commands(monkeypatch):
    client = Bot()
    load_extension = AsyncMock()
    sync = AsyncMock(return_value=[MagicMock()])
    monkeypatch.setattr(client, "load_extension", load_extension)
    monkeypatch.setattr(client.tree, "sync", sync)

    await client.setup_hook()

    assert [call.args[0] for call in load_extension.await_args_list] == EXTENSIONS
    sync.assert_awaited_once()
