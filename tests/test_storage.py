import json

import pytest

from cogs.chatgpt.exceptions import StorageException
from cogs.chatgpt.storage import KeyValueStore


@pytest.mark.asyncio
async def test_set_if_not_exists_only_writes_once(tmp_path):
    store = KeyValueStore(str(tmp_path / "kv.json"))

    assert await store.set_if_not_exists("gpt_answered", "0") is True
    await store.set("gpt_answered", "5")
    assert await store.set_if_not_exists("gpt_answered", "0") is False

    assert store.get("gpt_answered") == "5"


@pytest.mark.asyncio
async def test_values_survive_reload(tmp_path):
    path = tmp_path / "nested" / "kv.json"
    store = KeyValueStore(str(path))
    await store.set("gpt_token", "abc")

    assert json.loads(path.read_text(encoding="utf-8")) == {"gpt_token": "abc"}
    assert KeyValueStore(str(path)).get("gpt_token") == "abc"


def test_missing_key_returns_none(tmp_path):
    assert KeyValueStore(str(tmp_path / "kv.json")).get("nope") is None


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "kv.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageException):
        KeyValueStore(str(path))
