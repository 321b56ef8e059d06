import os
import stat
from datetime import datetime, timezone

import pytest

from vuesync.infrastructure.auth.token_store import TokenStore
from vuesync.schemas.auth import Token
from vuesync.utils.atom import Atom


def test_missing_file_loads_none(tmp_path):
    assert TokenStore(tmp_path / "auth.json").load() is None


def test_save_then_load(tmp_path):
    store = TokenStore(tmp_path / "nested" / "auth.json")
    token = Token(
        access_token="a",
        id_token="i",
        refresh_token="r",
        expiry=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )

    store.save(token)

    assert store.load() == token
    mode = stat.S_IMODE(os.stat(store.path).st_mode)
    assert mode == 0o600


def test_invalid_file_raises(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text('{"expiry": "not a date"}')

    with pytest.raises(ValueError):
        TokenStore(path).load()


def test_watcher_persists_new_tokens(tmp_path):
    store = TokenStore(tmp_path / "auth.json")
    holder = Atom(store.load())
    holder.watch(store.on_token_change)

    holder.reset(Token(id_token="fresh"))

    assert store.load().id_token == "fresh"
    assert [p.name for p in tmp_path.iterdir()] == ["auth.json"]
