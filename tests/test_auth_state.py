import pytest
from linkstate_core import codec
from linkstate_core.auth_state import AuthStateManager
from linkstate_core.crypto import init_auth_creds
from linkstate_core.errors import PersistenceUnavailable, UnknownKeyType
from linkstate_core.keys import AppStateSyncKeyData, AppStateSyncKeyFingerprint
from linkstate_core.storage import InMemoryStorage, SQLiteStorage


def _manager(provider=None, key="K"):
    return AuthStateManager.load(key, provider or InMemoryStorage())


def test_fresh_bootstrap_has_empty_store():
    provider = InMemoryStorage()
    m = _manager(provider)
    assert m.keys.data == {}
    assert m.creds.registration_id >= 0
    # bootstrap alone does not write anything
    assert provider.load("K") is None


def test_set_is_merge_only():
    m = _manager()
    m.keys.set({"pre-key": {"1": {"public": b"A", "private": b"a"}}})
    m.keys.set({"pre-key": {"2": {"public": b"B", "private": b"b"}}})

    got = m.keys.get("pre-key", {"1", "2"})
    assert got == {
        "1": {"public": b"A", "private": b"a"},
        "2": {"public": b"B", "private": b"b"},
    }


def test_set_overwrites_only_supplied_ids():
    m = _manager()
    m.keys.set({"session": {"a": b"1", "b": b"2"}})
    m.keys.set({"session": {"a": b"3"}})
    assert m.keys.get("session", ["a", "b"]) == {"a": b"3", "b": b"2"}


def test_none_value_removes_only_that_id():
    m = _manager()
    m.keys.set({"session": {"a": b"1", "b": b"2"}})
    m.keys.set({"session": {"a": None}})
    assert m.keys.get("session", ["a", "b"]) == {"b": b"2"}


def test_namespace_isolation():
    m = _manager()
    m.keys.set({"session": {"1": b"session-bytes"}})
    assert m.keys.get("pre-key", {"1"}) == {}
    assert m.keys.get("session", {"1"}) == {"1": b"session-bytes"}


def test_absent_ids_are_omitted():
    m = _manager()
    assert m.keys.get("sender-key", {"missing"}) == {}
    m.keys.set({"sender-key": {"abc": b"x"}})
    assert m.keys.get("sender-key", ["abc", "missing"]) == {"abc": b"x"}


def test_unknown_key_type_fails_fast_without_mutation():
    provider = InMemoryStorage()
    m = _manager(provider)
    with pytest.raises(UnknownKeyType):
        m.keys.set({"session": {"1": b"x"}, "identity-key": {"1": b"y"}})
    assert m.keys.data == {}
    assert provider.load("K") is None

    with pytest.raises(KeyError):
        m.keys.get("identity-key", ["1"])


def test_app_state_sync_key_is_materialized():
    m = _manager()
    key = AppStateSyncKeyData(
        key_data=b"\x01" * 32,
        fingerprint=AppStateSyncKeyFingerprint(raw_id=7, current_index=1, device_indexes=[0, 1]),
        timestamp=1700000000,
    )
    m.keys.set({"app-state-sync-key": {"AAAAAQ==": key}})

    # stored as plain data so the codec can persist it
    assert isinstance(m.keys.data["appStateSyncKeys"]["AAAAAQ=="], dict)

    got = m.keys.get("app-state-sync-key", ["AAAAAQ=="])
    assert got == {"AAAAAQ==": key}


def test_app_state_sync_key_from_camel_case_mapping():
    m = _manager()
    m.keys.set({"app-state-sync-key": {"k": {"keyData": b"\x02", "fingerprint": {"rawId": 3}, "timestamp": 5}}})
    got = m.keys.get("app-state-sync-key", ["k"])["k"]
    assert isinstance(got, AppStateSyncKeyData)
    assert got.key_data == b"\x02"
    assert got.fingerprint.raw_id == 3
    assert got.timestamp == 5


def test_set_is_durable_across_instances(tmp_path):
    path = str(tmp_path / "state.db")
    m = _manager(SQLiteStorage(path))
    m.keys.set({"session": {"jid.0": b"\x00\xff"}})

    fresh = AuthStateManager.load("K", SQLiteStorage(path))
    assert fresh.keys.get("session", ["jid.0"]) == {"jid.0": b"\x00\xff"}
    assert fresh.creds == m.creds


def test_clear_state_leads_to_fresh_bootstrap():
    provider = InMemoryStorage()
    m = _manager(provider)
    m.keys.set({"pre-key": {"1": {"public": b"p", "private": b"q"}}})
    m.clear_state()

    assert provider.load("K") is None
    # in-memory store untouched
    assert m.keys.get("pre-key", ["1"]) != {}

    fresh = AuthStateManager.load("K", provider)
    assert fresh.keys.data == {}
    assert fresh.creds != m.creds


def test_corrupt_blob_falls_back_to_fresh(caplog):
    provider = InMemoryStorage()
    provider.store("K", "{definitely not json")
    m = AuthStateManager.load("K", provider)
    assert m.keys.data == {}
    assert "unreadable" in caplog.text


def test_wrong_shape_blob_falls_back_to_fresh():
    provider = InMemoryStorage()
    provider.store("K", '{"creds": 1, "keys": {}}')
    assert AuthStateManager.load("K", provider).keys.data == {}

    provider.store("K", codec.encode({"creds": init_auth_creds().to_dict(), "keys": {"sessions": []}}))
    assert AuthStateManager.load("K", provider).keys.data == {}


def test_set_propagates_persistence_failure(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "state.db"))
    m = _manager(storage)
    storage.close()
    with pytest.raises(PersistenceUnavailable):
        m.keys.set({"session": {"1": b"x"}})


def test_save_state_is_idempotent():
    provider = InMemoryStorage()
    m = _manager(provider)
    m.save_state()
    first = provider.load("K")
    m.save_state()
    assert provider.load("K") == first


def test_replace_creds_then_save():
    provider = InMemoryStorage()
    m = _manager(provider)
    new_creds = init_auth_creds()
    new_creds.registered = True
    m.replace_creds(new_creds)
    m.save_state()

    assert AuthStateManager.load("K", provider).creds == new_creds
    assert m.state.creds is new_creds
    assert m.state.keys is m.keys


def test_sender_key_scenario():
    provider = InMemoryStorage()
    m = AuthStateManager.load("K", provider)
    assert m.keys.data == {}

    buf = bytes(range(10))
    m.keys.set({"sender-key": {"abc": buf}})

    assert m.keys.get("sender-key", {"abc"}) == {"abc": buf}
    stored = codec.decode(provider.load("K"))
    assert stored["keys"] == {"senderKeys": {"abc": buf}}


def test_clear_state_holds_the_state_lock():
    import threading

    held = []

    class WatchingStorage(InMemoryStorage):
        def delete(self, identity_key):
            t = threading.Thread(target=lambda: held.append(not m.lock.acquire(blocking=False)))
            t.start()
            t.join()
            super().delete(identity_key)

    provider = WatchingStorage()
    m = _manager(provider)
    m.save_state()
    m.clear_state()

    assert held == [True]
    assert provider.load("K") is None
