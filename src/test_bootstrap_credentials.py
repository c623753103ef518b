import keyring
import pytest

from bootstrap_credentials import bootstrap
from config import KuruConfig

KEY = "0x" + "00" * 31 + "01"
WALLET = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"


@pytest.fixture
def fake_keyring(monkeypatch):
    store = {}
    monkeypatch.setattr(keyring, "set_password", lambda s, n, v: store.__setitem__((s, n), v))
    monkeypatch.setattr(keyring, "get_password", lambda s, n: store.get((s, n)))
    return store


def test_bootstrap_stores_key_and_wallet(fake_keyring):
    assert bootstrap({"KURU_PRIVATE_KEY": KEY}) == WALLET
    assert fake_keyring[("kuru", "wallet_address")] == WALLET
    assert fake_keyring[("kuru", "private_key")] == KEY

    cfg = KuruConfig.from_env({})
    assert cfg.wallet_address == WALLET


def test_bootstrap_requires_key(fake_keyring):
    with pytest.raises(SystemExit):
        bootstrap({})
    assert fake_keyring == {}


def test_bootstrap_rejects_invalid_key(fake_keyring):
    with pytest.raises(SystemExit):
        bootstrap({"KURU_PRIVATE_KEY": "0x" + "00" * 32})
    assert fake_keyring == {}
