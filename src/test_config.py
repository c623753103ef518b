import keyring
import pytest

from config import DEFAULT_FORWARDER, KuruConfig
from errors import ConfigurationError

WALLET = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
KEY = "0x" + "00" * 31 + "01"


@pytest.fixture
def no_keyring(monkeypatch):
    monkeypatch.setattr(keyring, "get_password", lambda service, name: None)


def test_defaults():
    cfg = KuruConfig(wallet_address=WALLET.lower(), private_key=KEY)
    assert cfg.wallet_address == WALLET
    assert cfg.forwarder_address.lower() == DEFAULT_FORWARDER.lower()
    assert cfg.chain_id == 31337
    domain = cfg.domain
    assert (domain.name, domain.version, domain.chain_id) == ("KuruForwarder", "1.0.0", 31337)
    assert domain.verifying_contract.lower() == DEFAULT_FORWARDER.lower()


def test_private_key_hidden_from_repr():
    assert KEY not in repr(KuruConfig(wallet_address=WALLET, private_key=KEY))


def test_with_sandbox_returns_new_value():
    cfg = KuruConfig(wallet_address=WALLET, private_key=KEY, sandbox_relay_url="http://sandbox/")
    sandboxed = cfg.with_sandbox()
    assert sandboxed is not cfg
    assert cfg.sandbox is False
    assert sandboxed.sandbox is True
    assert sandboxed.active_relay_url == "http://sandbox/"
    assert cfg.active_relay_url == cfg.relay_url


def test_config_is_frozen():
    cfg = KuruConfig(wallet_address=WALLET, private_key=KEY)
    with pytest.raises(AttributeError):
        cfg.sandbox = True


@pytest.mark.parametrize("kw", [
    {"wallet_address": "0x1234"},
    {"forwarder_address": "not-an-address"},
    {"market_address": "0x" + "zz" * 20},
    {"private_key": ""},
])
def test_invalid_values(kw):
    fields = dict(wallet_address=WALLET, private_key=KEY)
    fields.update(kw)
    with pytest.raises(ConfigurationError):
        KuruConfig(**fields)


def test_from_env(no_keyring):
    cfg = KuruConfig.from_env({
        "KURU_WALLET_ADDRESS": WALLET,
        "KURU_PRIVATE_KEY": KEY,
        "KURU_CHAIN_ID": "10143",
        "KURU_MARKET_ADDRESS": "0x" + "22" * 20,
        "KURU_SANDBOX": "true",
        "KURU_LOG_JSON": "1",
    })
    assert cfg.chain_id == 10143
    assert cfg.market_address == "0x" + "22" * 20
    assert cfg.sandbox is True
    assert cfg.log_json is True


def test_from_env_falls_back_to_keyring(monkeypatch):
    stored = {("kuru", "private_key"): KEY, ("kuru", "wallet_address"): WALLET}
    monkeypatch.setattr(keyring, "get_password", lambda service, name: stored.get((service, name)))
    cfg = KuruConfig.from_env({})
    assert cfg.wallet_address == WALLET
    assert cfg.private_key == KEY


def test_from_env_missing_credentials(no_keyring):
    with pytest.raises(ConfigurationError) as exc:
        KuruConfig.from_env({"KURU_WALLET_ADDRESS": WALLET})
    assert exc.value.field == "private_key"
    with pytest.raises(ConfigurationError) as exc:
        KuruConfig.from_env({})
    assert exc.value.field == "wallet_address"


def test_from_env_bad_chain_id(no_keyring):
    with pytest.raises(ConfigurationError) as exc:
        KuruConfig.from_env({"KURU_WALLET_ADDRESS": WALLET, "KURU_PRIVATE_KEY": KEY, "KURU_CHAIN_ID": "mainnet"})
    assert exc.value.field == "KURU_CHAIN_ID"
    assert "config" in str(exc.value)
