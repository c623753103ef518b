# ============================================================================
# PROJECT: Kuru Forwarder Signing Client
# MODULE: bootstrap_credentials.py
# PURPOSE: One-time setup to validate the wallet key and store it in the
#          system keyring for KuruConfig.from_env().
# ============================================================================

import keyring
import os
import sys

from eth_account import Account

from config import KEYRING_SERVICE
from errors import KuruSignerError
from sign_core import parse_private_key, private_key_to_address


def bootstrap(environ=None) -> str:
    """
    Derives the wallet address for KURU_PRIVATE_KEY, cross-checks it against
    our own secp256k1 derivation and persists both to the system keyring.
    """
    env = os.environ if environ is None else environ
    private_key = env.get("KURU_PRIVATE_KEY")
    if not private_key:
        print("ERROR: Set KURU_PRIVATE_KEY environment variable.")
        print("  export KURU_PRIVATE_KEY=0x...")
        sys.exit(1)

    try:
        key_bytes = parse_private_key(private_key)
        account = Account.from_key(key_bytes)
        derived = private_key_to_address(key_bytes)
        if account.address != derived:
            print(f"[FATAL] Address derivation mismatch: {account.address} != {derived}")
            sys.exit(1)
        print(f"[OK] Bootstrapping credentials for wallet: {account.address}")

        # Persist to system keyring (encrypted, per-user)
        keyring.set_password(KEYRING_SERVICE, "private_key", "0x" + key_bytes.hex())
        keyring.set_password(KEYRING_SERVICE, "wallet_address", account.address)

        print(f"[OK] Key stored to system keyring (service '{KEYRING_SERVICE}')")
        print(f"\nNext steps:")
        print(f"  1. export KURU_MARKET_ADDRESS=0x... (order book contract)")
        print(f"  2. export KURU_FORWARDER_ADDRESS / KURU_CHAIN_ID for the target chain")
        print(f"  3. Run kuru_router.py for a dry-run signed order")
        return account.address

    except KuruSignerError as e:
        print(f"[FATAL] Credential bootstrap failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    bootstrap()
