from __future__ import annotations

import re

# Solana public keys: base58 (no 0, O, I, l), 32 bytes -> 32..44 chars
_BASE58_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_wallet_address(address: str) -> bool:
    return bool(address) and _BASE58_ADDRESS.fullmatch(address) is not None
