"""Identity provisioning for joining players.

Demo mode hands out addresses from a fixed cycling pool. Real mode derives a
single address from a digest of the configured private key. Neither is a real
wallet derivation; the game only needs an opaque, stable identity string.
"""

import hashlib

PLACEHOLDER_PRIVATE_KEY = "your_ethereum_private_key_here"  # noqa: S105

MOCK_WALLETS: tuple[str, ...] = (
    "0x1234567890123456789012345678901234567890",
    "0x2345678901234567890123456789012345678901",
    "0x3456789012345678901234567890123456789012",
    "0x4567890123456789012345678901234567890123",
    "0x5678901234567890123456789012345678901234",
)

_ADDRESS_HEX_LENGTH = 40


class MockWalletPool:
    """Round-robin over a fixed list of demo addresses."""

    def __init__(self, addresses: tuple[str, ...] = MOCK_WALLETS) -> None:
        if not addresses:
            raise ValueError("Wallet pool needs at least one address")
        self._addresses = addresses
        self._index = 0

    def next_address(self) -> str:
        address = self._addresses[self._index]
        self._index = (self._index + 1) % len(self._addresses)
        return address


def derive_wallet_address(private_key: str | None) -> str | None:
    """
    Return a stable display address for the configured key, or None when unset.

    The address is the tail of a SHA-256 digest of the key, so nothing served
    over HTTP reveals key material. It is a placeholder identity, not the
    key's real on-chain address.
    """
    if private_key is None:
        return None
    key = private_key.strip()
    if not key or key == PLACEHOLDER_PRIVATE_KEY:
        return None
    digest = hashlib.sha256(key.removeprefix("0x").lower().encode()).hexdigest()
    return "0x" + digest[-_ADDRESS_HEX_LENGTH:]
