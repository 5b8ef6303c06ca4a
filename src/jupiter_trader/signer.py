import base64
import binascii
import json
from typing import Optional

import base58
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from .errors import ConfigError
from .models import SignedTransaction, SwapTransaction


def load_keypair(raw: Optional[str]) -> Keypair:
    """Accepts a base58 secret key or a JSON array of 64 secret-key bytes."""
    if not raw or not raw.strip():
        raise ConfigError("PRIVATE_KEY is not set")
    text = raw.strip()
    # Never echo the secret itself in an error.
    try:
        if text.startswith("["):
            secret = bytes(json.loads(text))
        else:
            secret = base58.b58decode(text)
    except (ValueError, TypeError):
        raise ConfigError("PRIVATE_KEY is neither base58 nor a JSON byte array") from None
    if len(secret) != 64:
        raise ConfigError(f"PRIVATE_KEY decoded to {len(secret)} bytes, expected 64")
    try:
        return Keypair.from_bytes(secret)
    except ValueError:
        raise ConfigError("PRIVATE_KEY is not a valid Solana keypair") from None


class TransactionSigner:
    def __init__(self, keypair: Keypair) -> None:
        self.keypair = keypair

    @property
    def public_key(self) -> str:
        return str(self.keypair.pubkey())

    def sign(self, swap: SwapTransaction) -> SignedTransaction:
        try:
            raw = base64.b64decode(swap.swap_transaction, validate=True)
            unsigned = VersionedTransaction.from_bytes(raw)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"swap transaction could not be decoded: {exc}") from None

        signed = VersionedTransaction(unsigned.message, [self.keypair])
        if not signed.signatures:
            raise ValueError("Transaction has no signatures")
        return SignedTransaction(
            payload=bytes(signed),
            signature=str(signed.signatures[0]),
            recent_blockhash=str(signed.message.recent_blockhash),
            last_valid_block_height=swap.last_valid_block_height,
        )
