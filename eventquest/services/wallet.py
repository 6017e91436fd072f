"""
eventquest.services.wallet — Wallet signature recovery
=======================================================

Recovers the signer of an EIP-191 ``personal_sign`` message with
``eth_account``.  The recovered address is lowercased so it compares with
the stored ``users.address``.
"""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct

from eventquest.errors import SignatureMismatchError


def normalize_address(address: str | None) -> str:
    return (address or "").strip().lower()


def recover_wallet_address(message: str, signature: str) -> str:
    """Return the lowercase address that signed *message*.

    Wallets sometimes hand back the signature without its ``0x`` prefix;
    both forms are accepted.
    """
    if not signature.startswith("0x"):
        signature = f"0x{signature}"
    try:
        recovered = Account.recover_message(
            encode_defunct(text=message), signature=signature
        )
    except Exception as exc:  # eth_account raises several unrelated types
        raise SignatureMismatchError("Signature could not be decoded") from exc
    return normalize_address(recovered)
