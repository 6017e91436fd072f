"""
eventquest.engine.verification — Completion Attestation Records
================================================================

Each completed ledger row records *how* completion was attested.  Two
shapes exist, told apart by their ``method`` tag when stored as JSON:

* :class:`SelfVerification` — the user self-reported completion; we note
  the platform, task type and the linked handle they held at the time.
* :class:`CallerProof` — the caller supplied an opaque proof (screenshot
  URL, tx hash, …) which is stored verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

__all__ = [
    "SelfVerification",
    "CallerProof",
    "VerificationRecord",
    "verification_from_json",
]


@dataclass(frozen=True, slots=True)
class SelfVerification:
    platform: str
    task_type: str
    connected_account: str | None = None

    method = "self_verification"

    def to_json(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "platform": self.platform,
            "task_type": self.task_type,
            "connected_account": self.connected_account,
        }


@dataclass(frozen=True, slots=True)
class CallerProof:
    proof: Any

    method = "caller_proof"

    def to_json(self) -> dict[str, Any]:
        return {"method": self.method, "proof": self.proof}


VerificationRecord = SelfVerification | CallerProof


def verification_from_json(data: dict | None) -> VerificationRecord | None:
    """Rebuild a record from its stored JSON, or ``None`` for pending rows.

    Raises
    ------
    ValueError
        If the ``method`` tag is unknown.
    """
    if not data:
        return None
    method = data.get("method")
    if method == SelfVerification.method:
        return SelfVerification(
            platform=data["platform"],
            task_type=data["task_type"],
            connected_account=data.get("connected_account"),
        )
    if method == CallerProof.method:
        return CallerProof(proof=data.get("proof"))
    raise ValueError(f"Unknown verification method: {method!r}")
