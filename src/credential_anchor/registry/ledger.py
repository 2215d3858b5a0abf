"""JsonFileRegistryContract — a local development ledger.

Implements the registry contract's rules in process: one record per
digest, only the original issuer may revoke, records are never deleted
and revocation preserves the issuance timestamp. State is kept in memory
and optionally persisted to a JSON file, which lets the CLI drive the full
issue / verify / revoke protocol without a chain node.
"""
from __future__ import annotations

import hashlib
import json
import threading
import time
from collections.abc import Callable
from pathlib import Path

from credential_anchor.registry.contract import (
    ContractRejection,
    Deployment,
    RawCredential,
    RegistryContract,
    RejectReason,
)

DEFAULT_LEDGER_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
DEFAULT_LEDGER_NETWORK_ID = 1337


class JsonFileRegistryContract(RegistryContract):
    """In-process registry contract with optional JSON persistence.

    Thread-safe. Transaction hashes are derived from a monotonically
    increasing nonce and the call arguments, so they are unique per write.

    Parameters
    ----------
    persist_path:
        If provided, records are read from and written to this JSON file.
    network_id:
        Chain id reported by :meth:`describe`.
    address:
        The address at which this ledger claims to be deployed.
    clock:
        Returns the current unix time; injectable for tests.
    """

    def __init__(
        self,
        persist_path: Path | None = None,
        network_id: int = DEFAULT_LEDGER_NETWORK_ID,
        address: str = DEFAULT_LEDGER_ADDRESS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._records: dict[str, RawCredential] = {}
        self._nonce = 0
        self._lock = threading.Lock()
        self._persist_path = persist_path
        self._network_id = network_id
        self._address = address.lower()
        self._clock = clock

        if persist_path is not None and persist_path.exists():
            self._load_from_disk()

    @property
    def address(self) -> str:
        return self._address

    # ------------------------------------------------------------------
    # RegistryContract interface
    # ------------------------------------------------------------------

    async def describe(self, address: str) -> Deployment:
        return Deployment(
            network_id=self._network_id,
            has_code=address.lower() == self._address,
        )

    async def issue_credential(self, digest: str, cid: str, issuer: str, sender: str) -> str:
        with self._lock:
            if self._records.get(digest, RawCredential()).timestamp:
                raise ContractRejection(
                    RejectReason.ALREADY_ISSUED, f"Credential {digest} already exists"
                )
            record = RawCredential(
                timestamp=int(self._clock()) or 1,
                issuer=issuer,
                cid=cid,
                revoked=False,
            )
            return self._commit("issue", digest, record, sender)

    async def get_credential(self, digest: str) -> RawCredential:
        with self._lock:
            return self._records.get(digest, RawCredential())

    async def revoke_credential(self, digest: str, sender: str) -> str:
        with self._lock:
            record = self._records.get(digest, RawCredential())
            if not record.timestamp:
                raise ContractRejection(
                    RejectReason.UNKNOWN_CREDENTIAL, f"Credential {digest} does not exist"
                )
            if record.issuer.lower() != sender.lower():
                raise ContractRejection(
                    RejectReason.NOT_ISSUER, "Only the issuer can revoke this credential"
                )
            if record.revoked:
                raise ContractRejection(
                    RejectReason.ALREADY_REVOKED, f"Credential {digest} already revoked"
                )
            revoked = RawCredential(
                timestamp=record.timestamp,
                issuer=record.issuer,
                cid=record.cid,
                revoked=True,
            )
            return self._commit("revoke", digest, revoked, sender)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def digests(self) -> list[str]:
        """Return all recorded digests, sorted."""
        with self._lock:
            return sorted(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _commit(self, action: str, digest: str, record: RawCredential, sender: str) -> str:
        """Persist the write, then apply it in memory. Caller must hold the lock.

        If persisting fails nothing changes and the ``OSError`` propagates.
        """
        nonce = self._nonce + 1
        records = {**self._records, digest: record}
        self._save_to_disk(records, nonce)
        self._records = records
        self._nonce = nonce
        seed = f"{nonce}:{action}:{digest}:{sender.lower()}".encode("utf-8")
        return "0x" + hashlib.sha256(seed).hexdigest()

    def _save_to_disk(self, records: dict[str, RawCredential], nonce: int) -> None:
        """Write *records* to the persist path as JSON."""
        if self._persist_path is None:
            return
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "network_id": self._network_id,
            "address": self._address,
            "nonce": nonce,
            "records": {
                digest: {
                    "timestamp": record.timestamp,
                    "issuer": record.issuer,
                    "cid": record.cid,
                    "revoked": record.revoked,
                }
                for digest, record in sorted(records.items())
            },
        }
        staging = self._persist_path.with_name(self._persist_path.name + ".tmp")
        staging.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        staging.replace(self._persist_path)

    def _load_from_disk(self) -> None:
        """Read records from the persist path."""
        if self._persist_path is None or not self._persist_path.exists():
            return
        payload = json.loads(self._persist_path.read_text(encoding="utf-8"))
        self._nonce = int(payload.get("nonce", 0))
        self._records = {
            str(digest): RawCredential(
                timestamp=int(entry.get("timestamp", 0)),
                issuer=str(entry.get("issuer", "")),
                cid=str(entry.get("cid", "")),
                revoked=bool(entry.get("revoked", False)),
            )
            for digest, entry in (payload.get("records") or {}).items()
        }
