"""
Ledger Client — Read-only Solana JSON-RPC access for payment verification.

Fetches a transaction by signature with getTransaction and reduces it to the
fields the payment verifier needs: execution status, ordered account keys and
pre/post lamport balances.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from skillchain.config import Settings, get_settings
from skillchain.exceptions import LedgerUnavailableError
from skillchain.utils.logger import get_logger, short

logger = get_logger(__name__)

# JSON-RPC "Invalid params": returned for malformed signatures
_RPC_INVALID_PARAMS = -32602


@dataclass
class LedgerTransaction:
    signature: str
    success: bool
    account_keys: list[str]
    pre_balances: list[int]
    post_balances: list[int]
    error: Any = None
    slot: Optional[int] = None
    block_time: Optional[int] = None
    signers: list[str] = field(default_factory=list)

    @property
    def fee_payer(self) -> Optional[str]:
        """First signer pays the fee; it is always account key 0."""
        if self.signers:
            return self.signers[0]
        return self.account_keys[0] if self.account_keys else None

    def index_of(self, address: str) -> int:
        try:
            return self.account_keys.index(address)
        except ValueError:
            return -1

    def balance_delta(self, address: str) -> Optional[int]:
        """Lamports gained by address in this transaction (post - pre), None if absent."""
        idx = self.index_of(address)
        if idx < 0 or idx >= len(self.pre_balances) or idx >= len(self.post_balances):
            return None
        return self.post_balances[idx] - self.pre_balances[idx]


def _get_account_keys(message: dict[str, Any], meta: dict[str, Any] | None) -> list[str]:
    """
    Resolve accountKeys to base58 strings (json or jsonParsed encoding).
    Versioned transactions append meta.loadedAddresses (writable, then readonly)
    so indices line up with preBalances/postBalances.
    """
    keys = message.get("accountKeys") or []
    if keys and not isinstance(keys[0], str):
        out = [k.get("pubkey", "") for k in keys if isinstance(k, dict)]
    else:
        out = list(keys)
    loaded = (meta or {}).get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        out.extend(loaded.get(role) or [])
    return out


def parse_transaction(signature: str, raw: dict[str, Any]) -> LedgerTransaction:
    """Parse a getTransaction result. Raises ValueError if the payload is malformed."""
    tx_obj = raw.get("transaction")
    if not isinstance(tx_obj, dict) or not isinstance(tx_obj.get("message"), dict):
        raise ValueError("transaction.message missing")
    message = tx_obj["message"]
    meta = raw.get("meta")
    if not isinstance(meta, dict):
        raise ValueError("meta missing")

    account_keys = _get_account_keys(message, meta)
    if not account_keys:
        raise ValueError("no account keys")

    header = message.get("header") or {}
    num_signers = int(header.get("numRequiredSignatures", 1) or 1)

    err = meta.get("err")
    return LedgerTransaction(
        signature=signature,
        success=err is None,
        error=err,
        account_keys=account_keys,
        pre_balances=[int(b) for b in meta.get("preBalances") or []],
        post_balances=[int(b) for b in meta.get("postBalances") or []],
        slot=raw.get("slot"),
        block_time=raw.get("blockTime"),
        signers=account_keys[:num_signers],
    )


class SolanaLedgerClient:
    """Async JSON-RPC client; one short-lived httpx client per lookup."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        settings = settings or get_settings()
        self.rpc_url = settings.SOLANA_RPC_URL
        self.commitment = settings.SOLANA_COMMITMENT
        self.timeout = settings.LEDGER_TIMEOUT_SECONDS
        self._transport = transport
        self._ids = itertools.count(1)

    async def get_transaction(self, signature: str) -> Optional[LedgerTransaction]:
        """Return the parsed transaction, or None if the ledger does not know it.

        Raises:
            LedgerUnavailableError: transport failure, RPC fault or unparseable payload.
        """
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "getTransaction",
            "params": [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.rpc_url, json=body)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("ledger_fetch_failed", signature=short(signature), error=str(e))
            raise LedgerUnavailableError(str(e)) from e

        if not isinstance(data, dict):
            logger.error("ledger_response_malformed", signature=short(signature), payload_type=type(data).__name__)
            raise LedgerUnavailableError("RPC response is not a JSON object")

        err = data.get("error")
        if err:
            if isinstance(err, dict) and err.get("code") == _RPC_INVALID_PARAMS:
                logger.info("ledger_signature_invalid", signature=short(signature), error=err.get("message"))
                return None
            logger.error("ledger_rpc_error", signature=short(signature), error=str(err))
            raise LedgerUnavailableError(str(err))

        raw = data.get("result")
        if raw is None:
            return None

        try:
            return parse_transaction(signature, raw)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("ledger_parse_failed", signature=short(signature), error=str(e))
            raise LedgerUnavailableError(f"Unparseable transaction: {e}") from e
