"""
Solana JSON-RPC client for reading ledger history.

One long-lived httpx.AsyncClient is shared by every checkout session in the
process; calls are read-only, so no locking is required. Every failure that
is not a well-formed JSON-RPC result (network error, HTTP status, bad JSON,
RPC error object) is raised as LedgerTransportError.
"""
import itertools
import logging
from typing import Any, Optional

import httpx

from config import settings
from domain.constants import SIGNATURES_PAGE_LIMIT, SOL_DECIMALS
from domain.enums import Commitment
from exceptions import LedgerTransportError
from models import BalanceDelta, SignatureInfo, TransactionEffects

logger = logging.getLogger(__name__)


class SolanaClient:
    """Thin async JSON-RPC wrapper exposing only what checkout needs."""

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_url = rpc_url or settings.solana_rpc_url
        self._http = httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.rpc_timeout_seconds,
            transport=transport,
        )
        self._ids = itertools.count(1)

    async def close(self):
        await self._http.aclose()

    async def _rpc(self, method: str, params: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._http.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"RPC {method} failed: {e}")
            raise LedgerTransportError(str(e) or type(e).__name__, method=method) from e
        except ValueError as e:
            logger.error(f"RPC {method} returned malformed JSON: {e}")
            raise LedgerTransportError("malformed JSON response", method=method) from e

        if not isinstance(data, dict):
            raise LedgerTransportError("response is not a JSON object", method=method)
        if data.get("error"):
            err = data["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise LedgerTransportError(f"RPC error: {message}", method=method)
        if "result" not in data:
            raise LedgerTransportError("response has no result", method=method)
        return data["result"]

    # ── Reads ──────────────────────────────────────────────────────

    async def get_slot(self, commitment: Commitment = Commitment.CONFIRMED) -> int:
        return await self._rpc("getSlot", [{"commitment": commitment.value}])

    async def get_signatures_for_address(
        self,
        address: str,
        commitment: Commitment = Commitment.CONFIRMED,
        before: Optional[str] = None,
        limit: int = SIGNATURES_PAGE_LIMIT,
    ) -> list[SignatureInfo]:
        """
        Fetch one page of signature history for an address, newest first.

        An empty list means nothing at this commitment references the address.
        """
        options: dict[str, Any] = {"commitment": commitment.value, "limit": limit}
        if before:
            options["before"] = before
        result = await self._rpc("getSignaturesForAddress", [address, options])
        if not isinstance(result, list):
            raise LedgerTransportError("expected a list of signatures", method="getSignaturesForAddress")
        try:
            return [
                SignatureInfo(
                    signature=row["signature"],
                    slot=row.get("slot", 0),
                    err=row.get("err"),
                    memo=row.get("memo"),
                    block_time=row.get("blockTime"),
                    confirmation_status=row.get("confirmationStatus"),
                )
                for row in result
            ]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise LedgerTransportError(f"malformed signature entry: {e}", method="getSignaturesForAddress") from e

    async def get_transaction_effects(
        self,
        signature: str,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> Optional[TransactionEffects]:
        """
        Fetch a transaction's recorded balance changes.

        Returns None while the node has no data for the signature yet
        (result null, or meta not populated).
        """
        result = await self._rpc(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": commitment.value,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if not result:
            return None
        if not isinstance(result, dict):
            raise LedgerTransportError("expected a transaction object", method="getTransaction")
        if not result.get("meta"):
            return None
        try:
            return parse_transaction_effects(signature, result)
        except (KeyError, TypeError, AttributeError, IndexError, ValueError) as e:
            raise LedgerTransportError(f"malformed transaction: {e}", method="getTransaction") from e


def parse_transaction_effects(signature: str, result: dict) -> TransactionEffects:
    """Convert a getTransaction (json encoding) result into TransactionEffects."""
    meta = result["meta"]
    message = result["transaction"]["message"]

    account_keys = list(message["accountKeys"])
    loaded = meta.get("loadedAddresses") or {}
    # v0 transactions: static keys, then writable lookups, then readonly lookups
    account_keys += loaded.get("writable", []) + loaded.get("readonly", [])

    deltas = []
    pre_balances = meta.get("preBalances", [])
    post_balances = meta.get("postBalances", [])
    for i, account in enumerate(account_keys):
        pre = pre_balances[i] if i < len(pre_balances) else 0
        post = post_balances[i] if i < len(post_balances) else 0
        deltas.append(BalanceDelta(account=account, pre=pre, post=post, decimals=SOL_DECIMALS))

    token_rows: dict[int, dict] = {}
    for key, rows in (("pre", meta.get("preTokenBalances") or []), ("post", meta.get("postTokenBalances") or [])):
        for row in rows:
            idx = row["accountIndex"]
            entry = token_rows.setdefault(idx, {
                "account": row.get("owner") or account_keys[idx],
                "mint": row["mint"],
                "decimals": row["uiTokenAmount"]["decimals"],
                "pre": 0,
                "post": 0,
            })
            entry[key] = int(row["uiTokenAmount"]["amount"])
    for entry in token_rows.values():
        deltas.append(BalanceDelta(**entry))

    return TransactionEffects(
        signature=signature,
        slot=result.get("slot", 0),
        err=meta.get("err"),
        account_keys=account_keys,
        balance_deltas=deltas,
    )


_client: SolanaClient | None = None


def get_solana_client() -> SolanaClient:
    """Process-wide client, created on first use."""
    global _client
    if _client is None:
        _client = SolanaClient()
        logger.info(f"Solana RPC client initialized ({_client.rpc_url})")
    return _client


async def close_solana_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
        logger.info("Solana RPC client closed")
