"""
Bitcoin Core JSON-RPC block source.

Fetches block hashes and verbose block bodies over HTTP basic auth and maps
them onto the chain model. Every failure (transport, HTTP status, RPC error
payload, malformed body) surfaces as RetrievalError.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from app.config import RpcSettings
from core.chain.models import NULL_TXID, NULL_VOUT, Block, OutPoint, RetrievalError, Transaction, TxInput

logger = logging.getLogger(__name__)

# getblock verbosity: 2 returns decoded transactions instead of raw hex
_VERBOSE_BLOCK = 2


class BitcoinRpcClient:
    """BlockSource backed by a bitcoind JSON-RPC endpoint."""

    def __init__(self, settings: RpcSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.auth = (settings.user, settings.password)
        self._request_id = 0

    def _call(self, method: str, params: List[Any], **context) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "1.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        logger.debug("RPC %s %s", method, params)

        try:
            response = self.session.post(
                self.settings.url,
                json=payload,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise RetrievalError(f"RPC {method} failed: {e}", **context) from e

        # bitcoind reports RPC errors with HTTP 404/500 and a JSON body
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            err = body["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise RetrievalError(f"RPC {method} returned error: {message}", **context)

        if not response.ok or not isinstance(body, dict) or "result" not in body:
            raise RetrievalError(
                f"RPC {method} failed with HTTP {response.status_code}", **context
            )

        return body["result"]

    def get_block_count(self) -> int:
        return int(self._call("getblockcount", []))

    def get_block_hash(self, height: int) -> str:
        block_hash = self._call("getblockhash", [height], height=height)
        if not isinstance(block_hash, str):
            raise RetrievalError(f"No block hash for height {height}", height=height)
        return block_hash

    def get_block(self, block_hash: str) -> Block:
        data = self._call("getblock", [block_hash, _VERBOSE_BLOCK], block_hash=block_hash)
        try:
            return _parse_block(data)
        except (KeyError, TypeError, ValueError) as e:
            raise RetrievalError(
                f"Malformed block {block_hash}: {e}", block_hash=block_hash
            ) from e


def _parse_input(vin: Dict[str, Any]) -> TxInput:
    if "coinbase" in vin:
        return TxInput(OutPoint(NULL_TXID, NULL_VOUT))
    return TxInput(OutPoint(vin["txid"], int(vin["vout"])))


def _parse_block(data: Dict[str, Any]) -> Block:
    transactions = [
        Transaction(txid=tx["txid"], inputs=[_parse_input(vin) for vin in tx["vin"]])
        for tx in data["tx"]
    ]
    return Block(hash=data["hash"], height=int(data["height"]), transactions=transactions)
