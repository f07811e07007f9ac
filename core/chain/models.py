"""
Chain data model consumed by the graph builder.

Only the fields the funding relation needs are modelled: each transaction's
id and the outpoints its inputs spend.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

# Txid of the null outpoint referenced by every coinbase input.
NULL_TXID = "0" * 64
NULL_VOUT = 0xFFFFFFFF


class RetrievalError(Exception):
    """A block hash or block body could not be fetched from the block source."""

    def __init__(
        self,
        message: str,
        height: Optional[int] = None,
        block_hash: Optional[str] = None,
    ):
        super().__init__(message)
        self.height = height
        self.block_hash = block_hash


@dataclass(frozen=True)
class OutPoint:
    txid: str
    vout: int

    @classmethod
    def null(cls) -> "OutPoint":
        return cls(NULL_TXID, NULL_VOUT)

    def is_null(self) -> bool:
        return self.txid == NULL_TXID and self.vout == NULL_VOUT


@dataclass(frozen=True)
class TxInput:
    previous_output: OutPoint


@dataclass(frozen=True)
class Transaction:
    txid: str
    inputs: List[TxInput] = field(default_factory=list)

    def compute_txid(self) -> str:
        """Return the transaction id, normalised to lowercase hex."""
        return self.txid.lower()

    def is_coinbase(self) -> bool:
        return len(self.inputs) == 1 and self.inputs[0].previous_output.is_null()


@dataclass(frozen=True)
class Block:
    hash: str
    height: int
    transactions: List[Transaction] = field(default_factory=list)


class BlockSource(Protocol):
    """Anything that can hand out blocks by height.

    Both methods raise ``RetrievalError`` when the requested data is unknown.
    """

    def get_block_hash(self, height: int) -> str:
        ...

    def get_block(self, block_hash: str) -> Block:
        ...
