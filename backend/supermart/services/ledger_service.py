# Overview: Service-layer operations for the sales ledger.

from __future__ import annotations

from ..domain import Transaction
from ..repositories import Repositories
from ..validation import NotFoundError
"""
Ledger Invariants (authoritative)

- Append-only: transactions are written once and never updated or deleted.
- Every item carries its own name/sku/price/cost snapshot taken at the time
  of the transaction, independent of later catalog edits.
- Listing order is newest first.
"""


def append(repos: Repositories, transaction: Transaction, *, commit: bool = True) -> Transaction:
    repos.ledger.append(transaction)
    if commit:
        repos.commit()
    return transaction


def list_transactions(repos: Repositories, search: str | None = None) -> list[Transaction]:
    transactions = repos.ledger.list_all()
    if search:
        return search_transactions(transactions, search)
    return transactions


def get_transaction(repos: Repositories, transaction_id: str) -> Transaction:
    tx = repos.ledger.get(transaction_id)
    if tx is None:
        # Receipt ids are shown upper-case but may be typed in either case
        tx = repos.ledger.get(transaction_id.upper())
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


def search_transactions(transactions: list[Transaction], term: str) -> list[Transaction]:
    """Case-insensitive substring match on receipt id, item names and item SKUs."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(transactions)
    return [
        t for t in transactions
        if needle in t.id.lower()
        or any(needle in item.name.lower() or needle in item.sku.lower() for item in t.items)
    ]
