# Overview: Flask API routes for the transaction ledger (read-only).

from flask import Blueprint, request

from ..repositories import get_repositories
from ..services import ledger_service
from ..validation import NotFoundError
from ..decorators import require_auth
from supermart.time_utils import parse_iso_datetime

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions():
    """
    Ledger, newest first.

    Query params:
    - q: str (optional) - match on receipt id or item name / SKU
    - type: SALE | RESTOCK (optional)
    - since / until: ISO-8601 datetimes (optional, inclusive)
    - limit: int (optional)
    """
    search = request.args.get("q", "").strip() or None
    tx_type = request.args.get("type")
    limit = request.args.get("limit", type=int)

    try:
        since = parse_iso_datetime(request.args.get("since"))
        until = parse_iso_datetime(request.args.get("until"))
    except ValueError:
        return {"error": "since/until must be ISO-8601 datetimes"}, 400

    txs = ledger_service.list_transactions(get_repositories(), search=search)
    if tx_type:
        txs = [t for t in txs if t.type == tx_type.upper()]
    if since:
        txs = [t for t in txs if t.timestamp >= since]
    if until:
        txs = [t for t in txs if t.timestamp <= until]
    if limit and limit > 0:
        txs = txs[:limit]
    return {"items": [t.to_dict() for t in txs], "count": len(txs)}


@transactions_bp.get("/<transaction_id>")
@require_auth
def get_transaction(transaction_id: str):
    try:
        tx = ledger_service.get_transaction(get_repositories(), transaction_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return tx.to_dict()
