# Overview: Flask API routes for the AI advisory panel.

from flask import Blueprint

from ..repositories import get_repositories
from ..services import reporting_service
from ..services.advisory_service import get_advisory_board
from ..services.auth_service import get_settings
from ..decorators import require_auth

insights_bp = Blueprint("insights", __name__, url_prefix="/api/insights")


@insights_bp.get("")
@require_auth
def current_insights():
    return get_advisory_board().to_dict()


@insights_bp.post("/refresh")
@require_auth
def refresh_insights():
    """
    Schedule an insight fetch for the current catalog snapshot.

    Returns immediately with 202; poll GET /api/insights for the result.
    """
    repos = get_repositories()
    products = repos.catalog.list_all()
    transactions = repos.ledger.list_all()

    board = get_advisory_board()
    version = board.request_refresh(
        products,
        transactions,
        stats=reporting_service.inventory_stats(products),
        store_name=get_settings().name,
    )
    body = board.to_dict()
    body["requested_version"] = version
    return body, 202
