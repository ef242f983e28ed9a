# Overview: Flask API routes for reports; dashboard stats and windowed financials.

from flask import Blueprint, request, current_app

from ..repositories import get_repositories
from ..services import reporting_service
from ..services.auth_service import ROLE_ADMIN
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_role
from supermart.time_utils import utcnow

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
def dashboard_report():
    """Inventory stats, today's sales, stock alerts and recent transactions."""
    repos = get_repositories()
    return reporting_service.dashboard(
        repos.catalog.list_all(),
        repos.ledger.list_all(),
        utcnow(),
        current_app.config["STORE_TIMEZONE"],
    )


@reports_bp.get("/finance")
@require_auth
@require_role(ROLE_ADMIN)
def finance_report():
    """
    Revenue, cost, profit and margin for SALE transactions in a window.

    Query params:
    - window: Today | 7D | 30D | All (default Today)
    """
    window = request.args.get("window", reporting_service.WINDOW_TODAY)
    repos = get_repositories()

    try:
        summary = reporting_service.financial_summary(
            repos.ledger.list_all(),
            window,
            utcnow(),
            current_app.config["STORE_TIMEZONE"],
        )
    except ReportError as e:
        return {"error": str(e)}, 400

    return {
        "summary": summary.to_dict(),
        "inventory": reporting_service.inventory_stats(repos.catalog.list_all()).to_dict(),
    }
