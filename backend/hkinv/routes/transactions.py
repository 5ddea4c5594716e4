# Overview: Flask API routes for the stock ledger; parses input and returns JSON responses.

"""
Transaction Routes

Recording a transaction moves stock (see ledger_service). The acting user
is always the one recorded; a user_id in the body is ignored.
"""

from flask import Blueprint, current_app, request, g

from ..decorators import require_actor, require_role
from ..services import ledger_service
from ..services.reporting_service import is_overdue
from ..services.results import ActionResult, SERVICE_ERRORS


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _tx_dict(tx) -> dict:
    return {**tx.to_dict(), "overdue": is_overdue(tx)}


@transactions_bp.get("")
@require_actor
def list_transactions_route():
    """
    Query params:
    - type: in | out | borrow | return
    - item_id: int
    - status: pending | approved | completed | cancelled
    - overdue: true to keep only overdue borrows
    """
    try:
        transactions = ledger_service.list_transactions(
            tx_type=request.args.get("type"),
            item_id=request.args.get("item_id", type=int),
            status=request.args.get("status"),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list transactions")
        return ActionResult.fail(e).to_response()

    if request.args.get("overdue", "false").lower() == "true":
        transactions = [tx for tx in transactions if is_overdue(tx)]
    return {"items": [_tx_dict(tx) for tx in transactions], "count": len(transactions)}


@transactions_bp.get("/<int:tx_id>")
@require_actor
def get_transaction_route(tx_id: int):
    try:
        tx = ledger_service.get_transaction(tx_id)
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to load transaction %s", tx_id)
        return ActionResult.fail(e).to_response()
    if tx is None:
        return {"error": "Transaction not found"}, 404
    return {"transaction": _tx_dict(tx)}


@transactions_bp.post("")
@require_actor
def create_transaction_route():
    data = request.get_json(silent=True) or {}
    return ledger_service.record_transaction(data, user_id=g.current_user.id).to_response()


@transactions_bp.put("/<int:tx_id>")
@require_actor
def update_transaction_route(tx_id: int):
    data = request.get_json(silent=True) or {}
    if isinstance(data, dict):
        data.pop("user_id", None)
    return ledger_service.update_transaction(tx_id, data).to_response()


@transactions_bp.delete("/<int:tx_id>")
@require_actor
@require_role("admin", "manager")
def delete_transaction_route(tx_id: int):
    return ledger_service.delete_transaction(tx_id).to_response()
