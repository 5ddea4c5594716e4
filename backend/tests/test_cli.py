"""
Flask CLI commands.
"""

from hkinv.extensions import db
from hkinv.models import CostItemDefinition, DEFAULT_COST_ITEMS, Item, User
from hkinv.services import users_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--admin-password", "s3cret-pass"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert "Created admin: admin" in first.output
    assert second.exit_code == 0, second.output
    assert "Using existing admin" in second.output
    assert db.session.query(CostItemDefinition).count() == len(DEFAULT_COST_ITEMS)

    admin = db.session.query(User).filter_by(username="admin").one()
    assert admin.role == "admin"
    assert users_service.check_password(admin.id, "s3cret-pass")


def test_system_init_rejects_short_password(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init", "--admin-password", "short"])

    assert result.exit_code != 0
    assert "Could not create admin" in result.output


def test_cost_seed(app, db_session):
    result = app.test_cli_runner().invoke(args=["cost", "seed"])

    assert result.exit_code == 0
    assert f"{len(DEFAULT_COST_ITEMS)} cost item(s) added" in result.output


def test_stock_reconcile_reports_and_fixes_drift(app, make_item):
    item = make_item(current_stock=10)
    db.session.query(Item).filter_by(id=item.id).update({"current_stock": 7})
    db.session.commit()
    runner = app.test_cli_runner()

    report = runner.invoke(args=["stock", "reconcile"])
    assert report.exit_code == 0
    assert "1 item(s) out of balance." in report.output
    assert "-3" in report.output

    fixed = runner.invoke(args=["stock", "reconcile", "--fix"])
    assert "Repaired 1 item(s)." in fixed.output
    assert runner.invoke(args=["stock", "reconcile"]).output.strip() == "Stock is consistent."
