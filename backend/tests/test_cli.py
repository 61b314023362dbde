"""
Flask CLI commands, run through the app's test CLI runner.
"""

from consign.models import User

from conftest import PASSWORD, deliver


def test_system_init_creates_default_users(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "PASS Created user: manager" in result.output
    assert sorted(u.role for u in User.query.all()) == ["MANAGER", "STAFF", "VIEWER"]

    again = runner.invoke(args=["system", "init"])
    assert again.exit_code == 0
    assert "already exists" in again.output
    assert User.query.count() == 3


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--username", "dana",
        "--password", PASSWORD,
        "--role", "STAFF",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created user: dana" in result.output

    listing = runner.invoke(args=["users", "list"])
    assert "dana" in listing.output
    assert "STAFF" in listing.output


def test_users_create_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--username", "dana",
        "--password", "weak",
        "--role", "STAFF",
    ])
    assert result.exit_code != 0
    assert "Password validation failed" in result.output


def test_alerts_scan(app, stocked):
    result = app.test_cli_runner().invoke(args=["alerts", "scan", "--low-stock-threshold", "60"])
    assert result.exit_code == 0, result.output
    assert "LOW_STOCK" in result.output


def test_inventory_show(app, manager, stocked, product, storage, store_location):
    runner = app.test_cli_runner()
    deliver(manager, product, storage, store_location, 4)

    everything = runner.invoke(args=["inventory", "show"])
    assert "Main Storage" in everything.output
    assert "Store: Corner Market" in everything.output

    stores_only = runner.invoke(args=["inventory", "show", "--kind", "STORE"])
    assert "Main Storage" not in stores_only.output

    trucks = runner.invoke(args=["inventory", "show", "--kind", "TRUCK"])
    assert "No inventory on hand." in trucks.output
