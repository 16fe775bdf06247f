from guardops_api.models.security import Role, RolePermission
from guardops_api.models.user import User
from guardops_api.permissions import ROLES


def test_seed_core_and_grant_role(app):
    runner = app.test_cli_runner()

    res = runner.invoke(args=["seed-core", "--password", "pw123456"])
    assert res.exit_code == 0, res.output
    assert User.query.count() == len(ROLES)
    hr = User.query.filter_by(email="hr_officer@demo.local").first()
    assert hr.check_password("pw123456")

    # idempotent
    res = runner.invoke(args=["seed-core"])
    assert "users created: none" in res.output

    res = runner.invoke(args=["grant-role", "hr_officer@demo.local", "finance_officer"])
    assert res.exit_code == 0, res.output
    assert User.query.filter_by(email="hr_officer@demo.local").first().role == "finance_officer"

    res = runner.invoke(args=["grant-role", "hr_officer@demo.local", "wizard"])
    assert res.exit_code != 0
    res = runner.invoke(args=["grant-role", "ghost@demo.local", "hr_officer"])
    assert res.exit_code != 0


def test_seed_rbac_command(app):
    res = app.test_cli_runner().invoke(args=["seed-rbac"])
    assert res.exit_code == 0, res.output
    assert "roles=8" in res.output
    assert Role.query.count() == len(ROLES)
    assert RolePermission.query.count() > 0
