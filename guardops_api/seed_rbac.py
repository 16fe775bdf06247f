# guardops_api/seed_rbac.py
# Materializes the static role table into roles / permissions / role_permissions
# so grants can be edited per deployment through /api/v1/rbac.

from guardops_api.extensions import db
from guardops_api.models.security import Role, Permission, RolePermission
from guardops_api.permissions import ROLES, MODULES, ACTIONS, perm_code, role_permission_list

ROLE_NAMES = {
    "system_admin": "System Administrator",
    "regional_manager": "Regional Manager",
    "hr_officer": "HR Officer",
    "ops_supervisor": "Operations Supervisor",
    "finance_officer": "Finance Officer",
    "inventory_officer": "Inventory Officer",
    "auditor_readonly": "Auditor (read-only)",
    "client_portal": "Client Portal",
}

def ensure_roles(codes=ROLES):
    """Create missing role rows; returns ({code: Role}, [codes created now])."""
    code_to_role, created = {}, []
    for code in codes:
        r = Role.query.filter_by(code=code).first()
        if not r:
            r = Role(code=code, name=ROLE_NAMES.get(code, code))
            db.session.add(r)
            db.session.flush()
            created.append(code)
        code_to_role[code] = r
    return code_to_role, created

def ensure_permissions():
    code_to_perm = {}
    for module in MODULES:
        for action in ACTIONS:
            code = perm_code(module, action)
            p = Permission.query.filter_by(code=code).first()
            if not p:
                p = Permission(module=module, action=action, code=code,
                               name=f"{action.title()} {module.title()}")
                db.session.add(p)
                db.session.flush()
            code_to_perm[code] = p
    return code_to_perm

def _map_role_perms(code_to_role, code_to_perm):
    added = 0
    for rcode, r in code_to_role.items():
        existing = {rp.permission_id for rp in r.permissions}
        for pcode in role_permission_list(rcode):
            p = code_to_perm[pcode]
            if p.id not in existing:
                db.session.add(RolePermission(role_id=r.id, permission_id=p.id))
                added += 1
    return added

def run():
    # a stored role row owns its grant set (possibly edited, possibly empty);
    # only roles created here get the static defaults
    code_to_role, created = ensure_roles()
    code_to_perm = ensure_permissions()
    added = _map_role_perms({c: code_to_role[c] for c in created}, code_to_perm)
    db.session.commit()
    return {"ok": True, "roles": len(code_to_role), "perms": len(code_to_perm),
            "roles_created": len(created), "grants_added": added}

def materialize_role(role_code):
    """
    Store the role row with its static grants if it is not stored yet, so a
    later grant/revoke edits the full set instead of replacing it.
    Returns the Role.
    """
    code_to_role, created = ensure_roles([role_code])
    r = code_to_role[role_code]
    if created:
        _map_role_perms({role_code: r}, ensure_permissions())
    return r
