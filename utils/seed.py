from sqlalchemy import inspect

from models import db
from models.user import Role

DEFAULT_ROLES = ["CUSTOMER", "VENUE_OWNER", "ADMIN"]

def seed_roles():
    # nothing to seed until migrations have created the table
    if not inspect(db.engine).has_table(Role.__tablename__):
        return
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def get_role(name: str) -> Role:
    role = Role.query.filter_by(name=name).first()
    if not role:
        role = Role(name=name)
        db.session.add(role)
        db.session.flush()
    return role
