import json

from flask import current_app, request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    """
    Append an audit row and mirror it to the app log. Runs after the business
    write has committed; a failing audit insert never fails the request.
    """
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    current_app.logger.info("audit %s user=%s %s=%s", action, user_id, entity or "-", entity_id)

    db.session.add(AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Could not write audit event %s", action)
