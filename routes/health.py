from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import text

from models import db

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    # Round-trips to the database so a dead connection shows up here
    db.session.execute(text("SELECT 1"))
    return jsonify(success=True, message="Database Connected!", time=datetime.utcnow().isoformat()), 200
