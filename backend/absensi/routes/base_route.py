from flask import Blueprint, jsonify
from sqlalchemy import text
from absensi.extensions import db

base_bp = Blueprint("base", __name__)

@base_bp.route("/")
def home():
    return jsonify({"success": True, "message": "Welcome to the attendance API!"})

@base_bp.route("/health")
def health():
    db.session.execute(text("SELECT 1"))
    return jsonify({"success": True, "message": "ok"})
