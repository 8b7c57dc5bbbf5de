from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from codeclicker import db
from codeclicker.errors import StoreFailure
from codeclicker.services.leaderboard import resolve_limit, top_entries
from codeclicker.services.saves import load_progress, save_progress

progress = Blueprint('progress', __name__)


@progress.route('/save', methods=['POST'])
@login_required
def save_game():
    data = request.get_json(silent=True) or {}
    try:
        save_progress(current_user.id, data)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[save] store failure user={current_user.id}")
        raise StoreFailure('Server error while saving game')
    return jsonify({'message': 'Game progress saved successfully'})


@progress.route('/load', methods=['GET'])
@login_required
def load_game():
    try:
        payload = load_progress(current_user.id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[load] store failure user={current_user.id}")
        raise StoreFailure('Server error while loading game')
    return jsonify(payload)


@progress.route('/leaderboard', methods=['GET'])
def leaderboard():
    limit = resolve_limit(request.args.get('limit'))
    try:
        entries = top_entries(limit)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[leaderboard] store failure")
        raise StoreFailure('Server error while fetching leaderboard')
    return jsonify(entries)
