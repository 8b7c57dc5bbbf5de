from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from codeclicker import db
from codeclicker.errors import StoreFailure, ValidationFailure
from codeclicker.services.auth import authenticate, register_user

main = Blueprint('main', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailure('Request body must be a JSON object')
    return data


@main.route('/')
def index():
    try:
        msg = db.session.execute(text("SELECT 'Connected to Code Clicker API!' AS msg")).scalar()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[health] database check failed")
        raise StoreFailure('Database unavailable')
    return jsonify({'msg': msg})


@main.route('/register', methods=['POST'])
def register():
    data = _json_body()
    try:
        user, token = register_user(data)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[register] store failure")
        raise StoreFailure('Server error during registration')
    return jsonify({
        'message': 'User created successfully',
        'user': user.to_dict(),
        'token': token,
    }), 201


@main.route('/login', methods=['POST'])
def login():
    data = _json_body()
    try:
        user, token = authenticate(data)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[login] store failure")
        raise StoreFailure('Server error during login')
    return jsonify({
        'message': 'Login successful',
        'user': user.to_dict(),
        'token': token,
    })
