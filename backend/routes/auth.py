import logging
from flask import Blueprint, jsonify
from flask_jwt_extended import create_access_token, jwt_required
from sqlalchemy.exc import SQLAlchemyError
from models import db, User
from services.core_services import BadgeService, LeaderboardService
from utils.role_required import current_user_or_404
from utils.validators import get_json, require_fields, validate_email, validate_password

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


def _issue_token(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role.value}
    )


@auth_bp.route('/register', methods=['POST'])
def register():
    data = get_json()
    require_fields(data, 'username', 'email', 'password')

    username = data['username'].strip()
    email = validate_email(data['email'])
    password = data['password']

    if len(username) < 3:
        return jsonify({'error': "Username must be at least 3 characters"}), 400
    if len(password) < 8:
        return jsonify({'error': "Password must be at least 8 characters"}), 400

    # Check for existing user
    if User.query.filter_by(email=email).first():
        return jsonify({'error': "Email already registered"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({'error': "Username already taken"}), 400

    try:
        new_user = User(username=username, email=email)
        new_user.set_password(password)
        db.session.add(new_user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Registration failed for %s", email)
        return jsonify({'error': 'Registration failed'}), 500

    logger.info("Registered user %s", username)
    return jsonify({
        'message': 'User registered successfully',
        'token': _issue_token(new_user),
        'user': new_user.to_dict()
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = get_json()
    identifier = (data.get('email') or data.get('username') or '').strip()
    password = data.get('password')

    if not identifier or not password:
        return jsonify({'error': 'Missing email/username or password'}), 400

    user = User.query.filter(
        (User.email == identifier.lower()) | (User.username == identifier)
    ).first()
    if not user or not user.check_password(password):
        return jsonify({'error': 'Invalid credentials'}), 401

    # Update streak
    user.update_streak()
    new_badges = BadgeService.check_badges(user)
    db.session.commit()

    return jsonify({
        'message': 'Login successful',
        'token': _issue_token(user),
        'user': user.to_dict(),
        'new_badges': [b.to_dict() for b in new_badges]
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    user = current_user_or_404()
    data = user.to_dict()
    data['rank'] = LeaderboardService.get_user_rank(user)
    return jsonify({'valid': True, 'user': data})


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    return jsonify({'message': 'Logout successful'})


@auth_bp.route('/change-password', methods=['POST'])
@jwt_required()
def change_password():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, 'current_password', 'new_password')

    if not user.check_password(data['current_password']):
        return jsonify({'error': 'Current password is incorrect'}), 400
    user.set_password(validate_password(data['new_password']))
    db.session.commit()

    logger.info("Password changed for %s", user.username)
    return jsonify({'message': 'Password updated successfully'}), 200
