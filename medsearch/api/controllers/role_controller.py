from datetime import datetime, timezone
from urllib.parse import urlencode
from flask import request, jsonify, current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import IntegrityError
from medsearch.extensions import db
from medsearch.models.user_models import User
from medsearch.models.system_models import RevokedToken
from medsearch.domain.errors import RoleTokenError, ValidationError
from medsearch.domain.roles import ROLES, SELF_ASSIGNABLE_ROLES, get_redirect_path
from medsearch.utils.decorators import get_current_user
from medsearch.utils.time_util import utcnow, to_naive_utc
from medsearch.utils.validators import clean_text

ROLE_LINK_PURPOSE = 'role_assignment'


def _requested_role(data, allowed=ROLES):
    role = clean_text(data.get('role'), 'role')
    if role not in allowed:
        raise ValidationError(f"Invalid role '{role}'", details={'allowed': sorted(allowed)})
    return role


def _assignment_metadata(role, assigned_by):
    return {
        'role': role,
        'onboardingCompleted': True,
        'profileSetup': False,
        'assignedBy': assigned_by,
        'assignedAt': utcnow().isoformat(),
    }


def self_assign_role():
    """Stores a self-selected role in the user-writable partition.

    The role is shown in the UI and drives onboarding, but grants no
    permissions until it is confirmed in the provider partition.
    """
    if not current_app.config['ALLOW_SELF_ROLE_ASSIGNMENT']:
        return jsonify({'error': 'Self role assignment is disabled'}), 403

    data = request.get_json(silent=True) or {}
    role = _requested_role(data, SELF_ASSIGNABLE_ROLES)

    user = get_current_user()
    user.update_unsafe_metadata(**_assignment_metadata(role, 'self'))
    db.session.commit()
    current_app.audit_logger.info(f"User {user.id} self-assigned role '{role}'")

    return jsonify({
        'message': f"Role '{role}' assigned to your account",
        'roleData': user.role_data.to_dict(),
        'redirectPath': get_redirect_path(user.role_data)
    }), 200


def create_role_link():
    """Issues a signed, single-use role assignment link."""
    data = request.get_json(silent=True) or {}
    role = _requested_role(data)
    target_user_id = data.get('userId')

    issuer = get_current_user()
    claims = {'purpose': ROLE_LINK_PURPOSE, 'role': role}
    if target_user_id:
        claims['userId'] = str(target_user_id)

    expires_in = current_app.config['ROLE_LINK_EXPIRES']
    token = create_access_token(identity=issuer.id, additional_claims=claims, expires_delta=expires_in)
    url = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/assign-role?{urlencode({'role': role, 'token': token})}"

    return jsonify({
        'role': role,
        'token': token,
        'url': url,
        'expiresAt': (utcnow() + expires_in).isoformat() + 'Z'
    }), 201


def _verify_role_token(token, role, user_id):
    try:
        claims = decode_token(token)
    except (PyJWTError, JWTExtendedException) as e:
        raise RoleTokenError('Role assignment link is invalid or has expired', details={'reason': str(e)})

    if claims.get('purpose') != ROLE_LINK_PURPOSE:
        raise RoleTokenError('Token is not a role assignment link')
    if claims.get('role') != role:
        raise RoleTokenError('Role assignment link was issued for a different role')
    if claims.get('userId') and claims['userId'] != user_id:
        raise RoleTokenError('Role assignment link was issued for a different user')
    if RevokedToken.query.filter_by(jti=claims['jti']).first():
        raise RoleTokenError('Role assignment link has already been used')
    return claims


def assign_role_from_link():
    data = request.get_json(silent=True) or {}
    role = _requested_role(data)
    token = clean_text(data.get('token'), 'token')
    if not token:
        raise RoleTokenError('Missing role assignment token')

    user = get_current_user()
    claims = _verify_role_token(token, role, user.id)

    user.update_public_metadata(**_assignment_metadata(role, 'link'))
    expires_at = to_naive_utc(datetime.fromtimestamp(claims['exp'], timezone.utc)) if claims.get('exp') else None
    db.session.add(RevokedToken(jti=claims['jti'], expires_at=expires_at))
    try:
        db.session.commit()
    except IntegrityError:
        # Another request redeemed the same link first
        db.session.rollback()
        raise RoleTokenError('Role assignment link has already been used')

    current_app.audit_logger.info(f"User {user.id} redeemed a '{role}' role link issued by {claims.get('sub')}")
    return jsonify({
        'message': f"Role '{role}' assigned",
        'roleData': user.role_data.to_dict(),
        'redirectPath': get_redirect_path(user.role_data)
    }), 200


def set_user_role(user_id):
    data = request.get_json(silent=True) or {}
    role = _requested_role(data)

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    admin = get_current_user()
    user.update_public_metadata(assignedById=admin.id, **_assignment_metadata(role, 'admin'))
    db.session.commit()
    current_app.audit_logger.info(f"Admin {admin.id} set role '{role}' on user {user.id}")

    return jsonify({'message': 'Role updated', 'user': user.to_dict()}), 200
