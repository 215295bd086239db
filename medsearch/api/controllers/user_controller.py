from flask import jsonify
from flask_jwt_extended import get_jwt
from medsearch.extensions import db
from medsearch.models.system_models import RevokedToken
from medsearch.domain.roles import get_redirect_path, permissions_for
from medsearch.utils.decorators import get_current_user
from medsearch.utils.time_util import utcnow


def _session_payload(user):
    role_data = user.role_data
    return {
        'user': user.to_dict(),
        'redirectPath': get_redirect_path(role_data),
        # Only the trusted role grants permissions
        'permissions': permissions_for(user.role),
    }


def get_current_user_details():
    """Identity, resolved role data, redirect path and permissions for the caller."""
    user = get_current_user()
    return jsonify(_session_payload(user)), 200


def complete_onboarding():
    user = get_current_user()
    if not user.role_data.has_role:
        return jsonify({'error': 'Choose a role before completing onboarding'}), 400

    user.update_unsafe_metadata(onboardingCompleted=True, onboardingCompletedAt=utcnow().isoformat())
    db.session.commit()
    return jsonify({'message': 'Onboarding completed', **_session_payload(user)}), 200


def logout_user():
    jti = get_jwt()['jti']
    if not RevokedToken.query.filter_by(jti=jti).first():
        db.session.add(RevokedToken(jti=jti))
        db.session.commit()
    return jsonify({'message': 'Successfully logged out'}), 200
