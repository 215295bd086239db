from functools import wraps
from flask import request, current_app, jsonify, make_response, g
from medsearch.models.system_models import AuditLog
from medsearch.extensions import db
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from sqlalchemy.exc import SQLAlchemyError
from medsearch.models.user_models import User
from medsearch.domain.roles import has_permission
from medsearch.utils.time_util import utcnow


def get_current_user():
    """Returns the local User for the verified token, creating it on first sight."""
    user_id = get_jwt_identity()
    cached = getattr(g, 'current_user', None)
    if cached is not None and cached.id == user_id:
        return cached

    user = db.session.get(User, user_id)
    if user is None:
        claims = get_jwt()
        user = User(
            id=user_id,
            email=claims.get('email'),
            public_metadata=claims.get('public_metadata') or {},
            unsafe_metadata={},
        )
        db.session.add(user)
        current_app.logger.info(f"Mirrored new identity {user_id}")
    user.last_seen = utcnow()
    db.session.commit()

    g.current_user = user
    return user


def audit_log(action, resource):
    """Logs user actions to the audit table and the audit logger."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = None
            resource_id = kwargs.get('appointment_id') or kwargs.get('doctor_id') or kwargs.get('specialty_id') \
                or kwargs.get('review_id') or kwargs.get('user_id')
            ip_address = request.remote_addr
            user_agent = request.headers.get('User-Agent')

            try:
                # Attempt to get user_id from a valid JWT token
                user_id = get_jwt_identity()
            except RuntimeError:
                # No JWT token present (public endpoints)
                pass

            try:
                # Use make_response to handle both Response objects and tuples.
                raw_response = f(*args, **kwargs)
                response = make_response(raw_response)

                success = response.status_code < 400
                details = f"Request successful. Status: {response.status_code}"

                log_entry = AuditLog(
                    user_id=user_id,
                    action=action,
                    resource=resource,
                    resource_id=str(resource_id) if resource_id is not None else None,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    success=success,
                    details=details
                )
                db.session.add(log_entry)
                db.session.commit()
                current_app.audit_logger.info(
                    f"Action='{action}', Resource='{resource}', UserID='{user_id}', Success='{success}', Details='{details}'"
                )

                return response

            except Exception as e:
                db.session.rollback()
                details = f"An error occurred: {str(e)}"
                log_entry = AuditLog(
                    user_id=user_id,
                    action=action,
                    resource=resource,
                    resource_id=str(resource_id) if resource_id is not None else None,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    success=False,
                    details=details
                )
                try:
                    db.session.add(log_entry)
                    db.session.commit()
                except SQLAlchemyError as db_error:
                    current_app.audit_logger.error(f"Failed to log audit entry due to DB error: {db_error}")
                    db.session.rollback()

                current_app.audit_logger.error(
                    f"Action='{action}', Resource='{resource}', UserID='{user_id}', Success='False', Details='{details}'"
                )

                raise

        return decorated_function
    return decorator


def require_permission(action):
    """Checks the caller's trusted role against the static permission table."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = get_current_user()

            if not user.is_active:
                return jsonify({'error': 'User not found or inactive'}), 403

            if not has_permission(user.role, action):
                current_app.logger.info(f"Permission '{action}' denied for {user.id} (role={user.role})")
                return jsonify({'error': 'Permission denied'}), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
