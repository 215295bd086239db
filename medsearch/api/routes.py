from flask_jwt_extended import jwt_required
from . import api_bp, health_bp
from medsearch.extensions import limiter
from medsearch.utils.decorators import audit_log, require_permission
from .controllers import (
    health_controller, user_controller, role_controller, doctor_controller, specialty_controller,
    appointment_controller, customer_controller, review_controller,
)


# --- Health ---
@health_bp.route('/health', methods=['GET'])
@limiter.exempt
def health():
    return health_controller.health_check()

@api_bp.route('/health', methods=['GET'])
@limiter.exempt
def api_health():
    return health_controller.health_check()


# --- Session / User Endpoints ---
@api_bp.route('/users/me', methods=['GET'])
@jwt_required()
def get_current_user_route():
    return user_controller.get_current_user_details()

@api_bp.route('/users/me/onboarding', methods=['POST'])
@jwt_required()
@audit_log("COMPLETE_ONBOARDING", "users")
def complete_onboarding_route():
    return user_controller.complete_onboarding()

@api_bp.route('/auth/logout', methods=['POST'])
@jwt_required()
@audit_log("USER_LOGOUT", "authentication")
def logout():
    return user_controller.logout_user()


# --- Role Assignment Endpoints ---
@api_bp.route('/roles/self-assign', methods=['POST'])
@jwt_required()
@limiter.limit("10 per hour")
@audit_log("ROLE_SELF_ASSIGN", "roles")
def self_assign_role_route():
    return role_controller.self_assign_role()

@api_bp.route('/roles/links', methods=['POST'])
@jwt_required()
@limiter.limit("30 per hour")
@require_permission('manage_roles')
@audit_log("ROLE_LINK_CREATE", "roles")
def create_role_link_route():
    return role_controller.create_role_link()

@api_bp.route('/roles/assign', methods=['POST'])
@jwt_required()
@limiter.limit("10 per minute")
@audit_log("ROLE_LINK_REDEEM", "roles")
def assign_role_route():
    return role_controller.assign_role_from_link()

@api_bp.route('/admin/users/<string:user_id>/role', methods=['PUT'])
@jwt_required()
@require_permission('manage_roles')
@audit_log("ROLE_SET", "users")
def set_user_role_route(user_id):
    return role_controller.set_user_role(user_id)


# --- Doctor Endpoints ---
@api_bp.route('/doctors', methods=['GET'])
def search_doctors_route():
    return doctor_controller.search_doctors_route()

@api_bp.route('/doctors/<int:doctor_id>', methods=['GET'])
def get_doctor_route(doctor_id):
    return doctor_controller.get_doctor(doctor_id)

@api_bp.route('/doctors', methods=['POST'])
@jwt_required()
@require_permission('moderate_doctors')
@audit_log("DOCTOR_CREATE", "doctors")
def create_doctor_route():
    return doctor_controller.create_doctor()

@api_bp.route('/doctors/<int:doctor_id>', methods=['PUT'])
@jwt_required()
@audit_log("DOCTOR_UPDATE", "doctors")
def update_doctor_route(doctor_id):
    return doctor_controller.update_doctor(doctor_id)

@api_bp.route('/doctors/<int:doctor_id>/status', methods=['PUT'])
@jwt_required()
@require_permission('moderate_doctors')
@audit_log("DOCTOR_STATUS_CHANGE", "doctors")
def update_doctor_status_route(doctor_id):
    return doctor_controller.update_doctor_status(doctor_id)

@api_bp.route('/doctors/me/availability', methods=['PUT'])
@jwt_required()
@require_permission('manage_availability')
@audit_log("DOCTOR_AVAILABILITY_UPDATE", "doctors")
def update_own_availability_route():
    return doctor_controller.update_own_availability()

@api_bp.route('/doctors/stats/overview', methods=['GET'])
@jwt_required()
@require_permission('view_reports')
def doctor_stats_route():
    return doctor_controller.get_doctor_stats()


# --- Review Endpoints ---
@api_bp.route('/doctors/<int:doctor_id>/reviews', methods=['POST'])
@jwt_required()
@require_permission('rate_doctors')
@audit_log("REVIEW_CREATE", "reviews")
def create_review_route(doctor_id):
    return review_controller.create_review(doctor_id)

@api_bp.route('/reviews/<int:review_id>/response', methods=['PUT'])
@jwt_required()
@require_permission('respond_to_reviews')
@audit_log("REVIEW_RESPOND", "reviews")
def respond_to_review_route(review_id):
    return review_controller.respond_to_review(review_id)

@api_bp.route('/reviews/stats/overview', methods=['GET'])
@jwt_required()
@require_permission('view_reports')
def review_stats_route():
    return review_controller.get_review_stats()

@api_bp.route('/reviews/<int:review_id>/flag', methods=['POST'])
@jwt_required()
@limiter.limit("20 per hour")
@audit_log("REVIEW_FLAG", "reviews")
def flag_review_route(review_id):
    return review_controller.flag_review(review_id)

@api_bp.route('/reviews/flagged', methods=['GET'])
@jwt_required()
@require_permission('moderate_customers')
def flagged_reviews_route():
    return review_controller.get_flagged_reviews()

@api_bp.route('/reviews/<int:review_id>/approve', methods=['PUT'])
@jwt_required()
@require_permission('moderate_customers')
@audit_log("REVIEW_APPROVE", "reviews")
def approve_review_route(review_id):
    return review_controller.approve_review(review_id)

@api_bp.route('/reviews/<int:review_id>/reject', methods=['PUT'])
@jwt_required()
@require_permission('moderate_customers')
@audit_log("REVIEW_REJECT", "reviews")
def reject_review_route(review_id):
    return review_controller.reject_review(review_id)


# --- Specialty Endpoints ---
@api_bp.route('/specialties', methods=['GET'])
def get_specialties_route():
    return specialty_controller.get_specialties()

@api_bp.route('/specialties', methods=['POST'])
@jwt_required()
@require_permission('manage_specialties')
@audit_log("SPECIALTY_CREATE", "specialties")
def create_specialty_route():
    return specialty_controller.create_specialty()

@api_bp.route('/specialties/<int:specialty_id>', methods=['PUT'])
@jwt_required()
@require_permission('manage_specialties')
@audit_log("SPECIALTY_UPDATE", "specialties")
def update_specialty_route(specialty_id):
    return specialty_controller.update_specialty(specialty_id)


# --- Appointment Endpoints ---
@api_bp.route('/appointments', methods=['POST'])
@jwt_required()
@limiter.limit("20 per hour")
@require_permission('book_appointments')
@audit_log("APPOINTMENT_CREATE", "appointments")
def create_appointment_route():
    return appointment_controller.create_appointment()

@api_bp.route('/appointments', methods=['GET'])
@jwt_required()
@require_permission('view_all_appointments')
@audit_log("VIEW_ALL_APPOINTMENTS", "appointments")
def get_all_appointments_route():
    return appointment_controller.get_all_appointments()

@api_bp.route('/appointments/customer', methods=['GET'])
@jwt_required()
@require_permission('view_own_appointments')
def get_customer_appointments_route():
    return appointment_controller.get_customer_appointments()

@api_bp.route('/appointments/customer/history', methods=['GET'])
@jwt_required()
@require_permission('view_own_appointments')
def get_appointment_history_route():
    return appointment_controller.get_appointment_history()

@api_bp.route('/appointments/doctor', methods=['GET'])
@jwt_required()
@require_permission('view_own_appointments')
def get_doctor_appointments_route():
    return appointment_controller.get_doctor_appointments()

@api_bp.route('/appointments/stats/overview', methods=['GET'])
@jwt_required()
@require_permission('view_reports')
def appointment_stats_route():
    return appointment_controller.get_appointment_stats()

@api_bp.route('/appointments/<int:appointment_id>', methods=['GET'])
@jwt_required()
@audit_log("VIEW_APPOINTMENT", "appointments")
def get_appointment_route(appointment_id):
    return appointment_controller.get_appointment_by_id(appointment_id)

@api_bp.route('/appointments/<int:appointment_id>', methods=['PUT'])
@jwt_required()
@audit_log("APPOINTMENT_CLINICAL_UPDATE", "appointments")
def update_appointment_route(appointment_id):
    return appointment_controller.update_appointment(appointment_id)

@api_bp.route('/appointments/<int:appointment_id>/cancel', methods=['POST'])
@jwt_required()
@audit_log("APPOINTMENT_CANCEL", "appointments")
def cancel_appointment_route(appointment_id):
    return appointment_controller.cancel_appointment(appointment_id)

@api_bp.route('/appointments/<int:appointment_id>/reschedule', methods=['POST'])
@jwt_required()
@limiter.limit("20 per hour")
@audit_log("APPOINTMENT_RESCHEDULE", "appointments")
def reschedule_appointment_route(appointment_id):
    return appointment_controller.reschedule_appointment(appointment_id)


# --- Customer Endpoints ---
@api_bp.route('/customers/profile', methods=['GET'])
@jwt_required()
@require_permission('view_own_profile')
@audit_log("VIEW_OWN_PROFILE", "customers")
def get_customer_profile_route():
    return customer_controller.get_customer_profile()

@api_bp.route('/customers/profile', methods=['PUT'])
@jwt_required()
@require_permission('view_own_profile')
@audit_log("UPDATE_OWN_PROFILE", "customers")
def update_customer_profile_route():
    return customer_controller.update_customer_profile()

@api_bp.route('/customers/favorites', methods=['GET'])
@jwt_required()
@require_permission('view_doctors')
def get_favorites_route():
    return customer_controller.get_favorites()

@api_bp.route('/customers/favorites', methods=['POST'])
@jwt_required()
@require_permission('view_doctors')
@audit_log("FAVORITE_ADD", "customers")
def add_favorite_route():
    return customer_controller.add_favorite()

@api_bp.route('/customers/favorites/<int:doctor_id>', methods=['DELETE'])
@jwt_required()
@require_permission('view_doctors')
@audit_log("FAVORITE_REMOVE", "customers")
def remove_favorite_route(doctor_id):
    return customer_controller.remove_favorite(doctor_id)

@api_bp.route('/customers/count', methods=['GET'])
@jwt_required()
@require_permission('view_reports')
def customer_count_route():
    return customer_controller.get_customer_count()
