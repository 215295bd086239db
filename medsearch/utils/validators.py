"""Request payload validation for doctors, specialties and customer profiles."""

import re
from datetime import date
from typing import Optional

from medsearch.domain.doctor_search import parse_price
from medsearch.domain.errors import ValidationError
from medsearch.models.specialty_models import SPECIALTY_CATEGORIES
from medsearch.models.user_models import DoctorProfile

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
GENDERS = ("male", "female", "other", "prefer_not_to_say")

ADDRESS_FIELDS = ("street", "city", "state", "zipCode", "country")
EMERGENCY_CONTACT_FIELDS = ("name", "relationship", "phone")
MEDICAL_INFO_FIELDS = ("bloodType", "allergies", "chronicConditions", "currentMedications", "insurance")
MEDICAL_LIST_FIELDS = ("allergies", "chronicConditions", "currentMedications")


def clean_string_list(values, field_name, lower=False):
    """Trims entries, drops blanks and duplicates while keeping order."""
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValidationError(f"{field_name} must be a list")
    cleaned = []
    for value in values:
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} entries must be strings")
        value = value.strip()
        if lower:
            value = value.lower()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def clean_text(value, field_name):
    """Trimmed string value; None reads as empty."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value.strip()


def clean_id(value, field_name):
    """Integer row id from a JSON body."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    return value


def _restrict_keys(data, allowed, field_name):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"{field_name} must be an object")
    unknown = set(data) - set(allowed)
    if unknown:
        raise ValidationError(f"Unknown fields in {field_name}", details={"fields": sorted(unknown)})
    return {key: value for key, value in data.items()}


def validate_availability(slots):
    if not isinstance(slots, list):
        raise ValidationError("availability must be a list of day slots")
    seen = set()
    normalized = []
    for slot in slots:
        if not isinstance(slot, dict):
            raise ValidationError("Each availability slot must be an object")
        day = slot.get("dayOfWeek")
        if not isinstance(day, int) or not 0 <= day <= 6:
            raise ValidationError("dayOfWeek must be an integer between 0 and 6")
        if day in seen:
            raise ValidationError(f"Duplicate availability for day {day}")
        seen.add(day)

        start, end = slot.get("startTime", "09:00"), slot.get("endTime", "17:00")
        if not TIME_PATTERN.match(str(start)) or not TIME_PATTERN.match(str(end)):
            raise ValidationError("startTime and endTime must use HH:MM", details={"dayOfWeek": day})
        is_active = bool(slot.get("isActive", False))
        if is_active and start >= end:
            raise ValidationError("startTime must be before endTime", details={"dayOfWeek": day})
        normalized.append({"dayOfWeek": day, "isActive": is_active, "startTime": start, "endTime": end})

    if len(normalized) > 7:
        raise ValidationError("availability has at most seven day slots")
    return normalized


def validate_doctor_payload(data, partial=False):
    """Returns model-ready fields for a doctor create (or partial update)."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    required = ("firstName", "lastName", "licenseNumber")
    if not partial:
        missing = [name for name in required if not clean_text(data.get(name), name)]
        if missing:
            raise ValidationError("Missing required fields", details={"fields": missing})

    fields = {}
    for source, target in (("firstName", "first_name"), ("lastName", "last_name"), ("licenseNumber", "license_number"), ("about", "about")):
        if source in data:
            value = clean_text(data[source], source)
            if source in required and not value:
                raise ValidationError(f"{source} cannot be empty")
            fields[target] = value

    if "consultationFee" in data:
        fee = parse_price(data["consultationFee"])
        if fee is None or fee < 0:
            raise ValidationError("consultationFee must be zero or greater")
        fields["consultation_fee"] = fee

    if "consultationDuration" in data:
        try:
            duration = int(data["consultationDuration"])
        except (TypeError, ValueError):
            raise ValidationError("consultationDuration must be a number of minutes")
        if duration not in DoctorProfile.DURATIONS:
            raise ValidationError("consultationDuration must be 15, 30, 45 or 60", details={"allowed": list(DoctorProfile.DURATIONS)})
        fields["consultation_duration"] = duration

    if "languages" in data or not partial:
        languages = clean_string_list(data.get("languages", ["Español"]), "languages")
        if not languages:
            raise ValidationError("At least one language is required")
        fields["languages"] = languages

    if "address" in data:
        address = _restrict_keys(data["address"], ADDRESS_FIELDS, "address")
        fields["address"] = {key: str(address.get(key) or "").strip() for key in ADDRESS_FIELDS}

    if "availability" in data:
        fields["availability"] = validate_availability(data["availability"])

    if "insuranceAccepted" in data:
        fields["insurance_accepted"] = clean_string_list(data["insuranceAccepted"], "insuranceAccepted")

    if "isAvailableForEmergency" in data:
        fields["is_available_for_emergency"] = bool(data["isAvailableForEmergency"])

    if "yearsOfExperience" in data:
        try:
            years = int(data["yearsOfExperience"] or 0)
        except (TypeError, ValueError):
            raise ValidationError("yearsOfExperience must be a number")
        if years < 0:
            raise ValidationError("yearsOfExperience cannot be negative")
        fields["years_of_experience"] = years

    return fields


def validate_specialty_payload(data, partial=False):
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    text_fields = (
        ("name", "name"),
        ("nameEn", "name_en"),
        ("description", "description"),
        ("descriptionEn", "description_en"),
        ("icon", "icon"),
    )
    if not partial:
        missing = [source for source, _ in text_fields if not clean_text(data.get(source), source)]
        if missing:
            raise ValidationError("Missing required fields", details={"fields": missing})

    fields = {}
    for source, target in text_fields:
        if source in data:
            value = clean_text(data[source], source)
            if not value:
                raise ValidationError(f"{source} cannot be empty")
            fields[target] = value

    if "category" in data or not partial:
        category = data.get("category", "Medical")
        if category not in SPECIALTY_CATEGORIES:
            raise ValidationError(f"Invalid category '{category}'", details={"allowed": SPECIALTY_CATEGORIES})
        fields["category"] = category

    if "priority" in data or not partial:
        try:
            priority = int(data.get("priority", 5))
        except (TypeError, ValueError):
            raise ValidationError("priority must be an integer between 1 and 10")
        if not 1 <= priority <= 10:
            raise ValidationError("priority must be an integer between 1 and 10")
        fields["priority"] = priority

    if "commonConditions" in data:
        fields["common_conditions"] = clean_string_list(data["commonConditions"], "commonConditions")
    if "commonProcedures" in data:
        fields["common_procedures"] = clean_string_list(data["commonProcedures"], "commonProcedures")
    if "seoKeywords" in data:
        fields["seo_keywords"] = clean_string_list(data["seoKeywords"], "seoKeywords", lower=True)
    if "isActive" in data:
        fields["is_active"] = bool(data["isActive"])

    return fields


def validate_date_of_birth(value: Optional[str]) -> Optional[str]:
    if value is None or str(value).strip() == "":
        return None
    try:
        parsed = date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError("dateOfBirth must be YYYY-MM-DD")
    if parsed > date.today():
        raise ValidationError("dateOfBirth cannot be in the future")
    return parsed.isoformat()


def validate_customer_update(data):
    """Validates a partial customer profile update (camelCase API shape)."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    allowed = {
        "firstName", "lastName", "dateOfBirth", "gender", "phoneNumber", "address",
        "emergencyContact", "medicalInfo", "notificationPreferences", "version",
    }
    unknown = set(data) - allowed
    if unknown:
        raise ValidationError("Fields cannot be edited", details={"fields": sorted(unknown)})

    update = {}
    for name in ("firstName", "lastName", "phoneNumber"):
        if name in data:
            update[name] = clean_text(data[name], name) or None

    if "dateOfBirth" in data:
        update["dateOfBirth"] = validate_date_of_birth(data["dateOfBirth"])

    if "gender" in data:
        gender = clean_text(data["gender"], "gender") or None
        if gender and gender not in GENDERS:
            raise ValidationError(f"Invalid gender '{gender}'", details={"allowed": list(GENDERS)})
        update["gender"] = gender

    if "address" in data:
        update["address"] = _restrict_keys(data["address"], ADDRESS_FIELDS, "address")

    if "emergencyContact" in data:
        update["emergencyContact"] = _restrict_keys(data["emergencyContact"], EMERGENCY_CONTACT_FIELDS, "emergencyContact")

    if "medicalInfo" in data:
        medical_info = _restrict_keys(data["medicalInfo"], MEDICAL_INFO_FIELDS, "medicalInfo")
        blood_type = medical_info.get("bloodType")
        if blood_type and blood_type not in BLOOD_TYPES:
            raise ValidationError(f"Invalid bloodType '{blood_type}'", details={"allowed": list(BLOOD_TYPES)})
        for name in MEDICAL_LIST_FIELDS:
            if name in medical_info:
                medical_info[name] = clean_string_list(medical_info[name], name)
        update["medicalInfo"] = medical_info

    if "notificationPreferences" in data:
        preferences = data["notificationPreferences"]
        if not isinstance(preferences, dict):
            raise ValidationError("notificationPreferences must be an object")
        update["notificationPreferences"] = {key: bool(value) for key, value in preferences.items()}

    return update
