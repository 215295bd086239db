from datetime import date

from medsearch.domain.profile_completeness import (
    account_status, calculate_age, missing_fields, profile_completeness,
)

FULL_PROFILE = {
    'dateOfBirth': '1990-05-17',
    'gender': 'female',
    'phoneNumber': '+34 600 000 000',
    'address': {'street': 'Calle Mayor 1'},
    'emergencyContact': {'name': 'Juan'},
    'medicalInfo': {'bloodType': 'O+'},
}


def test_full_profile_is_complete():
    assert profile_completeness(FULL_PROFILE) == 100
    assert missing_fields(FULL_PROFILE) == []


def test_empty_and_missing_profiles_score_zero():
    assert profile_completeness({}) == 0
    assert profile_completeness(None) == 0


def test_blank_strings_do_not_count():
    profile = {**FULL_PROFILE, 'gender': '   ', 'phoneNumber': ''}
    assert missing_fields(profile) == ['gender', 'phoneNumber']
    # 4 of 6 -> 66.67 rounds to 67
    assert profile_completeness(profile) == 67


def test_one_of_six_rounds_half_up():
    assert profile_completeness({'gender': 'male'}) == 17


def test_three_of_six_is_fifty():
    profile = {'dateOfBirth': '2000-01-01', 'gender': 'other', 'medicalInfo': {'bloodType': 'A-'}}
    assert profile_completeness(profile) == 50


def test_nested_path_on_non_dict_counts_as_missing():
    assert 'address.street' in missing_fields({'address': 'Calle Mayor'})


def test_account_status():
    assert account_status(None) == 'unknown'
    assert account_status({'isActive': True}) == 'active'
    assert account_status({'isActive': False}) == 'inactive'


def test_calculate_age():
    today = date(2026, 5, 16)
    assert calculate_age('1990-05-17', today) == 35
    assert calculate_age('1990-05-16', today) == 36
    assert calculate_age(None, today) is None
    assert calculate_age('not-a-date', today) is None
