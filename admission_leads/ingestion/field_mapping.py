"""
admission_leads/ingestion/field_mapping.py — Maps raw form submissions onto standard lead fields.

Institution forms name their fields freely ("full_name", "mobileNumber",
"utm_source", ...). This module maps them onto the field names the scoring
engine's completeness check understands, cleans the values, and pulls out the
lead source and course interest.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from bs4 import BeautifulSoup

from admission_leads.config import settings

logger = logging.getLogger(__name__)


# ── Field name patterns ──────────────────────────────────────────────────────

# Target field → source field names it absorbs. Order matters: first hit wins.
COMMON_FIELD_PATTERNS: dict[str, list[str]] = {
    "name": [
        "name", "full_name", "fullName", "student_name", "studentName",
        "applicant_name", "applicantName", "candidate_name",
        "first_name", "firstName", "last_name", "lastName",
    ],
    "email": [
        "email", "email_address", "emailAddress", "student_email", "studentEmail",
        "applicant_email", "applicantEmail", "contact_email", "contactEmail",
        "primary_email", "primaryEmail",
    ],
    "phone": [
        "phone", "phone_number", "phoneNumber", "mobile", "mobile_number",
        "mobileNumber", "contact_number", "contactNumber", "telephone",
        "student_phone", "studentPhone", "applicant_phone", "applicantPhone",
    ],
    "course": [
        "course", "course_name", "courseName", "program", "program_name",
        "programName", "degree", "degree_name", "degreeName", "stream",
        "specialization", "field_of_study", "fieldOfStudy",
    ],
    "qualification": [
        "qualification", "education", "educational_background",
        "educationalBackground", "highest_qualification", "highestQualification",
        "degree_held", "degreeHeld", "academic_qualification", "academicQualification",
    ],
    "address": [
        "address", "full_address", "fullAddress", "permanent_address",
        "permanentAddress", "residential_address", "residentialAddress",
        "home_address", "homeAddress", "current_address", "currentAddress",
    ],
    "city": [
        "city", "location", "residence_city", "residenceCity", "current_city",
        "currentCity", "hometown", "home_town", "homeTown",
    ],
    "state": [
        "state", "province", "region", "residence_state", "residenceState",
        "current_state", "currentState",
    ],
    "pincode": [
        "pincode", "pin_code", "pinCode", "postal_code", "postalCode",
        "zip_code", "zipCode", "zip",
    ],
    "dateOfBirth": [
        "date_of_birth", "dateOfBirth", "dob", "birth_date", "birthDate",
        "birthday", "birth_day", "birthDay",
    ],
    "gender": ["gender", "sex", "title", "salutation"],
    "parentName": [
        "parent_name", "parentName", "father_name", "fatherName", "mother_name",
        "motherName", "guardian_name", "guardianName", "emergency_contact",
        "emergencyContact",
    ],
    "parentPhone": [
        "parent_phone", "parentPhone", "father_phone", "fatherPhone",
        "mother_phone", "motherPhone", "guardian_phone", "guardianPhone",
        "emergency_phone", "emergencyPhone",
    ],
    "parentEmail": [
        "parent_email", "parentEmail", "father_email", "fatherEmail",
        "mother_email", "motherEmail", "guardian_email", "guardianEmail",
        "emergency_email", "emergencyEmail",
    ],
    "source": [
        "source", "lead_source", "leadSource", "referral_source", "referralSource",
        "how_did_you_hear", "howDidYouHear", "marketing_source", "marketingSource",
        "utm_source", "utmSource", "campaign", "medium",
    ],
    "interest": [
        "interest", "area_of_interest", "areaOfInterest", "preferred_course",
        "preferredCourse", "course_interest", "courseInterest",
        "program_interest", "programInterest",
    ],
    "budget": [
        "budget", "budget_range", "budgetRange", "fee_budget", "feeBudget",
        "affordability", "financial_capacity", "financialCapacity",
    ],
    "experience": [
        "experience", "work_experience", "workExperience", "professional_experience",
        "professionalExperience", "years_of_experience", "yearsOfExperience",
    ],
    "notes": [
        "notes", "comments", "remarks", "additional_info", "additionalInfo",
        "message", "feedback", "requirements", "special_requirements",
        "specialRequirements",
    ],
}

REQUIRED_LEAD_FIELDS = ("name", "email", "phone")

LEAD_SOURCE_FIELDS = ("source", "lead_source", "referral_source", "utm_source", "campaign")
COURSE_INTEREST_FIELDS = ("course", "program", "interest", "area_of_interest", "preferred_course")

# Tried after ISO 8601; day-first as entered on Indian forms
DATE_INPUT_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y")

_SEPARATORS = re.compile(r"[_\s-]")

# Never run through the HTML stripper: "<asha@example.com>" parses as a tag
_CONTACT_FIELDS = frozenset({"email", "phone", "parentEmail", "parentPhone"})
_BRACKETED_EMAIL = re.compile(r"<\s*([^<>\s]+@[^<>\s]+)\s*>")


# ── Output schemas ───────────────────────────────────────────────────────────

@dataclass
class MappedSubmission:
    mapped_data: dict[str, Any]
    unmapped_fields: dict[str, Any]
    mapping_log: list[str] = field(default_factory=list)


@dataclass
class MappingValidation:
    is_valid: bool
    missing_fields: list[str]
    score: int                      # % of required fields present


@dataclass
class MappingSuggestion:
    source_field: str
    suggested_target: str
    confidence: int                 # 0 – 100
    reason: str


# ── Helpers ──────────────────────────────────────────────────────────────────

def _normalize_field_name(name: str) -> str:
    return _SEPARATORS.sub("", name.lower())


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _strip_html(raw: str) -> str:
    """Remove HTML tags and decode entities from a submitted string."""
    if "<" not in raw and "&" not in raw:
        return raw
    soup = BeautifulSoup(raw, "lxml")
    text = soup.get_text(separator=" ")
    # Collapse extra whitespace left behind by removed tags
    return re.sub(r"\s+", " ", text).strip()


def _match_pattern(source_field: str) -> tuple[str, str, bool] | None:
    """
    (target, pattern, exact) for a submitted field name. Exact pattern matches
    across all targets are tried before partial (substring) ones, so
    "fatherName" lands on parentName rather than on name.
    """
    normalized = _normalize_field_name(source_field)
    if not normalized:
        return None

    for target, patterns in COMMON_FIELD_PATTERNS.items():
        for pattern in patterns:
            if normalized == _normalize_field_name(pattern):
                return target, pattern, True

    for target, patterns in COMMON_FIELD_PATTERNS.items():
        for pattern in patterns:
            candidate = _normalize_field_name(pattern)
            if candidate in normalized or normalized in candidate:
                return target, pattern, False

    return None


def find_mapped_field(source_field: str) -> str | None:
    """Return the standard lead field a submitted field name maps to, if any."""
    match = _match_pattern(source_field)
    return match[0] if match else None


def normalize_email(email: Any) -> str:
    """Lowercase and trim; 'Name <addr>' and '<addr>' keep only the address."""
    text = str(email).strip()
    match = _BRACKETED_EMAIL.search(text)
    if match:
        text = match.group(1)
    return text.lower().strip()


def normalize_phone(phone: Any) -> str:
    """Keep digits and '+', and add the country code to bare local numbers."""
    normalized = re.sub(r"[^\d+]", "", str(phone))
    country_code = settings.phone_country_code

    if len(normalized) == 10 and not normalized.startswith("+"):
        normalized = f"+{country_code}{normalized}"
    elif len(normalized) == 10 + len(country_code) and normalized.startswith(country_code):
        normalized = f"+{normalized}"
    return normalized


def normalize_date(value: Any) -> str:
    """ISO 'YYYY-MM-DD' when the value parses as a date, else its string form."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        try:
            # fromisoformat() only accepts a trailing "Z" from Python 3.11
            iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
            return datetime.fromisoformat(iso_text).date().isoformat()
        except ValueError:
            pass
        for fmt in DATE_INPUT_FORMATS:
            try:
                return datetime.strptime(text, fmt).date().isoformat()
            except ValueError:
                continue
    return str(value)


def normalize_pincode(pincode: Any) -> str:
    return re.sub(r"\D", "", str(pincode))[:6]


def normalize_name(name: Any) -> str:
    return re.sub(r"\s+", " ", str(name).strip())


_TRANSFORMS = {
    "email": normalize_email,
    "phone": normalize_phone,
    "dateOfBirth": normalize_date,
    "pincode": normalize_pincode,
    "name": normalize_name,
}


def transform_value(value: Any, target_field: str) -> Any:
    if isinstance(value, str) and target_field not in _CONTACT_FIELDS:
        value = _strip_html(value)
    transform = _TRANSFORMS.get(target_field)
    return transform(value) if transform else value


# ── Main functions ───────────────────────────────────────────────────────────

def unwrap_form_values(form_data: dict[str, Any]) -> dict[str, Any]:
    """
    Newer widgets post {"values": {...}, "fields": [...]}; return the values.
    Older ones post the values directly.
    """
    if isinstance(form_data.get("values"), dict) and "fields" in form_data:
        return form_data["values"]
    return form_data


def map_form_data_to_lead(form_data: dict[str, Any]) -> MappedSubmission:
    """
    Map every non-empty submitted field onto a standard lead field.

    Fields that match no pattern are returned untouched in `unmapped_fields`.
    When two submitted fields map to the same target, the later one wins.
    """
    mapped: dict[str, Any] = {}
    unmapped = dict(form_data)
    log: list[str] = []

    for name, value in form_data.items():
        if _is_empty(value):
            continue

        target = find_mapped_field(name)
        if target:
            mapped[target] = transform_value(value, target)
            unmapped.pop(name, None)
            log.append(f'"{name}" -> "{target}"')

    logger.debug("Mapped %d / %d submitted fields.", len(log), len(form_data))
    return MappedSubmission(mapped_data=mapped, unmapped_fields=unmapped, mapping_log=log)


def extract_lead_source(form_data: dict[str, Any]) -> str:
    for name in LEAD_SOURCE_FIELDS:
        if form_data.get(name):
            return str(form_data[name])
    return settings.default_lead_source


def extract_course_interest(form_data: dict[str, Any]) -> str | None:
    for name in COURSE_INTEREST_FIELDS:
        if form_data.get(name):
            return str(form_data[name])
    return None


def validate_mapped_data(mapped_data: dict[str, Any]) -> MappingValidation:
    """Check that name, email and phone are present and non-blank."""
    missing = [
        f for f in REQUIRED_LEAD_FIELDS
        if not mapped_data.get(f) or str(mapped_data[f]).strip() == ""
    ]
    present = len(REQUIRED_LEAD_FIELDS) - len(missing)
    score = int(present / len(REQUIRED_LEAD_FIELDS) * 100 + 0.5)
    return MappingValidation(is_valid=not missing, missing_fields=missing, score=score)


def suggest_field_mapping(field_name: str, value: Any) -> MappingSuggestion | None:
    match = _match_pattern(field_name)
    if match:
        target, pattern, exact = match
        if exact:
            return MappingSuggestion(field_name, target, 100, f"Exact match with pattern: {pattern}")
        return MappingSuggestion(field_name, target, 80, f"Partial match with pattern: {pattern}")

    # Fall back to what the value looks like
    if isinstance(value, str):
        if "@" in value and "." in value:
            return MappingSuggestion(field_name, "email", 70, "Contains email-like format")
        if re.fullmatch(r"\d{10}", re.sub(r"\D", "", value)):
            return MappingSuggestion(field_name, "phone", 70, "Contains 10-digit number (likely phone)")

    return None


def generate_mapping_suggestions(form_data: dict[str, Any]) -> list[MappingSuggestion]:
    """Suggest a target lead field for each non-empty submitted field."""
    suggestions = []
    for name, value in form_data.items():
        if _is_empty(value):
            continue
        suggestion = suggest_field_mapping(name, value)
        if suggestion:
            suggestions.append(suggestion)
    return suggestions
