"""Column mixins shared by registrations, profiles and organizations.

The portal captures the same institutional profile (contacts and the
"systems in use" survey) at registration time, on the member's profile and on
the organization record; approval copies it from one to the next.
"""

from typing import Any

from sqlalchemy import Boolean, Column, Integer, String, Text

SYSTEM_FIELDS = (
    "student_information_system",
    "financial_system",
    "financial_aid",
    "hcm_hr",
    "payroll_system",
    "purchasing_system",
    "housing_management",
    "learning_management",
    "admissions_crm",
    "alumni_advancement_crm",
)

HARDWARE_FIELDS = (
    "primary_office_apple",
    "primary_office_asus",
    "primary_office_dell",
    "primary_office_hp",
    "primary_office_microsoft",
    "primary_office_other",
)

CONTACT_FIELDS = (
    "primary_contact_title",
    "secondary_first_name",
    "secondary_last_name",
    "secondary_contact_title",
    "secondary_contact_email",
    "student_fte",
    "city",
    "state",
    "is_private_nonprofit",
)

BOOLEAN_FIELDS = frozenset((*HARDWARE_FIELDS, "is_private_nonprofit"))


def as_bool(value: Any) -> bool:
    """Boolean from a JSON value; form payloads send flags as strings."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


DESCRIPTIVE_FIELDS = (
    *CONTACT_FIELDS,
    *SYSTEM_FIELDS,
    *HARDWARE_FIELDS,
    "primary_office_other_details",
    "other_software_comments",
)


class ContactFieldsMixin:
    primary_contact_title = Column(String(255), nullable=True)
    secondary_first_name = Column(String(255), nullable=True)
    secondary_last_name = Column(String(255), nullable=True)
    secondary_contact_title = Column(String(255), nullable=True)
    secondary_contact_email = Column(String(255), nullable=True)
    student_fte = Column(Integer, nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(100), nullable=True)
    is_private_nonprofit = Column(Boolean, nullable=False, default=False)


class SystemFieldsMixin:
    student_information_system = Column(String(255), nullable=True)
    financial_system = Column(String(255), nullable=True)
    financial_aid = Column(String(255), nullable=True)
    hcm_hr = Column(String(255), nullable=True)
    payroll_system = Column(String(255), nullable=True)
    purchasing_system = Column(String(255), nullable=True)
    housing_management = Column(String(255), nullable=True)
    learning_management = Column(String(255), nullable=True)
    admissions_crm = Column(String(255), nullable=True)
    alumni_advancement_crm = Column(String(255), nullable=True)

    primary_office_apple = Column(Boolean, nullable=False, default=False)
    primary_office_asus = Column(Boolean, nullable=False, default=False)
    primary_office_dell = Column(Boolean, nullable=False, default=False)
    primary_office_hp = Column(Boolean, nullable=False, default=False)
    primary_office_microsoft = Column(Boolean, nullable=False, default=False)
    primary_office_other = Column(Boolean, nullable=False, default=False)
    primary_office_other_details = Column(Text, nullable=True)
    other_software_comments = Column(Text, nullable=True)
