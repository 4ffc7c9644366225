"""Authority (funding body) record submitted from the billing forms."""

import re

from pydantic import BaseModel, field_validator

PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]*$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthorityData(BaseModel):
    """Authority info, key contact, invoice configuration and CM2000 flag."""

    id: str | None = None
    organization: str
    telephone: str = ""
    email: str = ""
    address: str = ""

    contact_name: str = ""
    contact_phone: str = ""
    contact_email: str = ""

    invoice_setting: str = ""
    invoice_name_display: str = ""
    billing_address: str = ""
    invoice_email: str = ""

    needs_cm2000: bool = False

    @field_validator("organization")
    @classmethod
    def organization_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Organization is required")
        return value

    @field_validator("telephone", "contact_phone")
    @classmethod
    def valid_phone(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("Invalid phone number")
        return value

    @field_validator("email", "contact_email", "invoice_email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        value = value.strip()
        if value and not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value
