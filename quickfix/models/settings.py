"""
quickfix/models/settings.py

Site-wide configuration published by /public/settings.
"""

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

_FLAGS = (
    "maintenance_mode",
    "allow_registration",
    "allow_login",
    "email_verification_enabled",
    "enable_comments",
    "enable_ratings",
)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


class SiteSettings(BaseModel):
    """
    Flat settingName -> settingValue map.

    The keys the client acts on are typed fields; every other key is kept as
    an extra and read with ``get``. Accepts the raw map positionally:
    ``SiteSettings({"websiteMaintenanceMode": "true"})``.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    maintenance_mode: bool = Field(default=False, alias="websiteMaintenanceMode")
    allow_registration: bool = Field(default=True, alias="allowRegistration")
    allow_login: bool = Field(default=True, alias="allowLogin")
    email_verification_enabled: bool = Field(default=False, alias="enableEmailVerification")
    enable_comments: bool = Field(default=True, alias="enableComments")
    enable_ratings: bool = Field(default=True, alias="enableRatings")
    upi_id: Optional[str] = Field(default=None, alias="upiIdForPremium")
    contact_email: Optional[str] = Field(default=None, alias="contactEmail")
    global_announcement: Optional[str] = Field(default=None, alias="globalAnnouncement")

    def __init__(self, values: Optional[Mapping[str, Any]] = None, /, **data: Any) -> None:
        super().__init__(**{**dict(values or {}), **data})

    @field_validator(*_FLAGS, mode="before")
    @classmethod
    def parse_flag(cls, value: Any, info: ValidationInfo) -> bool:
        if value is None:
            return cls.model_fields[info.field_name].default
        return _as_bool(value)

    @field_validator("upi_id", "contact_email", "global_announcement", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return str(value)

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def get(self, name: str, default: Any = None) -> Any:
        value = self.as_dict().get(name)
        return default if value is None else value

    def with_value(self, name: str, value: Any) -> "SiteSettings":
        return SiteSettings({**self.as_dict(), name: value})

    def __contains__(self, name: str) -> bool:
        return name in self.as_dict()

    @property
    def social_links(self) -> Dict[str, str]:
        links = {
            "facebook": self.get("socialFacebookUrl"),
            "twitter": self.get("socialTwitterUrl"),
            "instagram": self.get("socialInstagramUrl"),
        }
        return {k: v for k, v in links.items() if v}

    @property
    def office_contact(self) -> Dict[str, str]:
        info = {
            "phone": self.get("officePhone"),
            "address": self.get("officeAddress"),
            "map_url": self.get("officeMapUrl"),
        }
        return {k: v for k, v in info.items() if v}

    @property
    def policy_dates(self) -> Dict[str, str]:
        dates = {
            "privacy_policy": self.get("privacyPolicyLastUpdated"),
            "terms_of_service": self.get("termsOfServiceLastUpdated"),
        }
        return {k: v for k, v in dates.items() if v}

    def plan_price(self, plan_name: str) -> Optional[float]:
        value = self.get(f"{plan_name}PlanPrice")
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None
