"""Pydantic schemas shared across the API.

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

PIN_PATTERN = re.compile(r"^\d{6,10}$")
WARNING_TIME_PATTERN = r"^\d{1,2}:[0-5]\d$"
DEFAULT_ACTIVITY_ORDER = ["sleep", "feed", "diaper", "note", "bath", "pump"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None


def validate_pin(pin: Optional[str]) -> str:
    if not pin or not PIN_PATTERN.match(pin):
        raise ValueError("PIN must be between 6 and 10 digits")
    return pin


def validate_login_id(login_id: Optional[str]) -> str:
    if login_id is None or len(login_id) != 2:
        raise ValueError("Login ID must be exactly 2 characters")
    return login_id


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class CaretakerRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class SleepType(str, Enum):
    NAP = "NAP"
    NIGHT_SLEEP = "NIGHT_SLEEP"


class SleepQuality(str, Enum):
    POOR = "POOR"
    FAIR = "FAIR"
    GOOD = "GOOD"
    EXCELLENT = "EXCELLENT"


class FeedType(str, Enum):
    BREAST = "BREAST"
    BOTTLE = "BOTTLE"
    SOLIDS = "SOLIDS"


class BreastSide(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class DiaperType(str, Enum):
    WET = "WET"
    DIRTY = "DIRTY"
    BOTH = "BOTH"


class Mood(str, Enum):
    HAPPY = "HAPPY"
    CALM = "CALM"
    FUSSY = "FUSSY"
    CRYING = "CRYING"


class PlayType(str, Enum):
    TUMMY_TIME = "TUMMY_TIME"
    INDOOR_PLAY = "INDOOR_PLAY"
    OUTDOOR_PLAY = "OUTDOOR_PLAY"
    CUSTOM = "CUSTOM"


class MilestoneCategory(str, Enum):
    MOTOR = "MOTOR"
    COGNITIVE = "COGNITIVE"
    SOCIAL = "SOCIAL"
    LANGUAGE = "LANGUAGE"
    CUSTOM = "CUSTOM"


class MeasurementType(str, Enum):
    HEIGHT = "HEIGHT"
    WEIGHT = "WEIGHT"
    HEAD_CIRCUMFERENCE = "HEAD_CIRCUMFERENCE"
    TEMPERATURE = "TEMPERATURE"


class CalendarEventType(str, Enum):
    APPOINTMENT = "APPOINTMENT"
    CARETAKER_SCHEDULE = "CARETAKER_SCHEDULE"
    REMINDER = "REMINDER"
    CUSTOM = "CUSTOM"


class RecurrencePattern(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"


# Babies


class BabyCreate(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    birth_date: datetime
    gender: Optional[Gender] = None
    inactive: bool = False
    feed_warning_time: str = Field(default="02:00", pattern=WARNING_TIME_PATTERN)
    diaper_warning_time: str = Field(default="03:00", pattern=WARNING_TIME_PATTERN)


class BabyUpdate(CamelModel):
    id: str
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = None
    birth_date: Optional[datetime] = None
    gender: Optional[Gender] = None
    inactive: Optional[bool] = None
    feed_warning_time: Optional[str] = Field(default=None, pattern=WARNING_TIME_PATTERN)
    diaper_warning_time: Optional[str] = Field(default=None, pattern=WARNING_TIME_PATTERN)


class Baby(CamelModel):
    id: str
    first_name: str
    last_name: str
    birth_date: datetime
    gender: Optional[Gender] = None
    inactive: bool = False
    feed_warning_time: str
    diaper_warning_time: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# Caretakers


class CaretakerCreate(CamelModel):
    login_id: str
    name: str = Field(..., min_length=1)
    type: Optional[str] = None
    role: CaretakerRole = CaretakerRole.USER
    inactive: bool = False
    security_pin: str

    @field_validator("security_pin")
    @classmethod
    def check_pin(cls, value: str) -> str:
        return validate_pin(value)

    @field_validator("login_id")
    @classmethod
    def check_login_id(cls, value: str) -> str:
        return validate_login_id(value)


class CaretakerUpdate(CamelModel):
    id: str
    login_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[str] = None
    role: Optional[CaretakerRole] = None
    inactive: Optional[bool] = None
    security_pin: Optional[str] = None

    @field_validator("security_pin")
    @classmethod
    def check_pin(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else validate_pin(value)

    @field_validator("login_id")
    @classmethod
    def check_login_id(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else validate_login_id(value)


class Caretaker(CamelModel):
    id: str
    login_id: str
    name: str
    type: Optional[str] = None
    role: CaretakerRole
    inactive: bool = False
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# Settings


class Settings(CamelModel):
    id: str
    family_name: str
    default_bottle_unit: str
    default_solids_unit: str
    default_height_unit: str
    default_weight_unit: str
    default_temp_unit: str
    enable_debug_timer: bool = False
    enable_debug_timezone: bool = False
    created_at: datetime
    updated_at: datetime


class SettingsUpdate(CamelModel):
    family_name: Optional[str] = Field(default=None, min_length=1)
    security_pin: Optional[str] = None
    default_bottle_unit: Optional[str] = None
    default_solids_unit: Optional[str] = None
    default_height_unit: Optional[str] = None
    default_weight_unit: Optional[str] = None
    default_temp_unit: Optional[str] = None
    enable_debug_timer: Optional[bool] = None
    enable_debug_timezone: Optional[bool] = None

    @field_validator("security_pin")
    @classmethod
    def check_pin(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else validate_pin(value)


class ChangePinPayload(CamelModel):
    current_pin: str
    new_pin: str
    confirm_pin: str


class ActivitySettings(CamelModel):
    order: List[str] = Field(default_factory=lambda: list(DEFAULT_ACTIVITY_ORDER))
    visible: List[str] = Field(default_factory=lambda: list(DEFAULT_ACTIVITY_ORDER))
    caretaker_id: Optional[str] = None


class Unit(CamelModel):
    id: str
    unit_abbr: str
    unit_name: str


# Auth


class LoginPayload(CamelModel):
    login_id: Optional[str] = None
    security_pin: str = ""


class LoginResult(CamelModel):
    id: str
    name: str
    type: Optional[str] = None
    role: CaretakerRole
    token: str
    expires_at: datetime


class LockoutStatus(CamelModel):
    locked: bool
    remaining_time: int = Field(default=0, description="Milliseconds until the lockout ends")


class SessionInfo(CamelModel):
    caretaker_id: str
    name: Optional[str] = None
    role: CaretakerRole
    issued_at: datetime
    expires_at: datetime
    seconds_remaining: int
    claims: Dict[str, Any]


# Dashboards


class DailyStats(CamelModel):
    date: str
    sleep_minutes: int
    awake_minutes: int
    sleep_time: str
    awake_time: str
    consumed: Dict[str, float]
    total_consumed: str
    diaper_changes: int
    poop_count: int


class BabyStatus(CamelModel):
    baby_id: str
    minutes_since_feed: Optional[int] = None
    minutes_since_diaper: Optional[int] = None
    feed_warning: bool = False
    diaper_warning: bool = False
    is_sleeping: bool = False
