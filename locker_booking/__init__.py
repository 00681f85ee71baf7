from .booking import OverlapReport, Reservation, find_overlaps, has_conflict, has_time_overlap
from .config import Settings, load_settings
from .errors import (
	ConflictError,
	LockerBookingError,
	NoFieldsError,
	NoOpError,
	NotAppliedError,
	NotFoundError,
	StoreError,
	ValidationError,
)
from .event_log import EventLogError, NullEventLog, YamlEventLog
from .repository import BookingRepository, CategoryRepository, ResourceRepository, UserRepository, build_repositories
from .resources import EntitySchema, build_schemas
from .sql_builder import Statement, UpdateStatement, build_insert, build_replace, build_update, is_present
from .store import SqlStore
from .validation import parse_resource_id, validate_payload

__all__ = [
	"OverlapReport",
	"Reservation",
	"find_overlaps",
	"has_conflict",
	"has_time_overlap",
	"Settings",
	"load_settings",
	"ConflictError",
	"LockerBookingError",
	"NoFieldsError",
	"NoOpError",
	"NotAppliedError",
	"NotFoundError",
	"StoreError",
	"ValidationError",
	"EventLogError",
	"NullEventLog",
	"YamlEventLog",
	"BookingRepository",
	"CategoryRepository",
	"ResourceRepository",
	"UserRepository",
	"build_repositories",
	"EntitySchema",
	"build_schemas",
	"Statement",
	"UpdateStatement",
	"build_insert",
	"build_replace",
	"build_update",
	"is_present",
	"SqlStore",
	"parse_resource_id",
	"validate_payload",
]
