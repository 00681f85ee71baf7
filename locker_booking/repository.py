from __future__ import annotations

from typing import Any, Mapping
import logging

from .booking import OverlapReport, Reservation, find_overlaps
from .errors import ConflictError, NotAppliedError, NotFoundError, ValidationError
from .event_log import EventLogError, NullEventLog, YamlEventLog
from .fields import parse_timestamp
from .resources import EntitySchema, serialize_row
from .sql_builder import build_insert, build_replace, build_update, is_present
from .store import SqlStore, StoreSession

logger = logging.getLogger(__name__)

USER_SEARCH_FILTERS = ("Email", "Phone", "Lastname", "Firstname", "Country", "Postalcode", "Housenumber")
BOOKING_CONFLICT_MESSAGE = "The selected place is already booked for the chosen dates"


class ResourceRepository:
    """CRUD for one resource family with explicit pre-condition checks.

    Every public method runs its reads and its single write inside one store
    transaction. Payloads are expected to have passed the validation gate.
    """

    def __init__(
        self,
        store: SqlStore,
        entity: EntitySchema,
        event_log: YamlEventLog | NullEventLog | None = None,
    ) -> None:
        self.store = store
        self.entity = entity
        self.event_log = event_log or NullEventLog()

    @property
    def _select_all(self) -> str:
        return f"SELECT * FROM {self.entity.table_name}"

    def _fetch(self, session: StoreSession, resource_id: Any) -> dict[str, Any] | None:
        return session.fetch_one(f"{self._select_all} WHERE {self.entity.key} = ?", [resource_id])

    def _require(self, session: StoreSession, resource_id: Any) -> dict[str, Any]:
        row = self._fetch(session, resource_id)
        if row is None:
            raise NotFoundError(self.entity.not_found_message, {"table": self.entity.table_name, "id": resource_id})
        return row

    def _check_unique(self, session: StoreSession, values: Mapping[str, Any], exclude_id: Any = None) -> None:
        for unique in self.entity.unique:
            candidate = values.get(unique.column)
            if not is_present(candidate):
                continue
            sql = f"SELECT {self.entity.key} FROM {self.entity.table_name} WHERE {unique.column} = ?"
            params: list[Any] = [candidate]
            if exclude_id is not None:
                sql += f" AND {self.entity.key} <> ?"
                params.append(exclude_id)
            if session.fetch_one(sql, params) is not None:
                raise ConflictError(unique.message, details={"table": self.entity.table_name, "column": unique.column})

    def _check_foreign_keys(self, session: StoreSession, values: Mapping[str, Any]) -> None:
        for foreign_key in self.entity.foreign_keys:
            candidate = values.get(foreign_key.column)
            if not is_present(candidate):
                continue
            row = session.fetch_one(
                f"SELECT {foreign_key.key} FROM {foreign_key.table} WHERE {foreign_key.key} = ?",
                [candidate],
            )
            if row is None:
                raise NotFoundError(foreign_key.message, {"table": foreign_key.table, "id": candidate})

    def _record(self, action: str, payload: dict[str, Any]) -> None:
        # the write is already committed here
        event_type = self.entity.event_name(action)
        try:
            self.event_log.record(event_type, payload)
        except (EventLogError, OSError):
            logger.exception("Could not record %s event %s", event_type, payload)

    def list(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (filters or {}).items():
            if column not in self.entity.columns:
                raise ValidationError([{"field": column, "message": f"Unknown filter {column}"}])
            clauses.append(f"{column} = ?")
            params.append(value)

        sql = self._select_all
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += f" ORDER BY {self.entity.key}"
        with self.store.transaction() as session:
            rows = session.fetch_all(sql, params)
        return [serialize_row(self.entity, row) for row in rows]

    def get(self, resource_id: Any) -> dict[str, Any]:
        with self.store.transaction() as session:
            row = self._require(session, resource_id)
        return serialize_row(self.entity, row)

    def create(self, values: Mapping[str, Any]) -> dict[str, Any]:
        statement = build_insert(self.entity.table_name, values, self.entity.columns)
        with self.store.transaction() as session:
            self._check_unique(session, values)
            self._check_foreign_keys(session, values)
            result = session.execute(statement.sql, statement.bound_values)
            new_id = values.get(self.entity.key, result.lastrowid)
            row = self._require(session, new_id)

        logger.info("Created %s %s", self.entity.label.lower(), new_id)
        self._record("CREATED", {self.entity.key: new_id})
        return serialize_row(self.entity, row)

    def replace(self, resource_id: Any, values: Mapping[str, Any]) -> None:
        """Overwrite every replaceable field.

        A missing row is reported before the uniqueness and foreign-key
        checks; zero affected rows after the UPDATE is also not found.
        """
        statement = build_replace(
            self.entity.table_name,
            self.entity.key,
            resource_id,
            values,
            [field.name for field in self.entity.put_fields],
        )
        with self.store.transaction() as session:
            self._require(session, resource_id)
            self._check_unique(session, values, exclude_id=resource_id)
            self._check_foreign_keys(session, values)
            result = session.execute(statement.sql, statement.bound_values)
            if result.rowcount == 0:
                raise NotFoundError(
                    self.entity.not_found_message, {"table": self.entity.table_name, "id": resource_id}
                )

        logger.info("Replaced %s %s", self.entity.label.lower(), resource_id)
        self._record("UPDATED", {self.entity.key: resource_id, "fields": list(statement.fields)})

    def patch(self, resource_id: Any, values: Mapping[str, Any]) -> None:
        """Update only the supplied fields.

        Raises NoFieldsError before touching the store when nothing was
        supplied. When the UPDATE reports zero affected rows for a row that
        exists (some drivers count only changed rows), NotAppliedError is
        raised.
        """
        statement = build_update(
            self.entity.table_name,
            self.entity.key,
            resource_id,
            values,
            [field.name for field in self.entity.patchable],
        )
        with self.store.transaction() as session:
            self._require(session, resource_id)
            self._check_unique(session, values, exclude_id=resource_id)
            self._check_foreign_keys(session, values)
            result = session.execute(statement.sql, statement.bound_values)
            if result.rowcount == 0:
                raise NotAppliedError(details={"table": self.entity.table_name, "id": resource_id})

        logger.info("Patched %s %s (%s)", self.entity.label.lower(), resource_id, ", ".join(statement.fields))
        self._record("UPDATED", {self.entity.key: resource_id, "fields": list(statement.fields)})

    def delete(self, resource_id: Any) -> None:
        with self.store.transaction() as session:
            self._require(session, resource_id)
            session.execute(f"DELETE FROM {self.entity.table_name} WHERE {self.entity.key} = ?", [resource_id])

        logger.info("Deleted %s %s", self.entity.label.lower(), resource_id)
        self._record("DELETED", {self.entity.key: resource_id})


class UserRepository(ResourceRepository):
    def search(self, column: str | None, value: str | None) -> list[dict[str, Any]]:
        """Substring search over an allow-listed column.

        Falls back to every user when the search has no hits.
        """
        if column and column not in USER_SEARCH_FILTERS:
            raise ValidationError([{"field": "filter", "message": "Invalid filter"}])
        if not column or not value:
            return self.list()

        with self.store.transaction() as session:
            rows = session.fetch_all(
                f"{self._select_all} WHERE {column} LIKE ? ORDER BY {self.entity.key}",
                [f"%{value}%"],
            )
        if not rows:
            return self.list()
        return [serialize_row(self.entity, row) for row in rows]

    def find_by_email(self, session: StoreSession, email: str) -> dict[str, Any]:
        row = session.fetch_one(f"SELECT {self.entity.key} FROM {self.entity.table_name} WHERE Email = ?", [email])
        if row is None:
            raise NotFoundError("No user found with given email", {"table": self.entity.table_name})
        return row


class BookingRepository(ResourceRepository):
    def __init__(
        self,
        store: SqlStore,
        entity: EntitySchema,
        users: UserRepository,
        event_log: YamlEventLog | NullEventLog | None = None,
    ) -> None:
        super().__init__(store, entity, event_log)
        self.users = users

    def _existing_reservations(self, session: StoreSession, place_number: int, start: str, end: str) -> list[Reservation]:
        # narrow in SQL; find_overlaps makes the decision
        rows = session.fetch_all(
            "SELECT MomentStart, MomentEnd FROM bookings WHERE PlaceNumber = ? AND MomentStart < ? AND MomentEnd > ?",
            [place_number, end, start],
        )
        return [Reservation(parse_timestamp(row["MomentStart"]), parse_timestamp(row["MomentEnd"])) for row in rows]

    def check_place(self, place_number: int, start: str, end: str) -> OverlapReport:
        with self.store.transaction() as session:
            existing = self._existing_reservations(session, place_number, start, end)
        return find_overlaps(parse_timestamp(start), parse_timestamp(end), existing)

    def create_booking(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Book a place for ``[MomentStart, MomentEnd)`` on behalf of a user.

        The user lookup, the overlap check and the insert share one
        transaction, so two requests for the same place cannot both pass the
        check.
        """
        start = request["MomentStart"]
        end = request["MomentEnd"]
        place_number = request["PlaceNumber"]

        with self.store.transaction() as session:
            user = self.users.find_by_email(session, request["Email"])
            existing = self._existing_reservations(session, place_number, start, end)
            report = find_overlaps(parse_timestamp(start), parse_timestamp(end), existing)
            if report.has_conflict:
                raise ConflictError(
                    BOOKING_CONFLICT_MESSAGE,
                    report.messages(),
                    {"place_number": place_number, "conflicts": len(report.conflicting)},
                )

            values = {
                "UserID": user["UserID"],
                "NumberOfGuests": request["NumberOfGuests"],
                "NumberOfKeycards": request["NumberOfKeycards"],
                "MomentStart": start,
                "MomentEnd": end,
                "PlaceNumber": place_number,
                "CheckedIn": bool(request.get("CheckedIn", False)),
            }
            if request.get("Note") is not None:
                values["Note"] = request["Note"]
            statement = build_insert(self.entity.table_name, values, self.entity.columns)
            result = session.execute(statement.sql, statement.bound_values)
            row = self._require(session, result.lastrowid)

        booking = serialize_row(self.entity, row)
        logger.info("Booked place %s from %s to %s (booking %s)", place_number, start, end, booking["BookingID"])
        self._record(
            "CREATED",
            {
                "BookingID": booking["BookingID"],
                "PlaceNumber": place_number,
                "MomentStart": start,
                "MomentEnd": end,
            },
        )
        return booking

    def list_for_email(self, email: str) -> list[dict[str, Any]]:
        with self.store.transaction() as session:
            user = self.users.find_by_email(session, email)
            rows = session.fetch_all(
                f"{self._select_all} WHERE UserID = ? ORDER BY MomentStart",
                [user["UserID"]],
            )
        return [serialize_row(self.entity, row) for row in rows]

    def cancel(self, booking_id: Any) -> None:
        with self.store.transaction() as session:
            self._require(session, booking_id)
            session.execute("DELETE FROM bookings WHERE BookingID = ?", [booking_id])

        logger.info("Cancelled booking %s", booking_id)
        self._record("CANCELLED", {"BookingID": booking_id})

    def delete(self, resource_id: Any) -> None:
        self.cancel(resource_id)


class CategoryRepository(ResourceRepository):
    def products(self, category_id: Any, products: EntitySchema) -> list[dict[str, Any]]:
        with self.store.transaction() as session:
            self._require(session, category_id)
            rows = session.fetch_all(
                f"SELECT * FROM {products.table_name} WHERE CategoryID = ? ORDER BY {products.key}",
                [category_id],
            )
        return [serialize_row(products, row) for row in rows]


def build_repositories(
    store: SqlStore,
    schemas: Mapping[str, EntitySchema],
    event_log: YamlEventLog | NullEventLog | None = None,
) -> dict[str, ResourceRepository]:
    users = UserRepository(store, schemas["users"], event_log)
    repositories: dict[str, ResourceRepository] = {
        "users": users,
        "bookings": BookingRepository(store, schemas["bookings"], users, event_log),
        "categories": CategoryRepository(store, schemas["categories"], event_log),
    }
    for name in ("lockers", "products", "orders", "ordered_products"):
        repositories[name] = ResourceRepository(store, schemas[name], event_log)
    return repositories
