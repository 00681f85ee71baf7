from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Table

from . import schema
from .fields import Field, boolean, email, format_timestamp, integer, phone, text, timestamp, url

DEFAULT_MAX_PLACE_NUMBER = 50

STREET_PATTERN = r"^[A-Za-z0-9 .'-]+$"
POSTALCODE_PATTERN = r"^[A-Za-z0-9 -]+$"
COUNTRY_PATTERN = r"^[A-Za-z .'-]+$"


@dataclass(frozen=True)
class UniqueField:
    column: str
    message: str


@dataclass(frozen=True)
class ForeignKey:
    column: str
    table: str
    key: str
    message: str


@dataclass(frozen=True)
class EntitySchema:
    """Declarative description of one resource family.

    ``fields`` drive POST, ``replace_fields`` drive PUT (defaults to
    ``fields``) and ``patch_fields`` name the columns PATCH may touch, in the
    order they appear in the UPDATE statement.
    """

    name: str
    label: str
    table: Table
    key: str
    fields: tuple[Field, ...]
    not_found_message: str
    replace_fields: tuple[Field, ...] | None = None
    patch_fields: tuple[str, ...] | None = None
    unique: tuple[UniqueField, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()
    event_prefix: str = ""

    @property
    def table_name(self) -> str:
        return self.table.name

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.table.columns)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(field.name for field in self.fields)

    @property
    def put_fields(self) -> tuple[Field, ...]:
        return self.replace_fields if self.replace_fields is not None else self.fields

    @property
    def patchable(self) -> tuple[Field, ...]:
        names = self.patch_fields if self.patch_fields is not None else self.field_names
        by_name = {field.name: field for field in self.fields}
        return tuple(by_name[name] for name in names)

    def event_name(self, action: str) -> str:
        return f"{self.event_prefix or self.label.upper()}_{action}"


def _user_fields() -> tuple[Field, ...]:
    return (
        Field("Email", email()),
        Field("Phone", phone(), required=False),
        Field("Firstname", text("Firstname", 3, 32)),
        Field("Lastname", text("Lastname", 3, 32)),
        Field("Housenumber", text("Housenumber", 1, 6)),
        Field("Streetname", text("Streetname", 3, 30, STREET_PATTERN)),
        Field("Postalcode", text("Postalcode", 4, 10, POSTALCODE_PATTERN)),
        Field("Country", text("Country", 4, 30, COUNTRY_PATTERN)),
    )


def booking_request_fields(max_place_number: int = DEFAULT_MAX_PLACE_NUMBER) -> tuple[Field, ...]:
    return (
        Field("Email", email()),
        Field("NumberOfGuests", integer("Number of Guests", 1, 8)),
        Field("NumberOfKeycards", integer("Number of keycards", 1, 8)),
        Field("MomentStart", timestamp("Moment Start", in_future=True)),
        Field("MomentEnd", timestamp("Moment End", after="MomentStart")),
        Field("PlaceNumber", integer("Placenumber", 1, max_place_number)),
        Field("CheckedIn", boolean("Checked In"), required=False, default=False),
        Field("Note", text("Note", 1, 1000), required=False),
    )


def build_schemas(max_place_number: int = DEFAULT_MAX_PLACE_NUMBER) -> dict[str, EntitySchema]:
    users = EntitySchema(
        name="users",
        label="User",
        table=schema.users,
        key="UserID",
        fields=_user_fields(),
        not_found_message="User not found",
        unique=(UniqueField("Email", "Email already exists"),),
    )

    bookings = EntitySchema(
        name="bookings",
        label="Booking",
        table=schema.bookings,
        key="BookingID",
        fields=booking_request_fields(max_place_number),
        not_found_message="No booking found with given booking id",
        patch_fields=(),
    )

    booking_fk = ForeignKey("BookingID", "bookings", "BookingID", "No Booking found with given BookingID")

    lockers = EntitySchema(
        name="lockers",
        label="Locker",
        table=schema.lockers,
        key="LockerID",
        fields=(
            Field("LockerID", integer("Locker ID", 1)),
            Field("BookingID", integer("Booking id", 1)),
            Field("MomentDelivered", timestamp("Moment delivered"), required=False),
        ),
        replace_fields=(
            Field("BookingID", integer("Booking id", 1)),
            Field("MomentDelivered", timestamp("Moment delivered")),
        ),
        not_found_message="No locker found with given ID",
        unique=(UniqueField("LockerID", "Locker already in use"),),
        foreign_keys=(booking_fk,),
    )

    categories = EntitySchema(
        name="categories",
        label="Category",
        table=schema.product_categories,
        key="CategoryID",
        fields=(Field("Name", text("Name", 1, 100)),),
        not_found_message="No category found with given ID",
        unique=(UniqueField("Name", "Category already exists"),),
    )

    products = EntitySchema(
        name="products",
        label="Product",
        table=schema.products,
        key="ProductID",
        fields=(
            Field("CategoryID", integer("CategoryID", 1)),
            Field("Name", text("Name", 1, 100)),
            Field("AssetsURL", url("AssetsURL", 100)),
            Field("Price", integer("Price", 0)),
            Field("Size", text("Size", 1, 10)),
            Field("AmountInStock", integer("AmountInStock", 0)),
        ),
        not_found_message="No product found with given ID",
        unique=(UniqueField("Name", "Product already exists"),),
        foreign_keys=(
            ForeignKey("CategoryID", "product_categories", "CategoryID", "No category found with given CategoryID"),
        ),
    )

    orders = EntitySchema(
        name="orders",
        label="Order",
        table=schema.orders,
        key="OrderID",
        fields=(
            Field("BookingID", integer("Booking id", 1)),
            Field("LockerID", integer("Locker ID", 1)),
            Field("Price", integer("Price", 0)),
            Field("MomentCreated", timestamp("Moment created")),
            Field("MomentDelivered", timestamp("Moment delivered"), required=False),
            Field("MomentGathered", timestamp("Moment gathered"), required=False),
        ),
        not_found_message="Order not found",
        foreign_keys=(
            booking_fk,
            ForeignKey("LockerID", "lockers", "LockerID", "No locker found with given LockerID"),
        ),
    )

    ordered_products = EntitySchema(
        name="ordered_products",
        label="Ordered product",
        table=schema.ordered_products,
        key="OrderedProductID",
        fields=(
            Field("ProductID", integer("Product ID", 1)),
            Field("OrderID", integer("Order ID", 1)),
            Field("Amount", integer("Amount", 1)),
        ),
        not_found_message="No ordered product found with given ID",
        foreign_keys=(
            ForeignKey("OrderID", "orders", "OrderID", "No order found with given OrderID"),
            ForeignKey("ProductID", "products", "ProductID", "No product found with given ProductID"),
        ),
        event_prefix="ORDERED_PRODUCT",
    )

    return {
        entity.name: entity
        for entity in (users, bookings, lockers, categories, products, orders, ordered_products)
    }


def serialize_row(entity: EntitySchema, row: dict[str, Any]) -> dict[str, Any]:
    """Shape a store row into the JSON body for ``entity``."""
    payload: dict[str, Any] = {}
    for column in entity.table.columns:
        value = row.get(column.name)
        if isinstance(value, datetime):
            value = format_timestamp(value)
        elif value is not None and column.type.python_type is bool:
            value = bool(value)
        payload[column.name] = value
    return payload
