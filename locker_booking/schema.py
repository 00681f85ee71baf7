from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Engine, Integer, MetaData, String, Table, Text

metadata = MetaData()

# Foreign-key-like columns are plain integers; references are checked by the
# repositories before each write.

users = Table(
    "users",
    metadata,
    Column("UserID", Integer, primary_key=True, autoincrement=True),
    Column("Email", String(255), nullable=False, unique=True),
    Column("Phone", String(15)),
    Column("Firstname", String(32), nullable=False),
    Column("Lastname", String(32), nullable=False),
    Column("Housenumber", String(6), nullable=False),
    Column("Streetname", String(30), nullable=False),
    Column("Postalcode", String(10), nullable=False),
    Column("Country", String(30), nullable=False),
)

bookings = Table(
    "bookings",
    metadata,
    Column("BookingID", Integer, primary_key=True, autoincrement=True),
    Column("UserID", Integer, nullable=False, index=True),
    Column("NumberOfGuests", Integer, nullable=False),
    Column("NumberOfKeycards", Integer, nullable=False),
    Column("MomentStart", DateTime, nullable=False),
    Column("MomentEnd", DateTime, nullable=False),
    Column("PlaceNumber", Integer, nullable=False, index=True),
    Column("CheckedIn", Boolean, nullable=False, default=False),
    Column("Note", Text),
)

lockers = Table(
    "lockers",
    metadata,
    Column("LockerID", Integer, primary_key=True, autoincrement=False),
    Column("BookingID", Integer, nullable=False),
    Column("MomentDelivered", DateTime),
)

product_categories = Table(
    "product_categories",
    metadata,
    Column("CategoryID", Integer, primary_key=True, autoincrement=True),
    Column("Name", String(100), nullable=False, unique=True),
)

products = Table(
    "products",
    metadata,
    Column("ProductID", Integer, primary_key=True, autoincrement=True),
    Column("CategoryID", Integer, nullable=False, index=True),
    Column("AssetsURL", String(100), nullable=False),
    Column("Price", Integer, nullable=False),
    Column("Size", String(10), nullable=False),
    Column("AmountInStock", Integer, nullable=False),
    Column("Name", String(100), nullable=False, unique=True),
)

orders = Table(
    "orders",
    metadata,
    Column("OrderID", Integer, primary_key=True, autoincrement=True),
    Column("BookingID", Integer, nullable=False),
    Column("LockerID", Integer, nullable=False),
    Column("Price", Integer, nullable=False),
    Column("MomentCreated", DateTime, nullable=False),
    Column("MomentDelivered", DateTime),
    Column("MomentGathered", DateTime),
)

ordered_products = Table(
    "ordered_products",
    metadata,
    Column("OrderedProductID", Integer, primary_key=True, autoincrement=True),
    Column("ProductID", Integer, nullable=False),
    Column("OrderID", Integer, nullable=False, index=True),
    Column("Amount", Integer, nullable=False),
)


def init_db(engine: Engine) -> None:
    """Create missing tables; existing tables are left untouched."""
    metadata.create_all(engine)
