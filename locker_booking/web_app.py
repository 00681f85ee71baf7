from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Settings, load_settings
from .errors import LockerBookingError
from .event_log import NullEventLog, YamlEventLog
from .fields import Field, email
from .logging_config import setup_logging
from .repository import BookingRepository, CategoryRepository, ResourceRepository, UserRepository, build_repositories
from .resources import build_schemas
from .store import SqlStore
from .validation import parse_resource_id, validate_payload

CRUD_RESOURCES = ("users", "lockers", "products", "categories", "orders", "ordered_products")


def create_app(
    settings: Settings | None = None,
    store: SqlStore | None = None,
    now_provider: Callable[[], datetime] | None = None,
    event_log: YamlEventLog | NullEventLog | None = None,
) -> Flask:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = Flask(__name__)
    app.json.sort_keys = False
    clock: Callable[[], datetime] = now_provider or datetime.now

    if store is None:
        store = SqlStore(settings.database_url)
    store.init_schema()
    if event_log is None:
        event_log = YamlEventLog(settings.event_log_path) if settings.event_log_path else NullEventLog()

    schemas = build_schemas(settings.max_place_number)
    repositories = build_repositories(store, schemas, event_log)
    app.extensions["locker_booking"] = {"store": store, "repositories": repositories, "event_log": event_log}

    @app.errorhandler(LockerBookingError)
    def handle_domain_error(error: LockerBookingError) -> Any:
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Any:
        return jsonify({"msg": error.description}), error.code

    @app.get("/health")
    def health() -> Any:
        store.ping()
        return jsonify({"ok": True})

    users: UserRepository = repositories["users"]  # type: ignore[assignment]
    bookings: BookingRepository = repositories["bookings"]  # type: ignore[assignment]
    categories: CategoryRepository = repositories["categories"]  # type: ignore[assignment]
    ordered_products = repositories["ordered_products"]

    def search_users() -> Any:
        return jsonify(users.search(request.args.get("filter"), request.args.get("value")))

    def list_ordered_products() -> Any:
        filters = {}
        if request.args.get("OrderID") is not None:
            filters["OrderID"] = parse_resource_id(request.args["OrderID"], field="OrderID")
        return jsonify(ordered_products.list(filters))

    list_views = {"users": search_users, "ordered_products": list_ordered_products}
    for name in CRUD_RESOURCES:
        _register_crud_routes(app, repositories[name], clock, list_views.get(name))

    @app.get("/api/categories/<category_id>/products")
    def list_category_products(category_id: str) -> Any:
        return jsonify(categories.products(parse_resource_id(category_id), schemas["products"]))

    @app.get("/api/bookings")
    def list_bookings() -> Any:
        if request.args.get("Email") is None:
            return jsonify(bookings.list())
        query = validate_payload((Field("Email", email()),), request.args, now=clock())
        return jsonify(bookings.list_for_email(query["Email"]))

    @app.get("/api/bookings/<booking_id>")
    def get_booking(booking_id: str) -> Any:
        return jsonify(bookings.get(parse_resource_id(booking_id)))

    @app.post("/api/bookings")
    def create_booking() -> Any:
        payload = validate_payload(bookings.entity.fields, request.get_json(silent=True), now=clock())
        return jsonify(bookings.create_booking(payload)), 201

    @app.delete("/api/bookings/<booking_id>")
    def cancel_booking(booking_id: str) -> Any:
        bookings.cancel(parse_resource_id(booking_id))
        return "", 204

    return app


def _register_crud_routes(
    app: Flask,
    repository: ResourceRepository,
    clock: Callable[[], datetime],
    list_view: Callable[[], Any] | None = None,
) -> None:
    entity = repository.entity
    collection = f"/api/{entity.name}"
    item = f"/api/{entity.name}/<resource_id>"

    def list_items() -> Any:
        return jsonify(repository.list())

    def get_item(resource_id: str) -> Any:
        return jsonify(repository.get(parse_resource_id(resource_id)))

    def create_item() -> Any:
        payload = validate_payload(entity.fields, request.get_json(silent=True), now=clock())
        return jsonify(repository.create(payload)), 201

    def replace_item(resource_id: str) -> Any:
        target = parse_resource_id(resource_id)
        payload = validate_payload(entity.put_fields, request.get_json(silent=True), now=clock())
        repository.replace(target, payload)
        return jsonify({"msg": f"{entity.label} updated successfully"})

    def patch_item(resource_id: str) -> Any:
        target = parse_resource_id(resource_id)
        payload = validate_payload(entity.patchable, request.get_json(silent=True), now=clock(), partial=True)
        repository.patch(target, payload)
        return jsonify({"msg": f"{entity.label} is updated"})

    def delete_item(resource_id: str) -> Any:
        repository.delete(parse_resource_id(resource_id))
        return "", 204

    app.add_url_rule(collection, f"{entity.name}_list", list_view or list_items, methods=["GET"])
    app.add_url_rule(collection, f"{entity.name}_create", create_item, methods=["POST"])
    app.add_url_rule(item, f"{entity.name}_get", get_item, methods=["GET"])
    app.add_url_rule(item, f"{entity.name}_replace", replace_item, methods=["PUT"])
    app.add_url_rule(item, f"{entity.name}_patch", patch_item, methods=["PATCH"])
    app.add_url_rule(item, f"{entity.name}_delete", delete_item, methods=["DELETE"])


if __name__ == "__main__":
    settings = load_settings()
    app = create_app(settings)
    app.run(host=settings.host, port=settings.port, debug=False)
