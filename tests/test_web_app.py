import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from locker_booking import Settings
from locker_booking.web_app import create_app

from recording_store import RecordingStore

NOW = datetime(2030, 1, 1, 12, 0)

ANNA = {
    "Email": "Anna@Example.com",
    "Phone": "06 1234 5678",
    "Firstname": "Anna",
    "Lastname": "Jansen",
    "Housenumber": "12",
    "Streetname": "Dorpsstraat",
    "Postalcode": "1234 AB",
    "Country": "Netherlands",
}

WATER = {
    "CategoryID": 1,
    "Name": "Sparkling water",
    "AssetsURL": "https://assets.example.com/water.png",
    "Price": 250,
    "Size": "500ml",
    "AmountInStock": 48,
}


def booking_body(**overrides):
    body = {
        "Email": "anna@example.com",
        "NumberOfGuests": 2,
        "NumberOfKeycards": 2,
        "MomentStart": "2030-01-10 14:00:00",
        "MomentEnd": "2030-01-15 11:00:00",
        "PlaceNumber": 5,
    }
    body.update(overrides)
    return body


class TestWebApp(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        data_dir = Path(self._temp_dir.name) / "data"
        self.settings = Settings(
            database_url=f"sqlite:///{data_dir / 'test.db'}",
            event_log_path=str(data_dir / "events.yaml"),
            log_level="WARNING",
        )
        self.store = RecordingStore(self.settings.database_url)
        app = create_app(self.settings, store=self.store, now_provider=lambda: NOW)
        self.event_log = app.extensions["locker_booking"]["event_log"]
        self.client = app.test_client()

    def tearDown(self) -> None:
        self.store.close()
        self._temp_dir.cleanup()

    def _create_user(self) -> dict:
        response = self.client.post("/api/users", json=ANNA)
        self.assertEqual(response.status_code, 201)
        return response.get_json()

    def _create_booking(self, **overrides) -> dict:
        response = self.client.post("/api/bookings", json=booking_body(**overrides))
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()

    def test_health(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"ok": True})

    def test_create_user_and_reject_duplicate_email(self) -> None:
        user = self._create_user()

        self.assertEqual(user["UserID"], 1)
        self.assertEqual(user["Email"], "anna@example.com")
        self.assertEqual(user["Phone"], "0612345678")

        duplicate = self.client.post("/api/users", json=dict(ANNA, Email="anna@example.com"))
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.get_json(), {"msg": "Email already exists"})

    def test_validation_errors_are_listed_per_field(self) -> None:
        response = self.client.post("/api/users", json={"Email": "nope", "Firstname": "Al"})

        self.assertEqual(response.status_code, 400)
        fields = [error["field"] for error in response.get_json()["errors"]]
        self.assertEqual(
            fields,
            ["Email", "Firstname", "Lastname", "Housenumber", "Streetname", "Postalcode", "Country"],
        )

    def test_missing_body_is_a_validation_error(self) -> None:
        response = self.client.post("/api/categories", data="not json", content_type="text/plain")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["errors"][0]["field"], "body")

    def test_empty_collection_is_empty_list(self) -> None:
        response = self.client.get("/api/lockers")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), [])

    def test_non_numeric_id_is_rejected(self) -> None:
        response = self.client.get("/api/products/abc")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"errors": [{"field": "id", "message": "ID must be a number"}]})

    def test_unicode_and_oversized_ids_are_rejected(self) -> None:
        for raw in ("\u00b2", "9" * 30):
            response = self.client.get(f"/api/users/{raw}")

            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.get_json()["errors"][0]["field"], "id")

    def test_oversized_body_integer_is_a_field_error(self) -> None:
        self.client.post("/api/categories", json={"Name": "Drinks"})

        response = self.client.post("/api/products", json=dict(WATER, CategoryID=10**30))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"errors": [{"field": "CategoryID", "message": "CategoryID is out of range"}]})
        self.assertEqual(self.client.get("/api/products").get_json(), [])

    def test_booking_overlap_on_start_is_rejected(self) -> None:
        self._create_user()
        self._create_booking()

        response = self.client.post(
            "/api/bookings",
            json=booking_body(MomentStart="2030-01-12 14:00:00", MomentEnd="2030-01-20 11:00:00"),
        )

        self.assertEqual(response.status_code, 400)
        payload = response.get_json()
        self.assertEqual(payload["msg"], "The selected place is already booked for the chosen dates")
        self.assertEqual(
            payload["errors"],
            [{"field": "MomentStart", "message": "The selected start date overlaps with an existing booking."}],
        )
        self.assertEqual(len(self.client.get("/api/bookings").get_json()), 1)

    def test_booking_for_unknown_email_is_not_found(self) -> None:
        response = self.client.post("/api/bookings", json=booking_body(Email="ghost@example.com"))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"msg": "No user found with given email"})

    def test_booking_in_the_past_is_rejected(self) -> None:
        self._create_user()

        response = self.client.post(
            "/api/bookings",
            json=booking_body(MomentStart="2029-12-01 14:00:00", MomentEnd="2029-12-05 11:00:00"),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["errors"][0]["field"], "MomentStart")

    def test_bookings_filtered_by_email(self) -> None:
        self._create_user()
        booking = self._create_booking()

        response = self.client.get("/api/bookings?Email=ANNA@example.com")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), [booking])

        missing = self.client.get("/api/bookings?Email=ghost@example.com")
        self.assertEqual(missing.status_code, 404)

    def test_bookings_cannot_be_updated(self) -> None:
        self._create_user()
        self._create_booking()

        response = self.client.patch("/api/bookings/1", json={"PlaceNumber": 6})

        self.assertEqual(response.status_code, 405)

    def test_cancel_booking(self) -> None:
        self._create_user()
        self._create_booking()

        response = self.client.delete("/api/bookings/1")
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response.data, b"")

        missing = self.client.delete("/api/bookings/1")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(self.event_log.events("BOOKING_CANCELLED")[0]["payload"], {"BookingID": 1})

    def test_delete_unknown_booking_is_not_found(self) -> None:
        response = self.client.delete("/api/bookings/999")

        self.assertEqual(response.status_code, 404)

    def test_locker_patch_to_taken_id_issues_no_update(self) -> None:
        self._create_user()
        self._create_booking()
        self.assertEqual(self.client.post("/api/lockers", json={"LockerID": 3, "BookingID": 1}).status_code, 201)
        self.assertEqual(self.client.post("/api/lockers", json={"LockerID": 7, "BookingID": 1}).status_code, 201)
        self.store.reset()

        response = self.client.patch("/api/lockers/3", json={"LockerID": 7})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"msg": "Locker already in use"})
        self.assertEqual(self.store.writes, [])

    def test_locker_for_unknown_booking_is_not_found(self) -> None:
        response = self.client.post("/api/lockers", json={"LockerID": 3, "BookingID": 8})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"msg": "No Booking found with given BookingID"})

    def test_product_patch_without_known_fields_issues_no_write(self) -> None:
        self.client.post("/api/categories", json={"Name": "Drinks"})
        self.client.post("/api/products", json=WATER)
        self.store.reset()

        response = self.client.patch("/api/products/1", json={"Colour": "blue"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"msg": "there are no fields to update"})
        self.assertEqual(self.store.writes, [])

    def test_product_put_and_patch(self) -> None:
        self.client.post("/api/categories", json={"Name": "Drinks"})
        self.client.post("/api/products", json=WATER)

        put_response = self.client.put("/api/products/1", json=dict(WATER, Price=300))
        self.assertEqual(put_response.status_code, 200)
        self.assertEqual(put_response.get_json(), {"msg": "Product updated successfully"})

        patch_response = self.client.patch("/api/products/1", json={"AmountInStock": 0})
        self.assertEqual(patch_response.status_code, 200)
        self.assertEqual(patch_response.get_json(), {"msg": "Product is updated"})

        product = self.client.get("/api/products/1").get_json()
        self.assertEqual(product["Price"], 300)
        self.assertEqual(product["AmountInStock"], 0)

    def test_put_to_missing_product_is_not_found_before_unique_check(self) -> None:
        self.client.post("/api/categories", json={"Name": "Drinks"})
        self.client.post("/api/products", json=WATER)

        response = self.client.put("/api/products/9", json=WATER)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"msg": "No product found with given ID"})

    def test_product_requires_existing_category(self) -> None:
        response = self.client.post("/api/products", json=WATER)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"msg": "No category found with given CategoryID"})

    def test_category_products(self) -> None:
        self.client.post("/api/categories", json={"Name": "Drinks"})
        self.client.post("/api/products", json=WATER)

        response = self.client.get("/api/categories/1/products")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([product["Name"] for product in response.get_json()], ["Sparkling water"])

        self.assertEqual(self.client.get("/api/categories/2/products").status_code, 404)

    def test_order_flow_and_ordered_products_filter(self) -> None:
        self._create_user()
        self._create_booking()
        self.client.post("/api/lockers", json={"LockerID": 7, "BookingID": 1})
        self.client.post("/api/categories", json={"Name": "Drinks"})
        self.client.post("/api/products", json=WATER)

        order = self.client.post(
            "/api/orders",
            json={"BookingID": 1, "LockerID": 7, "Price": 500, "MomentCreated": "2030-01-11 09:00:00"},
        )
        self.assertEqual(order.status_code, 201)
        self.assertIsNone(order.get_json()["MomentDelivered"])

        for _ in range(2):
            line = self.client.post("/api/ordered_products", json={"ProductID": 1, "OrderID": 1, "Amount": 2})
            self.assertEqual(line.status_code, 201)

        lines = self.client.get("/api/ordered_products?OrderID=1").get_json()
        self.assertEqual(len(lines), 2)
        self.assertEqual(self.client.get("/api/ordered_products?OrderID=2").get_json(), [])

        missing_order = self.client.post("/api/ordered_products", json={"ProductID": 1, "OrderID": 9, "Amount": 1})
        self.assertEqual(missing_order.status_code, 404)

    def test_user_search(self) -> None:
        self._create_user()
        self.client.post("/api/users", json=dict(ANNA, Email="tom@example.com", Firstname="Tom", Country="Belgium"))

        response = self.client.get("/api/users?filter=Country&value=belg")
        self.assertEqual([user["Firstname"] for user in response.get_json()], ["Tom"])

        invalid = self.client.get("/api/users?filter=Password&value=x")
        self.assertEqual(invalid.status_code, 400)

    def test_delete_category(self) -> None:
        self.client.post("/api/categories", json={"Name": "Drinks"})

        response = self.client.delete("/api/categories/1")
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get("/api/categories/1").status_code, 404)

    def test_unknown_route_returns_json(self) -> None:
        response = self.client.get("/api/unknown")

        self.assertEqual(response.status_code, 404)
        self.assertIn("msg", response.get_json())


class TestWebAppBrokenEventLog(unittest.TestCase):
    def test_write_succeeds_when_event_log_cannot_be_written(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            events_path = Path(temp_dir) / "events.yaml"
            events_path.mkdir()
            settings = Settings(
                database_url=f"sqlite:///{Path(temp_dir) / 'test.db'}",
                event_log_path=str(events_path),
                log_level="WARNING",
            )
            app = create_app(settings, now_provider=lambda: NOW)
            client = app.test_client()

            try:
                with self.assertLogs("locker_booking.repository", level="ERROR"):
                    response = client.post("/api/users", json=ANNA)

                self.assertEqual(response.status_code, 201)
                self.assertEqual(len(client.get("/api/users").get_json()), 1)
            finally:
                app.extensions["locker_booking"]["store"].close()


if __name__ == "__main__":
    unittest.main()
