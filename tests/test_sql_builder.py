import unittest

from locker_booking import NoFieldsError, build_insert, build_replace, build_update, is_present


class TestBuildUpdate(unittest.TestCase):
    def test_only_supplied_fields_are_set(self) -> None:
        statement = build_update("t", "id", 9, {"a": 1, "b": None, "c": "x"}, ["a", "b", "c"])

        self.assertEqual(statement.clause, "a = ?, c = ?")
        self.assertEqual(statement.sql, "UPDATE t SET a = ?, c = ? WHERE id = ?")
        self.assertEqual(statement.bound_values, (1, "x", 9))
        self.assertEqual(statement.fields, ("a", "c"))

    def test_follows_declared_field_order(self) -> None:
        statement = build_update("t", "id", 1, {"c": 3, "a": 1}, ["a", "b", "c"])

        self.assertEqual(statement.clause, "a = ?, c = ?")
        self.assertEqual(statement.bound_values, (1, 3, 1))

    def test_falsy_values_are_present(self) -> None:
        statement = build_update("t", "id", 1, {"a": 0, "b": False, "c": ""}, ["a", "b", "c"])

        self.assertEqual(statement.fields, ("a", "b", "c"))
        self.assertEqual(statement.bound_values, (0, False, "", 1))
        self.assertTrue(is_present(0))
        self.assertFalse(is_present(None))

    def test_keys_outside_declared_fields_are_ignored(self) -> None:
        statement = build_update("t", "id", 1, {"a": 1, "evil = 1; --": 2}, ["a"])

        self.assertEqual(statement.sql, "UPDATE t SET a = ? WHERE id = ?")

    def test_nothing_supplied_raises(self) -> None:
        with self.assertRaises(NoFieldsError) as context:
            build_update("t", "id", 1, {"a": None}, ["a", "b"])

        self.assertEqual(context.exception.message, "there are no fields to update")
        self.assertEqual(context.exception.status_code, 400)


class TestBuildReplace(unittest.TestCase):
    def test_writes_every_field_with_missing_as_null(self) -> None:
        statement = build_replace("lockers", "LockerID", 3, {"BookingID": 4}, ["BookingID", "MomentDelivered"])

        self.assertEqual(statement.sql, "UPDATE lockers SET BookingID = ?, MomentDelivered = ? WHERE LockerID = ?")
        self.assertEqual(statement.bound_values, (4, None, 3))

    def test_empty_field_list_raises(self) -> None:
        with self.assertRaises(NoFieldsError):
            build_replace("t", "id", 1, {"a": 1}, [])


class TestBuildInsert(unittest.TestCase):
    def test_inserts_supplied_columns_in_declared_order(self) -> None:
        statement = build_insert("product_categories", {"Name": "Drinks"}, ["CategoryID", "Name"])

        self.assertEqual(statement.sql, "INSERT INTO product_categories (Name) VALUES (?)")
        self.assertEqual(statement.bound_values, ("Drinks",))

    def test_no_columns_raises(self) -> None:
        with self.assertRaises(NoFieldsError):
            build_insert("t", {"other": 1}, ["a"])


if __name__ == "__main__":
    unittest.main()
