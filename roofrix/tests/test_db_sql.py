import time
import unittest
from uuid import uuid4

from roofrix.db import (
    CatalogItemRecord,
    ContactRecord,
    InMemoryDbClient,
    MessageRecord,
    NotificationRecord,
    OrderRecord,
    SessionRecord,
    SqlDbClient,
    UserRecord,
    apply_changes,
)


def make_user(**overrides) -> UserRecord:
    uid = uuid4().hex
    values = {"uid": uid, "email": f"{uid}@example.com", "role": "customer"}
    values.update(overrides)
    return UserRecord(**values)


def make_order(customer_id: str, **overrides) -> OrderRecord:
    order_id = uuid4().hex
    values = {
        "order_id": order_id,
        "order_number": f"ORD-2025-{order_id[:6]}",
        "customer_id": customer_id,
        "customer_email": "c@example.com",
        "customer_name": "Casey",
        "project_name": "Roof ESX+PDF - 1 Main St",
        "project_address": "1 Main St",
        "status": "pending",
        "current_status_updated_by": customer_id,
        "report_type": {"id": "roof_esx_pdf", "name": "Roof ESX+PDF", "price": 19.0},
    }
    values.update(overrides)
    return OrderRecord(**values)


class ApplyChangesTests(unittest.TestCase):
    def test_append_skips_existing_and_remove_drops(self):
        document = {"tags": ["a"], "name": "x", "updated_at": 0}
        updated = apply_changes(
            document, {"name": "y"}, append={"tags": ["a", "b"]}
        )
        self.assertEqual(updated["tags"], ["a", "b"])
        self.assertEqual(updated["name"], "y")
        self.assertGreater(updated["updated_at"], 0)
        self.assertEqual(document["tags"], ["a"])

        updated = apply_changes(updated, remove={"tags": ["a"]})
        self.assertEqual(updated["tags"], ["b"])

    def test_unknown_field_rejected(self):
        with self.assertRaises(ValueError):
            apply_changes({"updated_at": 0}, {"bogus": 1})


class SqlDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    @classmethod
    def setUpClass(cls):
        cls.db = SqlDbClient("sqlite+pysqlite:///:memory:")

    def test_user_roundtrip_and_update(self):
        user = make_user(role="designer", assigned_orders=[], password_hash="h", password_salt="s")
        self.db.create_user(user)

        fetched = self.db.get_user_by_email(user.email)
        self.assertEqual(fetched.uid, user.uid)
        self.assertEqual(fetched.password_hash, "h")

        updated = self.db.update_user(
            user.uid, {"display_name": "Dee"}, append={"assigned_orders": ["o1", "o1"]}
        )
        self.assertEqual(updated.display_name, "Dee")
        self.assertEqual(updated.assigned_orders, ["o1"])

        updated = self.db.update_user(user.uid, remove={"assigned_orders": ["o1"]})
        self.assertEqual(updated.assigned_orders, [])
        self.assertIsNone(self.db.update_user("missing", {"display_name": "x"}))

    def test_list_users_by_role(self):
        active = make_user(role="admin")
        inactive = make_user(role="admin", is_active=False)
        self.db.create_user(active)
        self.db.create_user(inactive)

        admin_ids = [u.uid for u in self.db.list_users(role="admin", active_only=True)]
        self.assertIn(active.uid, admin_ids)
        self.assertNotIn(inactive.uid, admin_ids)

        self.db.update_user(inactive.uid, {"is_active": True})
        admin_ids = [u.uid for u in self.db.list_users(role="admin", active_only=True)]
        self.assertIn(inactive.uid, admin_ids)

    def test_sessions(self):
        session = SessionRecord(token=uuid4().hex, uid="u1", expires_at=time.time() + 60)
        self.db.create_session(session)
        self.assertTrue(self.db.get_session(session.token).is_valid())

        self.db.revoke_session(session.token)
        self.assertFalse(self.db.get_session(session.token).is_valid())
        self.assertIsNone(self.db.get_session("unknown"))

    def test_catalog_upsert_and_listing(self):
        category = uuid4().hex[:8]
        for index, item_id in enumerate(["b", "a"]):
            self.db.upsert_catalog_item(
                CatalogItemRecord(
                    kind="addon",
                    item_id=item_id,
                    name=item_id.upper(),
                    category=category,
                    price=5.0,
                    sort_order=index,
                )
            )
        item = self.db.get_catalog_item("addon", "a", category)
        item.is_active = False
        self.db.upsert_catalog_item(item)

        active = self.db.list_catalog_items("addon", category=category)
        self.assertEqual([i.item_id for i in active], ["b"])
        every = self.db.list_catalog_items("addon", category=category, active_only=False)
        self.assertEqual([i.item_id for i in every], ["b", "a"])

    def test_order_counter_is_per_year(self):
        first = self.db.next_order_sequence(1999)
        second = self.db.next_order_sequence(1999)
        self.assertEqual(second, first + 1)
        self.assertEqual(self.db.next_order_sequence(1998), 1)

    def test_order_update_and_listing(self):
        customer_id = uuid4().hex
        older = make_order(customer_id, created_at=time.time() - 10)
        newer = make_order(customer_id)
        self.db.create_order(older)
        self.db.create_order(newer)

        listed = self.db.list_orders(customer_id=customer_id)
        self.assertEqual([o.order_id for o in listed], [newer.order_id, older.order_id])

        updated = self.db.update_order(
            older.order_id,
            {"status": "in_progress", "assigned_designer_id": "d1"},
            append={"status_timeline": [{"status": "in_progress"}]},
        )
        self.assertEqual(updated.status, "in_progress")
        self.assertEqual(len(updated.status_timeline), 1)

        by_designer = self.db.list_orders(designer_id="d1", status="in_progress")
        self.assertIn(older.order_id, [o.order_id for o in by_designer])
        self.assertEqual(
            self.db.get_order(older.order_id).report_type["name"], "Roof ESX+PDF"
        )

    def test_order_update_check_sees_stored_order(self):
        order = make_order(uuid4().hex)
        self.db.create_order(order)
        self.db.update_order(order.order_id, {"status": "completed"})
        seen = []

        def reject(current):
            seen.append(current.status)
            raise ValueError("order already closed")

        with self.assertRaises(ValueError):
            self.db.update_order(order.order_id, {"status": "cancelled"}, check=reject)
        self.assertEqual(seen, ["completed"])
        self.assertEqual(self.db.get_order(order.order_id).status, "completed")

        unchanged = self.db.update_order(
            order.order_id, {"status": "cancelled"}, check=lambda current: False
        )
        self.assertEqual(unchanged.status, "completed")
        self.assertEqual(self.db.get_order(order.order_id).status, "completed")
        self.assertEqual(self.db.list_orders(status="cancelled", customer_id=order.customer_id), [])

    def test_messages(self):
        order_id = uuid4().hex
        first = MessageRecord(
            message_id=uuid4().hex,
            order_id=order_id,
            sender_id="u1",
            sender_email="u1@example.com",
            sender_role="customer",
            message="hello",
            read_by=["u1"],
            created_at=time.time() - 5,
        )
        second = MessageRecord(
            message_id=uuid4().hex,
            order_id=order_id,
            sender_id="u2",
            sender_email="u2@example.com",
            sender_role="designer",
            message="hi",
            read_by=["u2"],
        )
        self.db.add_message(second)
        self.db.add_message(first)

        listed = self.db.list_messages(order_id)
        self.assertEqual([m.message for m in listed], ["hello", "hi"])

        read = self.db.mark_message_read(order_id, first.message_id, "u2")
        self.assertTrue(read.is_read)
        self.assertEqual(read.read_by, ["u1", "u2"])
        self.assertIsNone(self.db.mark_message_read("other", first.message_id, "u2"))

    def test_contacts_and_notifications(self):
        self.db.save_contact(
            ContactRecord(
                contact_id=uuid4().hex,
                name="Pat",
                email="pat@example.com",
                message="Question about pricing",
            )
        )
        uid = uuid4().hex
        notification = NotificationRecord(
            notification_id=uuid4().hex, uid=uid, kind="order_created", title="New order"
        )
        self.db.add_notification(notification)

        self.assertEqual(len(self.db.list_notifications(uid, unread_only=True)), 1)
        self.assertFalse(self.db.mark_notification_read("someone-else", notification.notification_id))
        self.assertTrue(self.db.mark_notification_read(uid, notification.notification_id))
        self.assertEqual(self.db.list_notifications(uid, unread_only=True), [])
        self.assertTrue(self.db.list_notifications(uid)[0].is_read)


class InMemoryDbClientTests(unittest.TestCase):
    def test_duplicate_email_rejected(self):
        db = InMemoryDbClient()
        db.create_user(make_user(email="same@example.com"))
        with self.assertRaises(ValueError):
            db.create_user(make_user(email="same@example.com"))

    def test_reset_clears_everything(self):
        db = InMemoryDbClient()
        user = make_user()
        db.create_user(user)
        db.create_order(make_order(user.uid))
        db.next_order_sequence(2025)
        db.reset()
        self.assertIsNone(db.get_user(user.uid))
        self.assertEqual(db.list_orders(), [])
        self.assertEqual(db.next_order_sequence(2025), 1)


if __name__ == "__main__":
    unittest.main()
