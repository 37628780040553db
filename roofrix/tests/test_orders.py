import unittest
from unittest.mock import patch

from roofrix import auth, orders, pricing, users
from roofrix.db import InMemoryDbClient
from roofrix.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PricingError,
    ValidationError,
)
from roofrix.queue import InMemoryEventQueue
from roofrix.storage import InMemoryStorageClient
from roofrix.types import Role

PASSWORD = "Secret123"


class OrderServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.queue = InMemoryEventQueue()
        self.storage = InMemoryStorageClient()
        pricing.seed_default_catalog(self.db)
        self.admin = self.account("admin@example.com", Role.ADMIN)
        self.designer = self.account("designer@example.com", Role.DESIGNER)
        self.customer = self.account("customer@example.com", Role.CUSTOMER)

    def account(self, email, role):
        return auth.create_user_account(self.db, email=email, password=PASSWORD, role=role)

    def new_order(self, customer=None, **draft):
        values = {"project_address": "1 Main St", "report_type_id": "roof_esx_only"}
        values.update(draft)
        return orders.create_order(
            self.db, self.queue, customer or self.customer, orders.OrderDraft(**values)
        )


class CreateOrderTests(OrderServiceTestCase):
    @patch("roofrix.orders.time.time", return_value=1735689600.0)
    def test_order_number_uses_creation_year(self, _mock_time):
        order = self.new_order()
        self.assertEqual(order.order_number, "ORD-2025-0001")
        self.assertEqual(self.new_order().order_number, "ORD-2025-0002")

    def test_create_order_records_snapshot_and_event(self):
        order = self.new_order(
            structure_category="complex",
            addon_ids=["complex_rush_2h"],
            project_name="Warehouse",
            priority="high",
        )
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.priority, "high")
        self.assertEqual(order.project_name, "Warehouse")
        self.assertEqual(order.structure_category_name, "Complex / Commercial Structure")
        self.assertEqual(order.addons, [{"id": "complex_rush_2h", "name": "2-Hour Rush", "price": 50.0}])
        self.assertEqual(order.total_price, 64.0)
        self.assertEqual(order.customer_name, "customer@example.com")
        self.assertEqual(order.status_timeline[0]["changed_by"], self.customer.uid)

        event = self.queue.dequeue(block=False)
        self.assertEqual(event["type"], "order_created")
        self.assertEqual(event["order_id"], order.order_id)

    def test_defaults_to_basic_without_category_or_area(self):
        self.assertEqual(self.new_order().structure_category, "basic")

    def test_create_order_validation(self):
        with self.assertRaises(ValidationError):
            self.new_order(project_address="   ")
        with self.assertRaises(ValidationError):
            self.new_order(project_name="ab")
        with self.assertRaises(ValidationError):
            self.new_order(estimated_area=-3)
        with self.assertRaises(ValidationError):
            self.new_order(priority="urgent")
        with self.assertRaises(PricingError):
            self.new_order(report_type_id="roof_gold")
        self.assertEqual(self.db.list_orders(), [])
        self.assertEqual(self.queue.items, [])


class AccessTests(OrderServiceTestCase):
    def test_role_scoped_reads(self):
        order = self.new_order()
        stranger = self.account("stranger@example.com", Role.CUSTOMER)

        self.assertEqual(orders.get_order_for(self.db, self.admin, order.order_id).order_id, order.order_id)
        self.assertEqual(orders.get_order_for(self.db, self.customer, order.order_id).order_id, order.order_id)
        for user in (stranger, self.designer):
            with self.assertRaises(NotFoundError):
                orders.get_order_for(self.db, user, order.order_id)

        orders.assign_designer(self.db, self.queue, self.admin, order.order_id, self.designer.uid)
        self.assertEqual(
            [o.order_id for o in orders.list_orders_for(self.db, self.designer)],
            [order.order_id],
        )
        self.assertEqual(orders.list_orders_for(self.db, stranger), [])

    def test_search_matches_order_fields(self):
        order = self.new_order(project_address="77 Sunset Blvd")
        self.assertTrue(orders.matches_search(order, "sunset"))
        self.assertTrue(orders.matches_search(order, order.order_number.lower()))
        self.assertTrue(orders.matches_search(order, "CUSTOMER@"))
        self.assertFalse(orders.matches_search(order, "harbor"))


    def test_search_applies_limit_after_filtering(self):
        target = self.new_order(project_address="77 Sunset Blvd")
        for _ in range(3):
            self.new_order()
        self.db.orders[target.order_id]["created_at"] -= 100

        found = orders.list_orders_for(self.db, self.admin, search="sunset", limit=2)
        self.assertEqual([o.order_id for o in found], [target.order_id])
        self.assertEqual(len(orders.list_orders_for(self.db, self.admin, limit=2)), 2)


class StatusTests(OrderServiceTestCase):
    def setUp(self):
        super().setUp()
        self.order = self.new_order()
        orders.assign_designer(
            self.db, self.queue, self.admin, self.order.order_id, self.designer.uid
        )

    def status(self, user, value, notes=None):
        return orders.update_status(self.db, self.queue, user, self.order.order_id, value, notes)

    def test_designer_path(self):
        self.status(self.designer, "in_progress")
        self.status(self.designer, "review")
        self.status(self.designer, "in_progress", "Fixing pitch")
        updated = self.status(self.designer, "review")
        self.assertEqual(updated.current_status_updated_by, self.designer.uid)
        with self.assertRaises(InvalidTransitionError):
            self.status(self.designer, "completed")
        with self.assertRaises(InvalidTransitionError):
            self.status(self.designer, "cancelled")

    def test_timeline_append_in_one_update(self):
        updated = self.status(self.admin, "completed", "Shipped")
        entry = updated.status_timeline[-1]
        self.assertEqual(entry["status"], "completed")
        self.assertEqual(entry["changed_by_role"], "admin")
        self.assertEqual(entry["notes"], "Shipped")
        self.assertEqual(updated.completed_at, entry["changed_at"])

        history = orders.status_history(self.db, self.customer, self.order.order_id)
        self.assertEqual(history[0]["status"], "completed")
        self.assertEqual(history[-1]["notes"], "Order created")

    def test_terminal_and_repeated_statuses(self):
        with self.assertRaises(InvalidTransitionError):
            self.status(self.admin, "pending")
        self.status(self.admin, "cancelled")
        with self.assertRaises(InvalidTransitionError):
            self.status(self.admin, "pending")
        with self.assertRaises(InvalidTransitionError):
            orders.assign_designer(
                self.db, self.queue, self.admin, self.order.order_id, self.designer.uid
            )

    def test_customer_rules(self):
        with self.assertRaises(PermissionDeniedError):
            self.status(self.customer, "review")
        self.status(self.designer, "in_progress")
        with self.assertRaises(PermissionDeniedError):
            self.status(self.customer, "cancelled")

    def test_unknown_status(self):
        with self.assertRaises(ValidationError):
            self.status(self.admin, "shipped")

    def test_status_change_event(self):
        self.queue.items.clear()
        self.status(self.designer, "in_progress")
        event = self.queue.dequeue(block=False)
        self.assertEqual(
            (event["type"], event["old_status"], event["new_status"]),
            ("status_changed", "pending", "in_progress"),
        )


    def test_stale_read_cannot_reopen_terminal_order(self):
        stale = self.db.get_order(self.order.order_id)
        self.status(self.admin, "completed")
        with patch.object(self.db, "get_order", return_value=stale):
            with self.assertRaises(InvalidTransitionError):
                self.status(self.admin, "cancelled")

        current = self.db.get_order(self.order.order_id)
        self.assertEqual(current.status, "completed")
        self.assertEqual(
            [entry["status"] for entry in current.status_timeline],
            ["pending", "pending", "completed"],
        )

    def test_status_event_reports_stored_status(self):
        stale = self.db.get_order(self.order.order_id)
        self.status(self.designer, "in_progress")
        self.queue.items.clear()
        with patch.object(self.db, "get_order", return_value=stale):
            self.status(self.admin, "review")
        event = self.queue.dequeue(block=False)
        self.assertEqual((event["old_status"], event["new_status"]), ("in_progress", "review"))


class AssignmentTests(OrderServiceTestCase):
    def test_same_designer_is_noop(self):
        order = self.new_order()
        first = orders.assign_designer(self.db, self.queue, self.admin, order.order_id, self.designer.uid)
        second = orders.assign_designer(self.db, self.queue, self.admin, order.order_id, self.designer.uid)
        self.assertEqual(len(second.status_timeline), len(first.status_timeline))
        self.assertEqual(first.status_timeline[-1]["notes"], "Assigned to designer@example.com")

    def test_inactive_designer_rejected(self):
        order = self.new_order()
        self.db.update_user(self.designer.uid, {"is_active": False})
        with self.assertRaises(ValidationError):
            orders.assign_designer(self.db, self.queue, self.admin, order.order_id, self.designer.uid)

    def test_only_admin_assigns(self):
        order = self.new_order()
        with self.assertRaises(PermissionDeniedError):
            orders.assign_designer(self.db, self.queue, self.designer, order.order_id, self.designer.uid)


    def test_stale_read_cannot_assign_terminal_order(self):
        order = self.new_order()
        stale = self.db.get_order(order.order_id)
        orders.update_status(self.db, self.queue, self.admin, order.order_id, "cancelled")
        with patch.object(self.db, "get_order", return_value=stale):
            with self.assertRaises(InvalidTransitionError):
                orders.assign_designer(
                    self.db, self.queue, self.admin, order.order_id, self.designer.uid
                )
        self.assertIsNone(self.db.get_order(order.order_id).assigned_designer_id)
        self.assertEqual(self.db.get_user(self.designer.uid).assigned_orders, [])

    def test_stale_read_same_designer_is_noop(self):
        order = self.new_order()
        stale = self.db.get_order(order.order_id)
        first = orders.assign_designer(self.db, self.queue, self.admin, order.order_id, self.designer.uid)
        self.queue.items.clear()
        with patch.object(self.db, "get_order", return_value=stale):
            second = orders.assign_designer(
                self.db, self.queue, self.admin, order.order_id, self.designer.uid
            )
        self.assertEqual(len(second.status_timeline), len(first.status_timeline))
        self.assertEqual(self.queue.items, [])

    def test_designer_with_open_orders_keeps_role(self):
        order = self.new_order()
        orders.assign_designer(self.db, self.queue, self.admin, order.order_id, self.designer.uid)
        with self.assertRaises(ValidationError):
            users.update_profile(self.db, self.admin, self.designer.uid, {"role": "customer"})

        orders.update_status(self.db, self.queue, self.admin, order.order_id, "completed")
        updated = users.update_profile(self.db, self.admin, self.designer.uid, {"role": "customer"})
        self.assertEqual(updated.role, "customer")


class MessageAndFileTests(OrderServiceTestCase):
    def setUp(self):
        super().setUp()
        self.order = self.new_order()

    def test_message_rules(self):
        with self.assertRaises(ValidationError):
            orders.post_message(self.db, self.queue, self.customer, self.order.order_id, "  ")
        with self.assertRaises(ValidationError):
            orders.post_message(
                self.db, self.queue, self.customer, self.order.order_id, "x" * 5001
            )
        with self.assertRaises(NotFoundError):
            orders.post_message(self.db, self.queue, self.designer, self.order.order_id, "hi")

        message = orders.post_message(
            self.db, self.queue, self.customer, self.order.order_id, " Hi there "
        )
        self.assertEqual(message.message, "Hi there")
        orders.mark_message_read(self.db, self.admin, self.order.order_id, message.message_id)
        again = orders.mark_message_read(self.db, self.admin, self.order.order_id, message.message_id)
        self.assertEqual(again.read_by, [self.customer.uid, self.admin.uid])
        with self.assertRaises(NotFoundError):
            orders.mark_message_read(self.db, self.admin, self.order.order_id, "missing")

    def test_message_attachments_listed_from_storage(self):
        path = orders.upload_order_file(
            self.db,
            self.storage,
            self.customer,
            self.order.order_id,
            "message-attachments",
            "scope.pdf",
            "application/pdf",
            b"%PDF-1.4",
        )
        self.assertTrue(path.startswith(f"orders/{self.order.order_id}/messages/scope_"))
        message = orders.post_message(
            self.db, self.queue, self.customer, self.order.order_id, "See scope", [path]
        )
        self.assertEqual(message.attachments, [path])

        files = orders.list_order_files(
            self.db, self.storage, self.admin, self.order.order_id, "message-attachments"
        )
        self.assertEqual([f["path"] for f in files], [path])
        self.assertTrue(files[0]["url"].startswith(self.storage.base_url))

    def test_design_files_by_assigned_designer(self):
        orders.assign_designer(self.db, self.queue, self.admin, self.order.order_id, self.designer.uid)
        path = orders.upload_order_file(
            self.db,
            self.storage,
            self.designer,
            self.order.order_id,
            "design-files",
            "final.zip",
            "application/zip",
            b"PK",
        )
        self.assertEqual(self.db.get_order(self.order.order_id).design_files, [path])

        with self.assertRaises(ValidationError):
            orders.upload_order_file(
                self.db,
                self.storage,
                self.designer,
                self.order.order_id,
                "design-files",
                "notes.txt",
                "text/plain",
                b"hello",
            )
        with self.assertRaises(ValidationError):
            orders.upload_order_file(
                self.db,
                self.storage,
                self.designer,
                self.order.order_id,
                "design-files",
                "empty.pdf",
                "application/pdf",
                b"",
            )
        with self.assertRaises(NotFoundError):
            orders.delete_order_file(
                self.db,
                self.storage,
                self.designer,
                self.order.order_id,
                "design-files",
                f"orders/{self.order.order_id}/design-files/unknown.pdf",
            )

        orders.delete_order_file(
            self.db, self.storage, self.designer, self.order.order_id, "design-files", path
        )
        self.assertEqual(self.db.get_order(self.order.order_id).design_files, [])
        self.assertIsNone(self.storage.head(path))


if __name__ == "__main__":
    unittest.main()
