import time
import unittest

from roofrix import auth, users
from roofrix.db import InMemoryDbClient
from roofrix.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from roofrix.storage import InMemoryStorageClient
from roofrix.types import Role

PASSWORD = "Secret123"
TTL = 3600


class PasswordHashTests(unittest.TestCase):
    def test_hash_and_verify(self):
        digest, salt = auth.hash_password(PASSWORD)
        self.assertTrue(auth.verify_password(PASSWORD, salt, digest))
        self.assertFalse(auth.verify_password("secret123", salt, digest))
        self.assertFalse(auth.verify_password(PASSWORD, "", digest))

    def test_salt_changes_digest(self):
        first, _ = auth.hash_password(PASSWORD)
        second, _ = auth.hash_password(PASSWORD)
        self.assertNotEqual(first, second)


class SessionTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_sign_up_normalizes_email(self):
        session = auth.sign_up(self.db, "  New.User@Example.COM ", PASSWORD, TTL, "Nia")
        self.assertEqual(session.user.email, "new.user@example.com")
        self.assertEqual(session.user.role, "customer")
        self.assertIsNone(session.user.assigned_orders)
        self.assertEqual(auth.resolve_session(self.db, session.token).uid, session.user.uid)

    def test_sign_up_errors(self):
        with self.assertRaises(ValidationError):
            auth.sign_up(self.db, "not-an-email", PASSWORD, TTL)
        with self.assertRaises(ValidationError):
            auth.sign_up(self.db, "a@example.com", "alllowercase1", TTL)
        auth.sign_up(self.db, "a@example.com", PASSWORD, TTL)
        with self.assertRaises(ConflictError) as ctx:
            auth.sign_up(self.db, "A@example.com", PASSWORD, TTL)
        self.assertEqual(
            ctx.exception.message,
            "This email is already registered. Please sign in instead.",
        )

    def test_sign_in_updates_last_login(self):
        created = auth.sign_up(self.db, "a@example.com", PASSWORD, TTL).user
        self.db.update_user(created.uid, {"last_login_at": 0.0})
        session = auth.sign_in(self.db, "A@example.com ", PASSWORD, TTL)
        self.assertGreater(session.user.last_login_at, 0.0)

        with self.assertRaises(AuthenticationError):
            auth.sign_in(self.db, "a@example.com", "Wrong1234", TTL)
        with self.assertRaises(AuthenticationError):
            auth.sign_in(self.db, "ghost@example.com", PASSWORD, TTL)

    def test_expired_and_revoked_sessions(self):
        user = auth.create_user_account(self.db, email="a@example.com", password=PASSWORD)
        expired = auth.start_session(self.db, user, ttl_seconds=-1)
        with self.assertRaises(AuthenticationError):
            auth.resolve_session(self.db, expired.token)

        live = auth.start_session(self.db, user, ttl_seconds=TTL)
        self.assertGreater(live.expires_at, time.time())
        auth.sign_out(self.db, live.token)
        with self.assertRaises(AuthenticationError):
            auth.resolve_session(self.db, live.token)

    def test_require_roles(self):
        designer = auth.create_user_account(
            self.db, email="d@example.com", password=PASSWORD, role=Role.DESIGNER
        )
        self.assertEqual(designer.assigned_orders, [])
        check = auth.require_roles(Role.ADMIN, Role.DESIGNER)
        self.assertIs(check(user=designer), designer)

        customer = auth.create_user_account(self.db, email="c@example.com", password=PASSWORD)
        with self.assertLogs("roofrix.auth", level="WARNING"):
            with self.assertRaises(PermissionDeniedError):
                check(user=customer)


class UserProfileTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.admin = auth.create_user_account(
            self.db, email="admin@example.com", password=PASSWORD, role=Role.ADMIN
        )
        self.customer = auth.create_user_account(
            self.db, email="c@example.com", password=PASSWORD
        )

    def test_admin_promotes_to_designer(self):
        updated = users.update_profile(
            self.db, self.admin, self.customer.uid, {"role": "designer"}
        )
        self.assertEqual(updated.role, "designer")
        self.assertEqual(updated.assigned_orders, [])

    def test_protected_fields(self):
        with self.assertRaises(PermissionDeniedError):
            users.update_profile(self.db, self.customer, self.customer.uid, {"is_active": False})
        with self.assertRaises(PermissionDeniedError):
            users.update_profile(self.db, self.admin, self.customer.uid, {"email": "x@example.com"})
        with self.assertRaises(ValidationError):
            users.update_profile(self.db, self.admin, self.admin.uid, {"role": "customer"})
        with self.assertRaises(ValidationError):
            users.set_active(self.db, self.admin, self.admin.uid, False)
        with self.assertRaises(ValidationError):
            users.update_profile(self.db, self.admin, self.customer.uid, {"role": "owner"})

    def test_list_by_role_hides_inactive(self):
        users.set_active(self.db, self.admin, self.customer.uid, False)
        self.assertEqual(users.list_users(self.db, "customer"), [])
        self.assertEqual(len(users.list_users(self.db)), 2)
        with self.assertRaises(NotFoundError):
            users.set_active(self.db, self.admin, "missing", True)

    def test_designer_assignment_bookkeeping(self):
        designer = auth.create_user_account(
            self.db, email="d@example.com", password=PASSWORD, role=Role.DESIGNER
        )
        users.assign_order_to_designer(self.db, designer.uid, "o1")
        updated = users.assign_order_to_designer(self.db, designer.uid, "o1")
        self.assertEqual(updated.assigned_orders, ["o1"])
        self.assertEqual(
            users.remove_order_from_designer(self.db, designer.uid, "o1").assigned_orders, []
        )
        with self.assertRaises(ValidationError):
            users.assign_order_to_designer(self.db, self.customer.uid, "o1")
        with self.assertRaises(NotFoundError):
            users.assign_order_to_designer(self.db, "missing", "o1")

    def test_avatar_upload(self):
        storage = InMemoryStorageClient()
        updated = users.upload_avatar(
            self.db, storage, self.customer, self.customer.uid, "Me!.jpg", "image/jpeg", b"\xff\xd8"
        )
        self.assertTrue(updated.photo_path.startswith(f"users/{self.customer.uid}/avatar/Me__"))
        self.assertEqual(storage.head(updated.photo_path)["content_type"], "image/jpeg")
        other = auth.create_user_account(self.db, email="o@example.com", password=PASSWORD)
        with self.assertRaises(PermissionDeniedError):
            users.upload_avatar(
                self.db, storage, other, self.customer.uid, "x.jpg", "image/jpeg", b"\xff"
            )


if __name__ == "__main__":
    unittest.main()
