"""
Tests for SecurityManager: passwords, tokens and account management.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cellar.FileSystemGate import ErrorKind
from cellar.SecurityManager import (
    AdminRequiredError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    InvalidTokenError,
    LastAdminError,
    MIN_PASSWORD_LENGTH,
    PasswordPolicyError,
    SecurityManager,
    User,
    UserNotFoundError,
    UsernameTakenError,
    UserStore,
    extract_bearer,
    hash_password,
    init_user_tables,
    issue_token,
    verify_password,
    verify_token,
)
from cellar.SecurityManager.passwords import needs_rehash
from cellar.shared import db_service

from conftest import TEST_ADMIN_PASSWORD, TEST_SECRET


@pytest.fixture
def file_user_db(temp_dir):
    """File-backed store, so each thread gets its own connection."""
    db_service.init_db(db_service.sqlite_url(str(temp_dir / "users.db")))
    init_user_tables()
    yield
    db_service.dispose()


class TestPasswords:
    """Tests for Argon2 password hashing."""

    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")

        assert hashed != "correct horse"
        assert hashed.startswith("$argon2id$")
        assert verify_password(hashed, "correct horse") is True

    def test_wrong_password(self):
        hashed = hash_password("correct horse")

        assert verify_password(hashed, "battery staple") is False

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_does_not_raise(self):
        assert verify_password("not-a-hash", "anything") is False
        assert verify_password("", "anything") is False

    def test_current_hash_needs_no_rehash(self):
        assert needs_rehash(hash_password("pw")) is False


class TestTokens:
    """Tests for bearer token issue and verification."""

    def _user(self, is_admin=False):
        return User(id=7, username="alice", password_hash="x", is_admin=is_admin)

    def test_round_trip_claims(self):
        token = issue_token(self._user(is_admin=True), TEST_SECRET)

        claims = verify_token(token, TEST_SECRET)

        assert claims.user_id == 7
        assert claims.username == "alice"
        assert claims.is_admin is True
        assert claims.expires_at - claims.issued_at == timedelta(hours=24)

    def test_valid_within_lifetime(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=1)
        token = issue_token(self._user(), TEST_SECRET, issued_at=issued)

        assert verify_token(token, TEST_SECRET).username == "alice"

    def test_expired_after_lifetime(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=25)
        token = issue_token(self._user(), TEST_SECRET, issued_at=issued)

        with pytest.raises(InvalidTokenError):
            verify_token(token, TEST_SECRET)

    def test_wrong_secret(self):
        token = issue_token(self._user(), TEST_SECRET)

        with pytest.raises(InvalidTokenError):
            verify_token(token, "another-secret")

    def test_tampered_token(self):
        token = issue_token(self._user(), TEST_SECRET)
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])

        with pytest.raises(InvalidTokenError):
            verify_token(tampered, TEST_SECRET)

    def test_garbage_token(self):
        for garbage in ("", "abc", "a.b.c"):
            with pytest.raises(InvalidTokenError):
                verify_token(garbage, TEST_SECRET)

    def test_missing_claims(self):
        from jose import jwt

        token = jwt.encode({"username": "alice", "exp": 9999999999, "iat": 0}, TEST_SECRET, algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            verify_token(token, TEST_SECRET)

    def test_extract_bearer(self):
        assert extract_bearer("Bearer abc") == "abc"
        assert extract_bearer("bearer abc") == "abc"
        assert extract_bearer("abc") == "abc"
        assert extract_bearer("") is None
        assert extract_bearer(None) is None
        assert extract_bearer("Bearer ") is None


class TestBootstrap:
    """Tests for SecurityManager.initialize."""

    def test_creates_admin_on_empty_store(self, security):
        users = security.list_users()

        assert len(users) == 1
        assert users[0]["username"] == "admin"
        assert users[0]["isAdmin"] is True
        assert "password_hash" not in users[0]
        assert "passwordHash" not in users[0]

    def test_second_initialize_does_not_duplicate(self, security):
        security.initialize(TEST_SECRET, "different-password")

        assert len(security.list_users()) == 1
        # The original password still works
        token, _ = security.login("admin", TEST_ADMIN_PASSWORD)
        assert token

    def test_default_secret_warns(self, user_db, caplog):
        from cellar.Config.schema import DEFAULT_JWT_SECRET

        SecurityManager.initialize(DEFAULT_JWT_SECRET, TEST_ADMIN_PASSWORD)

        assert any("JWT_SECRET" in r.message for r in caplog.records)

    def test_default_admin_password_warns(self, user_db, caplog):
        SecurityManager.initialize(TEST_SECRET)

        assert any("Default admin password" in r.message for r in caplog.records)

    def test_empty_secret_rejected(self, user_db):
        with pytest.raises(ValueError):
            SecurityManager.initialize("", TEST_ADMIN_PASSWORD)

    def test_requires_initialize(self):
        with pytest.raises(RuntimeError):
            SecurityManager.login("admin", "whatever")


class TestLogin:
    """Tests for login and authenticate."""

    def test_login_success(self, security):
        token, user = security.login("admin", TEST_ADMIN_PASSWORD)

        assert user == {"id": user["id"], "username": "admin", "isAdmin": True}
        claims = security.authenticate(f"Bearer {token}")
        assert claims.username == "admin"
        assert claims.is_admin is True

    def test_wrong_password_and_unknown_user_look_the_same(self, security):
        with pytest.raises(InvalidCredentialsError) as wrong_password:
            security.login("admin", "nope")
        with pytest.raises(InvalidCredentialsError) as unknown_user:
            security.login("nobody", "nope")

        assert str(wrong_password.value) == str(unknown_user.value)
        assert wrong_password.value.kind == ErrorKind.UNAUTHORIZED

    def test_no_lockout(self, security):
        for _ in range(10):
            with pytest.raises(InvalidCredentialsError):
                security.login("admin", "wrong")

        token, _ = security.login("admin", TEST_ADMIN_PASSWORD)
        assert token

    def test_authenticate_bare_token(self, security):
        token, _ = security.login("admin", TEST_ADMIN_PASSWORD)

        assert security.authenticate(token).username == "admin"

    def test_authenticate_missing_header(self, security):
        with pytest.raises(InvalidTokenError) as exc:
            security.authenticate(None)

        assert "Authorization header required" in str(exc.value)

    def test_require_admin(self, security):
        security.create_user("bob", "bobpass", is_admin=False)
        token, _ = security.login("bob", "bobpass")
        claims = security.authenticate(token)

        with pytest.raises(AdminRequiredError) as exc:
            security.require_admin(claims)
        assert exc.value.kind == ErrorKind.FORBIDDEN


class TestUserManagement:
    """Tests for account management."""

    def test_create_user(self, security):
        user = security.create_user("bob", "bobpass")

        assert user["username"] == "bob"
        assert user["isAdmin"] is False
        assert user["createdAt"]

    def test_duplicate_username(self, security):
        security.create_user("bob", "bobpass")

        with pytest.raises(UsernameTakenError) as exc:
            security.create_user("bob", "otherpass")
        assert exc.value.kind == ErrorKind.CONFLICT

    def test_short_password(self, security):
        with pytest.raises(PasswordPolicyError) as exc:
            security.create_user("bob", "x" * (MIN_PASSWORD_LENGTH - 1))
        assert exc.value.kind == ErrorKind.BAD_REQUEST

    def test_minimum_length_password_accepted(self, security):
        user = security.create_user("bob", "x" * MIN_PASSWORD_LENGTH)

        assert user["username"] == "bob"

    def test_blank_username(self, security):
        with pytest.raises(PasswordPolicyError):
            security.create_user("   ", "bobpass")

    def test_delete_user(self, security):
        user = security.create_user("bob", "bobpass")

        security.delete_user(user["id"])

        assert [u["username"] for u in security.list_users()] == ["admin"]

    def test_delete_missing_user(self, security):
        with pytest.raises(UserNotFoundError):
            security.delete_user(9999)

    def test_delete_last_admin(self, security):
        admin = security.list_users()[0]

        with pytest.raises(LastAdminError) as exc:
            security.delete_user(admin["id"])
        assert exc.value.kind == ErrorKind.BAD_REQUEST
        assert len(security.list_users()) == 1

    def test_delete_admin_when_another_exists(self, security):
        original = security.list_users()[0]
        security.create_user("root2", "root2pass", is_admin=True)

        security.delete_user(original["id"])

        remaining = security.list_users()
        assert [u["username"] for u in remaining] == ["root2"]

    def test_change_password(self, security):
        user = security.create_user("bob", "bobpass")

        security.change_password(user["id"], "bobpass", "newbobpass")

        with pytest.raises(InvalidCredentialsError):
            security.login("bob", "bobpass")
        token, _ = security.login("bob", "newbobpass")
        assert token

    def test_change_password_wrong_current(self, security):
        user = security.create_user("bob", "bobpass")

        with pytest.raises(IncorrectPasswordError) as exc:
            security.change_password(user["id"], "guess", "newbobpass")
        assert exc.value.kind == ErrorKind.BAD_REQUEST

    def test_change_password_too_short(self, security):
        user = security.create_user("bob", "bobpass")

        with pytest.raises(PasswordPolicyError):
            security.change_password(user["id"], "bobpass", "123")

    def test_change_password_missing_user(self, security):
        with pytest.raises(UserNotFoundError):
            security.change_password(9999, "whatever", "newpassword")

    def test_token_survives_user_deletion(self, security):
        """Tokens are stateless: deleting the user doesn't revoke them."""
        user = security.create_user("bob", "bobpass")
        token, _ = security.login("bob", "bobpass")

        security.delete_user(user["id"])

        assert security.authenticate(token).username == "bob"

    def test_health_status(self, security):
        status = security.get_health_status()

        assert status["healthy"] is True
        assert status["details"]["admins"] == 1


class TestUserStore:
    """Tests for the UserStore repository."""

    def test_counts(self, user_db):
        store = UserStore()
        store.create("a", "hash-a", is_admin=True)
        store.create("b", "hash-b")

        assert store.count() == 2
        assert store.count_admins() == 1

    def test_get_by_username(self, user_db):
        store = UserStore()
        created = store.create("a", "hash-a")

        assert store.get_by_username("a").id == created.id
        assert store.get_by_username("missing") is None

    def test_delete_unless_last_admin(self, user_db):
        store = UserStore()
        admin = store.create("root", "hash-root", is_admin=True)
        member = store.create("member", "hash-member")

        assert store.delete_unless_last_admin(member.id).username == "member"
        with pytest.raises(LastAdminError):
            store.delete_unless_last_admin(admin.id)
        with pytest.raises(UserNotFoundError):
            store.delete_unless_last_admin(member.id)
        assert store.count_admins() == 1

    def test_concurrent_admin_deletes_keep_one_admin(self, file_user_db):
        """Two admins deleted at the same moment: exactly one delete wins."""
        store = UserStore()

        for round_number in range(5):
            ids = [
                store.create(f"admin-{round_number}-{i}", "hash", is_admin=True).id
                for i in range(2)
            ]
            barrier = threading.Barrier(2)
            outcomes = []

            def delete(user_id):
                barrier.wait(5)
                try:
                    store.delete_unless_last_admin(user_id)
                    outcomes.append("deleted")
                except LastAdminError:
                    outcomes.append("refused")

            threads = [threading.Thread(target=delete, args=(user_id,)) for user_id in ids]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(10)

            assert sorted(outcomes) == ["deleted", "refused"]
            assert store.count_admins() == 1

            with db_service.get_session() as session:
                session.query(User).delete()

    def test_created_at_is_utc(self, user_db):
        user = UserStore().create("a", "hash-a")

        assert user.created_at.utcoffset() == timedelta(0)

    def test_update_password_missing(self, user_db):
        with pytest.raises(UserNotFoundError):
            UserStore().update_password(42, "hash")
