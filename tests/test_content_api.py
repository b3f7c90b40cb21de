"""End-to-end row authorization through the content endpoints."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import DataError, IntegrityError, OperationalError

from app.core import auth
from app.core.errors import PUBLIC_MESSAGES, AccessErrorKind, RETRY_AFTER_SECONDS
from app.core.identity_provider import ProviderIdentity
from app.core.roles import Role
from app.repositories.profile_repo import ProfileRepository
from app.routers import sermons as sermons_router
from app.services.profile_sync_service import ProfileSyncService

API = "/api/v1"


def create_sermon(client, headers=None, **fields):
    body = {"title": "Grace Abounds", "speaker_name": "Pastor Ana", **fields}
    return client.post(f"{API}/sermons", json=body, headers=headers or {})


@pytest.fixture
def member_headers(member, auth_headers):
    return auth_headers(member.id)


@pytest.fixture
def other_headers(other_member, auth_headers):
    return auth_headers(other_member.id)


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin.id)


@pytest.fixture
def draft(client, member_headers):
    """Unpublished sermon owned by `member`."""
    response = create_sermon(client, member_headers, title="Draft Sermon")
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def published(client, member_headers):
    response = create_sermon(client, member_headers, title="Sunday Sermon", is_published=True)
    assert response.status_code == 201
    return response.json()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    def test_published_row_is_public(self, client, published):
        response = client.get(f"{API}/sermons/{published['id']}")

        assert response.status_code == 200
        assert response.json()["title"] == "Sunday Sermon"

    def test_unpublished_row_hidden_from_anonymous(self, client, draft):
        response = client.get(f"{API}/sermons/{draft['id']}")

        assert response.status_code == 404
        assert response.json() == {"detail": PUBLIC_MESSAGES[AccessErrorKind.NOT_FOUND], "kind": "not_found"}

    def test_hidden_and_missing_rows_look_the_same(self, client, draft, other_headers):
        hidden = client.get(f"{API}/sermons/{draft['id']}", headers=other_headers)
        missing = client.get(f"{API}/sermons/{uuid.uuid4()}", headers=other_headers)

        assert hidden.status_code == missing.status_code == 404
        assert hidden.json() == missing.json()

    def test_owner_and_admin_see_unpublished_row(self, client, draft, member_headers, admin_headers):
        assert client.get(f"{API}/sermons/{draft['id']}", headers=member_headers).status_code == 200
        assert client.get(f"{API}/sermons/{draft['id']}", headers=admin_headers).status_code == 200

    def test_listing_is_filtered_per_caller(
        self, client, draft, published, member_headers, other_headers, admin_headers
    ):
        def titles(headers=None):
            response = client.get(f"{API}/sermons", headers=headers or {})
            assert response.status_code == 200
            return {row["title"] for row in response.json()}

        assert titles() == {"Sunday Sermon"}
        assert titles(other_headers) == {"Sunday Sermon"}
        assert titles(member_headers) == {"Sunday Sermon", "Draft Sermon"}
        assert titles(admin_headers) == {"Sunday Sermon", "Draft Sermon"}

    def test_anonymous_listing_of_other_tables(self, client):
        for path in ("sermons", "events", "blog-posts", "categories"):
            response = client.get(f"{API}/{path}")
            assert response.status_code == 200
            assert response.json() == []


# ---------------------------------------------------------------------------
# Inserts
# ---------------------------------------------------------------------------


class TestInsert:
    def test_anonymous_insert_is_unauthenticated(self, client):
        response = create_sermon(client)

        assert response.status_code == 401
        assert response.json()["kind"] == "unauthenticated"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_owner_defaults_to_caller(self, client, member, member_headers):
        response = create_sermon(client, member_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["created_by"] == str(member.id)
        assert body["is_published"] is False
        assert body["slug"] == "grace-abounds"

    def test_explicit_own_owner_is_accepted(self, client, member, member_headers):
        response = create_sermon(client, member_headers, created_by=str(member.id))

        assert response.status_code == 201

    def test_owner_mismatch_is_rejected_not_rewritten(self, client, other_member, member_headers):
        response = create_sermon(client, member_headers, created_by=str(other_member.id))

        assert response.status_code == 403
        assert response.json()["kind"] == "forbidden"
        assert client.get(f"{API}/sermons", headers=member_headers).json() == []

    def test_admin_may_create_for_someone_else(self, client, member, admin_headers):
        response = create_sermon(client, admin_headers, created_by=str(member.id))

        assert response.status_code == 201
        assert response.json()["created_by"] == str(member.id)

    def test_duplicate_titles_get_unique_slugs(self, client, member_headers):
        first = create_sermon(client, member_headers).json()
        second = create_sermon(client, member_headers).json()

        assert first["slug"] == "grace-abounds"
        assert second["slug"] == "grace-abounds-2"

    def test_blog_post_owner_column(self, client, member, member_headers):
        response = client.post(
            f"{API}/blog-posts",
            json={"title": "Hope in Winter", "content": "..."},
            headers=member_headers,
        )

        assert response.status_code == 201
        assert response.json()["author_id"] == str(member.id)

    def test_event_times_are_validated(self, client, member_headers):
        response = client.post(
            f"{API}/events",
            json={
                "title": "Choir Practice",
                "event_date": "2024-06-02",
                "start_time": "19:00:00",
                "end_time": "18:00:00",
            },
            headers=member_headers,
        )

        assert response.status_code == 422

    def test_unknown_fields_are_rejected(self, client, member_headers):
        response = create_sermon(client, member_headers, owner="someone")

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_owner_updates_own_unpublished_row(self, client, draft, member_headers):
        response = client.patch(
            f"{API}/sermons/{draft['id']}",
            json={"title": "Draft Sermon, revised"},
            headers=member_headers,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Draft Sermon, revised"

    def test_other_member_cannot_update(self, client, draft, other_headers, member_headers):
        response = client.patch(
            f"{API}/sermons/{draft['id']}",
            json={"title": "Hijacked"},
            headers=other_headers,
        )

        assert response.status_code == 403
        assert response.json()["kind"] == "forbidden"
        row = client.get(f"{API}/sermons/{draft['id']}", headers=member_headers).json()
        assert row["title"] == "Draft Sermon"

    def test_owner_cannot_reassign_row(self, client, draft, other_member, member_headers):
        response = client.patch(
            f"{API}/sermons/{draft['id']}",
            json={"created_by": str(other_member.id)},
            headers=member_headers,
        )

        assert response.status_code == 403

    def test_admin_updates_any_row(self, client, draft, admin_headers):
        response = client.patch(
            f"{API}/sermons/{draft['id']}",
            json={"is_published": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert client.get(f"{API}/sermons/{draft['id']}").status_code == 200

    def test_anonymous_update_is_unauthenticated_even_for_missing_row(self, client):
        response = client.patch(f"{API}/sermons/{uuid.uuid4()}", json={"title": "Nope nope"})

        assert response.status_code == 401

    def test_update_of_missing_row_is_not_found(self, client, member_headers):
        response = client.patch(f"{API}/sermons/{uuid.uuid4()}", json={"title": "Nope nope"}, headers=member_headers)

        assert response.status_code == 404

    def test_slug_change_keeps_uniqueness(self, client, member_headers):
        first = create_sermon(client, member_headers, title="First Light").json()
        second = create_sermon(client, member_headers, title="Second Light").json()

        response = client.patch(
            f"{API}/sermons/{second['id']}",
            json={"slug": first["slug"]},
            headers=member_headers,
        )

        assert response.status_code == 200
        assert response.json()["slug"] == "first-light-2"


# ---------------------------------------------------------------------------
# Deletes
# ---------------------------------------------------------------------------


class TestDelete:
    def test_admin_deletes(self, client, draft, admin_headers):
        response = client.delete(f"{API}/sermons/{draft['id']}", headers=admin_headers)

        assert response.status_code == 204
        assert client.get(f"{API}/sermons/{draft['id']}", headers=admin_headers).status_code == 404

    def test_owner_member_cannot_delete(self, client, draft, member_headers):
        response = client.delete(f"{API}/sermons/{draft['id']}", headers=member_headers)

        assert response.status_code == 403

    def test_anonymous_cannot_delete(self, client, published):
        response = client.delete(f"{API}/sermons/{published['id']}")

        assert response.status_code == 401


# ---------------------------------------------------------------------------
# Rejected values and store errors
# ---------------------------------------------------------------------------


class TestRejectedWrites:
    @pytest.mark.parametrize("field", ["title", "speaker_name", "featured", "is_published"])
    def test_null_for_required_column_is_a_validation_error(self, client, draft, member_headers, field):
        response = client.patch(f"{API}/sermons/{draft['id']}", json={field: None}, headers=member_headers)

        assert response.status_code == 422
        row = client.get(f"{API}/sermons/{draft['id']}", headers=member_headers).json()
        assert row[field] == draft[field]

    @pytest.mark.parametrize(
        "path, field",
        [("events", "event_date"), ("blog-posts", "content"), ("categories", "name")],
    )
    def test_null_rejected_on_other_tables(self, client, admin_headers, path, field):
        response = client.patch(f"{API}/{path}/{uuid.uuid4()}", json={field: None}, headers=admin_headers)

        assert response.status_code == 422

    def test_null_for_nullable_column_is_accepted(self, client, member_headers):
        row = create_sermon(client, member_headers, description="Notes").json()

        response = client.patch(f"{API}/sermons/{row['id']}", json={"description": None}, headers=member_headers)

        assert response.status_code == 200
        assert response.json()["description"] is None

    def test_constraint_violation_is_a_conflict(self, client, draft, member_headers, monkeypatch):
        def broken(*args, **kwargs):
            raise IntegrityError("UPDATE sermons", {}, Exception("violates foreign key constraint"))

        monkeypatch.setattr(sermons_router.repo, "update", broken)

        response = client.patch(
            f"{API}/sermons/{draft['id']}",
            json={"category_id": str(uuid.uuid4())},
            headers=member_headers,
        )

        assert response.status_code == 409
        assert response.json() == {"detail": PUBLIC_MESSAGES[AccessErrorKind.CONFLICT], "kind": "conflict"}
        assert "Retry-After" not in response.headers

    def test_rejected_value_is_invalid(self, client, member_headers, monkeypatch):
        def broken(*args, **kwargs):
            raise DataError("INSERT INTO sermons", {}, Exception("value too long for type character varying(255)"))

        monkeypatch.setattr(sermons_router.repo, "create", broken)

        response = create_sermon(client, member_headers)

        assert response.status_code == 422
        assert response.json()["kind"] == "invalid"

    def test_connectivity_fault_stays_retryable(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT sermons", {}, Exception("server closed the connection unexpectedly"))

        monkeypatch.setattr(sermons_router.repo, "list_rows", broken)

        response = client.get(f"{API}/sermons")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == str(RETRY_AFTER_SECONDS)


# ---------------------------------------------------------------------------
# Categories (no owner column)
# ---------------------------------------------------------------------------


class TestCategories:
    def test_member_cannot_create(self, client, member_headers):
        response = client.post(f"{API}/categories", json={"name": "Faith"}, headers=member_headers)

        assert response.status_code == 403

    def test_admin_creates_and_everyone_reads(self, client, admin_headers):
        response = client.post(f"{API}/categories", json={"name": "Faith & Hope"}, headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["slug"] == "faith-hope"
        assert [c["name"] for c in client.get(f"{API}/categories").json()] == ["Faith & Hope"]

    def test_new_category_is_published_unless_told_otherwise(self, client, admin_headers):
        shown = client.post(f"{API}/categories", json={"name": "Prayer"}, headers=admin_headers).json()
        hidden = client.post(
            f"{API}/categories",
            json={"name": "Drafts", "is_published": False},
            headers=admin_headers,
        ).json()

        assert shown["is_published"] is True
        assert client.get(f"{API}/categories/{shown['id']}").status_code == 200
        assert client.get(f"{API}/categories/{hidden['id']}").status_code == 404

    def test_member_cannot_update(self, client, admin_headers, member_headers):
        category = client.post(f"{API}/categories", json={"name": "Faith"}, headers=admin_headers).json()

        response = client.patch(
            f"{API}/categories/{category['id']}",
            json={"description": "edited"},
            headers=member_headers,
        )

        assert response.status_code == 403


# ---------------------------------------------------------------------------
# Session and profile state
# ---------------------------------------------------------------------------


class TestCallerState:
    def test_expired_session_reads_as_anonymous(self, client, member, auth_headers, published, draft):
        expired = auth_headers(member.id, now=datetime.now(timezone.utc) - timedelta(days=8))

        listing = client.get(f"{API}/sermons", headers=expired)
        write = client.patch(f"{API}/sermons/{draft['id']}", json={"title": "Too late"}, headers=expired)

        assert {row["title"] for row in listing.json()} == {"Sunday Sermon"}
        assert write.status_code == 401

    def test_garbage_token_reads_as_anonymous(self, client, published):
        response = client.get(f"{API}/sermons", headers={"Authorization": "Bearer not a token"})

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_inactive_profile_cannot_write(self, client, make_profile, auth_headers):
        inactive = make_profile(role=Role.ADMIN, is_active=False)

        response = create_sermon(client, auth_headers(inactive.id))

        assert response.status_code == 401

    def test_missing_profile_is_anonymous_until_reconciled(self, client, session, auth_headers):
        ident = ProviderIdentity.build(uuid.uuid4(), "late@church.org")
        headers = auth_headers(ident.id)

        assert create_sermon(client, headers).status_code == 401
        assert ProfileRepository().get_by_id(session, ident.id) is None

        class Source:
            def list_identities(self):
                return iter([ident])

        ProfileSyncService(ProfileRepository()).reconcile(session, Source())

        response = create_sermon(client, headers)
        assert response.status_code == 201
        assert response.json()["created_by"] == str(ident.id)

    def test_backend_failure_denies_with_retry(self, client, member_headers, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError(
                "SELECT sessions",
                {},
                Exception("canceling statement due to statement timeout"),
            )

        monkeypatch.setattr(auth.session_service.repo, "get_by_hash", broken)

        response = create_sermon(client, member_headers)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == str(RETRY_AFTER_SECONDS)
        assert response.json() == {"detail": PUBLIC_MESSAGES[AccessErrorKind.TRANSIENT], "kind": "transient"}
        assert "statement timeout" not in response.text

    def test_role_lookup_failure_denies_reads_too(self, client, published, member_headers, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT profiles", {}, Exception("connection refused"))

        monkeypatch.setattr(auth.role_resolver.repo, "get_by_id", broken)

        response = client.get(f"{API}/sermons", headers=member_headers)

        assert response.status_code == 503
        assert response.json()["kind"] == "transient"

    def test_unknown_token_never_reaches_role_lookup(self, client, published, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT profiles", {}, Exception("connection refused"))

        monkeypatch.setattr(auth.role_resolver.repo, "get_by_id", broken)

        response = client.get(f"{API}/sermons", headers={"Authorization": "Bearer " + "a" * 43})

        assert response.status_code == 200
