"""Tests for profile synchronization and reconciliation."""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.core.identity_provider import ProviderIdentity, SupabaseIdentityProvider
from app.core.roles import Role
from app.models.profile import Profile
from app.repositories.profile_repo import ProfileRepository
from app.repositories.session_repo import SessionRepository
from app.services.profile_sync_service import ProfileSyncService
from app.services.session_service import SessionService


class FakeSource:
    """Identity listing backed by a plain list."""

    def __init__(self, identities):
        self.identities = list(identities)

    def list_identities(self):
        return iter(self.identities)


@pytest.fixture
def repo() -> ProfileRepository:
    return ProfileRepository()


@pytest.fixture
def sync(repo) -> ProfileSyncService:
    return ProfileSyncService(repo)


def identity(email: str | None = None, name: str | None = None) -> ProviderIdentity:
    metadata = {"full_name": name} if name else None
    return ProviderIdentity.build(uuid.uuid4(), email, metadata)


def all_profiles(session) -> list[Profile]:
    return list(session.exec(select(Profile)).all())


# ---------------------------------------------------------------------------
# ProviderIdentity
# ---------------------------------------------------------------------------


class TestProviderIdentity:
    def test_email_is_normalized(self):
        ident = ProviderIdentity.build(uuid.uuid4(), "  Grace@Church.ORG ")

        assert ident.email == "grace@church.org"
        assert ident.display_name == "grace"

    def test_display_name_prefers_metadata(self):
        ident = ProviderIdentity.build(uuid.uuid4(), "a@b.org", {"name": "  Ana Lucia  "})

        assert ident.display_name == "Ana Lucia"

    def test_no_email_falls_back_to_default_name(self):
        ident = ProviderIdentity.build(uuid.uuid4(), None)

        assert ident.email is None
        assert ident.display_name == "Member"

    @pytest.mark.parametrize("raw_id", [None, "", "not-a-uuid", 42])
    def test_invalid_id_is_rejected(self, raw_id):
        with pytest.raises(ValueError):
            ProviderIdentity.build(raw_id, "a@b.org")

    def test_from_hook_record_reads_auth_users_row(self):
        raw = uuid.uuid4()
        ident = ProviderIdentity.from_hook_record(
            {"id": str(raw), "email": "new@church.org", "raw_user_meta_data": {"full_name": "New Person"}}
        )

        assert ident.id == raw
        assert ident.display_name == "New Person"


class TestSupabaseIdentityProvider:
    def test_lists_every_page(self):
        users = [
            SimpleNamespace(id=str(uuid.uuid4()), email=f"u{i}@church.org", user_metadata={})
            for i in range(5)
        ]
        pages = []

        def list_users(page, per_page):
            pages.append(page)
            start = (page - 1) * per_page
            return users[start:start + per_page]

        client = SimpleNamespace(auth=SimpleNamespace(admin=SimpleNamespace(list_users=list_users)))
        provider = SupabaseIdentityProvider(client=client, page_size=2)

        listed = list(provider.list_identities())

        assert [i.email for i in listed] == [u.email for u in users]
        assert pages == [1, 2, 3]


# ---------------------------------------------------------------------------
# sync_identity
# ---------------------------------------------------------------------------


class TestSyncIdentity:
    def test_first_sync_creates_default_profile(self, session, sync):
        ident = identity("new@church.org", "New Person")

        profile = sync.sync_identity(session, ident)

        assert profile.id == ident.id
        assert profile.role == Role.MEMBER.value
        assert profile.is_active is True
        assert profile.email == "new@church.org"
        assert profile.display_name == "New Person"

    def test_sync_twice_keeps_one_profile(self, session, sync):
        ident = identity("twice@church.org")

        first = sync.sync_identity(session, ident)
        second = sync.sync_identity(session, ident)

        assert first.id == second.id
        assert len(all_profiles(session)) == 1

    def test_existing_role_and_status_are_never_overwritten(self, session, sync, make_profile):
        existing = make_profile(role=Role.ADMIN, is_active=False)
        ident = ProviderIdentity.build(existing.id, existing.email, {"full_name": "Someone Else"})

        profile = sync.sync_identity(session, ident)

        assert profile.role == Role.ADMIN.value
        assert profile.is_active is False
        assert profile.display_name == existing.display_name

    def test_missing_email_is_filled_in(self, session, sync):
        raw = uuid.uuid4()
        session.add(Profile(id=raw, email=None, display_name="No Mail"))
        session.commit()

        profile = sync.sync_identity(session, ProviderIdentity.build(raw, "found@church.org"))

        assert profile.email == "found@church.org"
        assert profile.display_name == "No Mail"

    def test_identity_without_email_is_synced(self, session, sync):
        ident = identity(None)

        profile = sync.sync_identity(session, ident)

        assert profile.email is None
        assert profile.display_name == "Member"

    def test_pre_provisioned_profile_is_moved_to_new_identity(self, session, sync, make_profile):
        placeholder = make_profile(role=Role.ADMIN, email="pastor@church.org")
        old_id = placeholder.id
        ident = ProviderIdentity.build(uuid.uuid4(), "pastor@church.org")

        profile = sync.sync_identity(session, ident)

        assert profile.id == ident.id
        assert profile.role == Role.ADMIN.value
        assert [p.id for p in all_profiles(session)] == [ident.id]
        assert old_id not in {p.id for p in all_profiles(session)}

    def test_concurrent_first_sync_yields_one_profile(self, session, repo, sync, monkeypatch):
        """Another login inserts between our existence check and our insert."""
        ident = identity("race@church.org")
        real_get = repo.get_by_id
        calls = {"n": 0}

        def racing_get(db, target):
            calls["n"] += 1
            if calls["n"] == 1:
                repo.insert_if_absent(
                    db,
                    identity=target,
                    email=ident.email,
                    display_name="Racer",
                    role=Role.MEMBER.value,
                )
                return None
            return real_get(db, target)

        monkeypatch.setattr(repo, "get_by_id", racing_get)

        profile = sync.sync_identity(session, ident)

        assert profile.id == ident.id
        assert profile.display_name == "Racer"
        assert len(all_profiles(session)) == 1

    def test_insert_if_absent_reports_conflict(self, session, repo):
        raw = uuid.uuid4()

        assert repo.insert_if_absent(session, raw, "one@church.org", "One", "member") is True
        assert repo.insert_if_absent(session, raw, "one@church.org", "One", "member") is False


class TestTrySyncIdentity:
    def test_backend_failure_returns_none_and_creates_nothing(self, session, repo, sync, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("INSERT INTO profiles", {}, Exception("connection reset"))

        monkeypatch.setattr(repo, "insert_if_absent", broken)

        assert sync.try_sync_identity(session, identity("down@church.org")) is None
        assert all_profiles(session) == []

    def test_success_returns_profile(self, session, sync):
        ident = identity("ok@church.org")

        assert sync.try_sync_identity(session, ident).id == ident.id


# ---------------------------------------------------------------------------
# reconcile
# ---------------------------------------------------------------------------


class TestReconcile:
    def test_creates_profiles_for_identities_without_one(self, session, sync, make_profile):
        u1 = make_profile()
        u3 = identity("u3@church.org")
        source = FakeSource([ProviderIdentity.build(u1.id, u1.email), u3])

        report = sync.reconcile(session, source)

        assert report.checked == 2
        assert report.created == [u3.id]
        assert report.failed == []
        assert {p.id for p in all_profiles(session)} == {u1.id, u3.id}

    def test_second_run_is_a_no_op(self, session, sync):
        source = FakeSource([identity("a@church.org"), identity("b@church.org")])

        sync.reconcile(session, source)
        report = sync.reconcile(session, source)

        assert report.created == []
        assert len(all_profiles(session)) == 2

    def test_failures_are_reported_and_retried_next_run(self, session, repo, sync, monkeypatch):
        ident = identity("flaky@church.org")
        source = FakeSource([ident])

        def broken(*args, **kwargs):
            raise OperationalError("INSERT INTO profiles", {}, Exception("timeout"))

        with monkeypatch.context() as patch:
            patch.setattr(repo, "insert_if_absent", broken)
            report = sync.reconcile(session, source)

        assert report.failed == [ident.id]

        report = sync.reconcile(session, source)
        assert report.created == [ident.id]

    def test_live_sessions_unknown_to_provider_are_reported(self, session, sync):
        now = datetime.now(timezone.utc)
        sessions = SessionService(SessionRepository(), ttl=timedelta(days=7))
        ghost = uuid.uuid4()
        expired_ghost = uuid.uuid4()
        sessions.issue(session, ghost, now=now)
        sessions.issue(session, expired_ghost, now=now - timedelta(days=10))

        report = sync.reconcile(session, FakeSource([]), now=now)

        assert report.unresolved_sessions == [ghost]

    def test_session_identity_known_to_provider_is_repaired(self, session, sync):
        now = datetime.now(timezone.utc)
        sessions = SessionService(SessionRepository(), ttl=timedelta(days=7))
        ident = identity("late@church.org")
        sessions.issue(session, ident.id, now=now)

        report = sync.reconcile(session, FakeSource([ident]), now=now)

        assert report.created == [ident.id]
        assert report.unresolved_sessions == []
