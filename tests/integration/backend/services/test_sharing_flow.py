"""
Integration Tests for Page Sharing.

Grants, invitations, revocation and the role limits on who may share.
"""

import pytest

from slate.backend.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from slate.backend.services.access import AccessService
from slate.backend.services.sharing import SharingService


@pytest.fixture
def sharing(db_session) -> SharingService:
    return SharingService(db_session)


class TestGrant:
    async def test_new_grant_is_pending(self, sharing, make_tree, make_user):
        page, _ = await make_tree("alice")
        await make_user("bob", "bob@example.com")

        listing = await sharing.grant("alice", page.id, "team", grantee_id="bob")

        assert listing.permission.role == "team"
        assert listing.permission.status == "pending"
        assert listing.email == "bob@example.com"

    async def test_grant_by_email(self, sharing, make_tree, make_user):
        page, _ = await make_tree("alice")
        await make_user("bob", "bob@example.com")

        listing = await sharing.grant("alice", page.id, "team-limited", email="bob@example.com")

        assert listing.permission.user_id == "bob"

    async def test_unknown_grantee_is_not_found(self, sharing, make_tree):
        page, _ = await make_tree("alice")

        with pytest.raises(NotFoundError):
            await sharing.grant("alice", page.id, "team", email="nobody@example.com")

    async def test_grantee_required(self, sharing, make_tree):
        page, _ = await make_tree("alice")

        with pytest.raises(ValidationError):
            await sharing.grant("alice", page.id, "team")

    async def test_unknown_role_rejected(self, sharing, make_tree, make_user):
        page, _ = await make_tree("alice")
        await make_user("bob")

        with pytest.raises(ValidationError):
            await sharing.grant("alice", page.id, "superuser", grantee_id="bob")

    async def test_owner_cannot_grant_to_self(self, sharing, make_tree):
        page, _ = await make_tree("alice")

        with pytest.raises(ValidationError):
            await sharing.grant("alice", page.id, "team", grantee_id="alice")

    async def test_role_change_keeps_acceptance(self, sharing, make_tree, share_page):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team")

        listing = await sharing.grant("alice", page.id, "team-admin", grantee_id="bob")

        assert listing.permission.role == "team-admin"
        assert listing.permission.status == "accepted"

    async def test_regrant_after_decline_is_pending(self, sharing, make_tree, share_page):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team", accept=False)
        await sharing.respond("bob", page.id, False)

        listing = await sharing.grant("alice", page.id, "team", grantee_id="bob")

        assert listing.permission.status == "pending"


class TestShareManagers:
    async def test_team_admin_may_grant_team(self, sharing, make_tree, share_page, make_user):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team-admin")
        await make_user("carol")

        listing = await sharing.grant("bob", page.id, "team", grantee_id="carol")

        assert listing.permission.user_id == "carol"

    async def test_team_admin_may_not_grant_owner(self, sharing, make_tree, share_page, make_user):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team-admin")
        await make_user("carol")

        with pytest.raises(AuthorizationError):
            await sharing.grant("bob", page.id, "owner", grantee_id="carol")

    async def test_team_may_not_share(self, sharing, make_tree, share_page, make_user):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team")
        await make_user("carol")

        with pytest.raises(AuthorizationError):
            await sharing.grant("bob", page.id, "team", grantee_id="carol")

    async def test_stranger_may_not_list(self, sharing, make_tree, make_user):
        page, _ = await make_tree("alice")
        await make_user("mallory")

        with pytest.raises(AuthorizationError):
            await sharing.list_permissions("mallory", page.id)


class TestInvitation:
    async def test_accept(self, sharing, make_tree, share_page):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team", accept=False)

        permission = await sharing.respond("bob", page.id, True)

        assert permission.status == "accepted"

    async def test_decline_hides_page(self, sharing, make_tree, share_page, db_session):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team", accept=False)

        await sharing.respond("bob", page.id, False)

        with pytest.raises(AuthorizationError):
            await AccessService(db_session).require_page("bob", page.id)

    async def test_without_invitation_is_not_found(self, sharing, make_tree, make_user):
        page, _ = await make_tree("alice")
        await make_user("bob")

        with pytest.raises(NotFoundError):
            await sharing.respond("bob", page.id, True)


class TestRevoke:
    async def test_revoke_removes_access(self, sharing, make_tree, share_page, db_session):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team")

        await sharing.revoke("alice", page.id, "bob")

        assert await sharing.list_permissions("alice", page.id) == []
        with pytest.raises(AuthorizationError):
            await AccessService(db_session).require_page("bob", page.id)

    async def test_revoke_missing_is_not_found(self, sharing, make_tree, make_user):
        page, _ = await make_tree("alice")
        await make_user("bob")

        with pytest.raises(NotFoundError):
            await sharing.revoke("alice", page.id, "bob")

    async def test_team_admin_may_not_revoke_owner_grant(self, sharing, make_tree, share_page):
        page, _ = await make_tree("alice")
        await share_page("alice", page.id, "bob", "team-admin")
        await share_page("alice", page.id, "carol", "owner")

        with pytest.raises(AuthorizationError):
            await sharing.revoke("bob", page.id, "carol")
