"""
Sharing Service.

Grants, revokes and invitation responses for page permissions.

Owners may grant and revoke any role. Team admins may grant and revoke
too, but never the owner role and never a permission that currently holds
it. A grant lands as pending; the invitee accepts or declines it.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from slate.backend.models.page import Page
from slate.backend.models.permission import Permission, PermissionStatus, Role
from slate.backend.repositories.permission import PermissionRepository
from slate.backend.repositories.user import UserRepository
from slate.backend.services.access import SHARE_MANAGE, AccessService
from slate.backend.services.base import BaseService


@dataclass
class PermissionListing:
    permission: Permission
    email: str | None


class SharingService(BaseService):
    """Service for page sharing."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.permissions = PermissionRepository(session)
        self.users = UserRepository(session)
        self.access = AccessService(session)

    async def list_permissions(self, user_id: str, page_id: str) -> list[PermissionListing]:
        """Every permission on a page the user can see."""
        page, _ = await self.access.require_page(user_id, page_id)
        return [
            PermissionListing(permission=permission, email=email)
            for permission, email in await self.permissions.list_by_page(page.id)
        ]

    async def _resolve_grantee(self, page: Page, grantee_id: str | None, email: str | None) -> str:
        if grantee_id:
            user = await self.users.get_by_id_or_none(grantee_id)
        elif email and email.strip():
            user = await self.users.get_by_email(email)
        else:
            raise ValidationError(
                "Either user_id or email is required",
                details={"missing_fields": ["user_id", "email"]},
            )
        if user is None:
            raise NotFoundError("User not found")
        if user.id == page.owner_user_id:
            raise ValidationError("The page owner cannot be granted a role on their own page")
        return user.id

    async def grant(
        self,
        user_id: str,
        page_id: str,
        role: str,
        grantee_id: str | None = None,
        email: str | None = None,
    ) -> PermissionListing:
        """
        Create or update the grantee's permission.

        A new or previously declined grant is pending. A role change on an
        accepted grant stays accepted.
        """
        try:
            new_role = Role(role)
        except ValueError as e:
            raise ValidationError(
                f"Unknown role: {role}",
                details={"allowed": [r.value for r in Role]},
            ) from e

        page, my_role = await self.access.require_page(
            user_id, page_id, SHARE_MANAGE, "share page",
        )
        target_id = await self._resolve_grantee(page, grantee_id, email)
        existing = await self.permissions.get(page.id, target_id)

        if my_role != Role.OWNER:
            if new_role == Role.OWNER:
                raise AuthorizationError("Only the owner may grant the owner role")
            if existing is not None and existing.role == Role.OWNER:
                raise AuthorizationError("Only the owner may change an owner permission")

        if existing is None:
            permission = await self._execute_db_operation(
                "grant_permission",
                self.permissions.create(
                    page_id=page.id,
                    user_id=target_id,
                    role=new_role.value,
                    status=PermissionStatus.PENDING.value,
                ),
            )
        else:
            status = existing.status
            if status != PermissionStatus.ACCEPTED:
                status = PermissionStatus.PENDING.value
            permission = await self._execute_db_operation(
                "update_permission",
                self.permissions.update(existing, role=new_role.value, status=status),
            )

        self._log_operation(
            "Permission granted",
            page_id=page.id,
            grantee_id=target_id,
            role=new_role.value,
        )
        grantee = await self.users.get_by_id_or_none(target_id)
        return PermissionListing(permission=permission, email=grantee.email if grantee else None)

    async def revoke(self, user_id: str, page_id: str, grantee_id: str) -> None:
        """Delete a permission row."""
        page, my_role = await self.access.require_page(
            user_id, page_id, SHARE_MANAGE, "revoke access",
        )
        existing = await self.permissions.get(page.id, grantee_id)
        if existing is None:
            raise NotFoundError("Permission not found")
        if my_role != Role.OWNER and existing.role == Role.OWNER:
            raise AuthorizationError("Only the owner may revoke an owner permission")

        await self._execute_db_operation("revoke_permission", self.permissions.delete(existing))
        self._log_operation("Permission revoked", page_id=page.id, grantee_id=grantee_id)

    async def respond(self, user_id: str, page_id: str, accept: bool) -> Permission:
        """The invitee accepts or declines their own permission on a live page."""
        page = await self.access.pages.get_by_id_or_none(page_id)
        if page is None or page.deleted_at is not None:
            raise NotFoundError("Page not found")
        existing = await self.permissions.get(page.id, user_id)
        if existing is None:
            raise NotFoundError("Invitation not found")

        status = PermissionStatus.ACCEPTED if accept else PermissionStatus.DECLINED
        permission = await self._execute_db_operation(
            "respond_invitation",
            self.permissions.update(existing, status=status.value),
        )
        self._log_operation("Invitation answered", page_id=page.id, status=status.value)
        return permission
