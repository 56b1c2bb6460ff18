"""Group membership state machine.

Per (group, user) pair: non-member -> invited (pending invite) -> active
member with role ``member`` or ``admin``; leave/removal goes back to
non-member. The creator is always an admin and can never be demoted,
removed or leave, so every group keeps at least one admin.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from budgetflow.adapters.base import MailAdapter, MailDeliveryError
from budgetflow.config import settings
from budgetflow.errors import (
    AlreadyAdmin,
    AlreadyMember,
    AlreadyPlainMember,
    CannotDemoteCreator,
    CannotRemoveCreator,
    CannotRemoveSelf,
    CreatorCannotLeave,
    Forbidden,
    InviteAlreadyUsed,
    InviteExpired,
    NotAMember,
    NotFound,
    ValidationFailed,
)
from budgetflow.models.group import Group, GroupMembersResponse, Invite, Member, RoleInfo
from budgetflow.storage.database import ALREADY_MEMBER, INVITE_USED, Database
from budgetflow.utils.invites import (
    build_invite_link,
    generate_invite_token,
    invite_expiry,
    plausible_emails,
)

logger = logging.getLogger(__name__)


def _new_invites(emails: List[str]) -> List[Invite]:
    now = datetime.now(timezone.utc)
    return [
        Invite(
            email=email,
            invite_token=generate_invite_token(),
            status="pending",
            invited_at=now,
            expires_at=invite_expiry(now),
        )
        for email in plausible_emails(emails)
    ]


class GroupService:
    """Group creation, invites and role management."""

    def __init__(self, db: Database, mailer: Optional[MailAdapter] = None):
        self.db = db
        self.mailer = mailer

    # ------------------------------------------------------------------
    # Lookups and guards
    # ------------------------------------------------------------------

    def _get_group(self, group_id: str) -> Group:
        group = self.db.groups.get_group(group_id)
        if group is None:
            raise NotFound("Group not found")
        return group

    def require_member(self, group_id: str, actor_id: str) -> Group:
        """Group the actor belongs to (or created), else NotFound / Forbidden."""
        group = self._get_group(group_id)
        if not group.is_member(actor_id) and not group.is_creator(actor_id):
            raise Forbidden("Not a group member")
        return group

    def require_admin(self, group_id: str, actor_id: str) -> Group:
        """
        Guard for mutating operations.

        Raises:
            NotFound: Group does not exist
            Forbidden: Actor is not a member, or is a member without admin role
        """
        group = self._get_group(group_id)
        if group.is_creator(actor_id):
            return group
        member = group.find_member(actor_id)
        if member is None:
            raise Forbidden("Not a group member")
        if member.role != "admin":
            logger.info("Admin check failed", extra={"group_id": group_id, "user_id": actor_id, "role": member.role})
            raise Forbidden("Admin role required for this action")
        return group

    def get_role(self, group_id: str, actor_id: str) -> RoleInfo:
        group = self._get_group(group_id)
        member = group.find_member(actor_id)
        is_creator = group.is_creator(actor_id)
        return RoleInfo(
            role=member.role if member else None,
            is_admin=is_creator or (member is not None and member.role == "admin"),
            is_creator=is_creator,
            is_member=member is not None,
        )

    def list_groups(self, user_id: str) -> List[Group]:
        groups = self.db.groups.get_groups_for_user(user_id)
        return [self._visible_to(g, user_id) for g in groups]

    def get_group(self, group_id: str, actor_id: str) -> Group:
        group = self.require_member(group_id, actor_id)
        return self._visible_to(group, actor_id)

    @staticmethod
    def _visible_to(group: Group, user_id: str) -> Group:
        # Invite tokens grant membership; only admins get to see them
        if group.is_admin(user_id):
            return group
        return group.model_copy(update={"invites": []})

    def list_members(self, group_id: str, actor_id: str) -> GroupMembersResponse:
        group = self.require_member(group_id, actor_id)
        return GroupMembersResponse(
            members=group.members,
            total_members=len(group.members),
            is_admin=group.is_admin(actor_id),
            current_user_id=actor_id,
            group_creator_id=group.created_by,
        )

    # ------------------------------------------------------------------
    # Creation and invites
    # ------------------------------------------------------------------

    def create_group(self, name: str, creator_id: str, emails: List[str]) -> Tuple[Group, List[Invite]]:
        """
        Create a group with the creator as its only (admin) member.

        Entries without "@" are skipped. Returns the stored group and the
        invites that still need to be delivered (see ``dispatch_invites``).
        """
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Group name required")

        invites = _new_invites(emails)
        group = self.db.groups.create_group(name, creator_id, invites)
        logger.info(
            "Group created",
            extra={"group_id": group.id, "created_by": creator_id, "invite_count": len(invites)},
        )
        return group, invites

    def invite_members(self, group_id: str, emails: List[str], actor_id: str) -> Tuple[Group, List[Invite]]:
        """Issue more invites for an existing group (admins only)."""
        self.require_admin(group_id, actor_id)
        invites = _new_invites(emails)
        if invites:
            self.db.groups.add_invites(group_id, invites)
        logger.info("Invites issued", extra={"group_id": group_id, "invited_by": actor_id, "invite_count": len(invites)})
        return self._get_group(group_id), invites

    async def dispatch_invites(self, group_id: str, group_name: str, invites: List[Invite]) -> int:
        """
        Email each invite. Failures are logged; the invites stay valid either way.

        Returns:
            Number of invites handed to the mail provider
        """
        if self.mailer is None:
            logger.warning("No mail adapter configured, invites not sent", extra={"group_id": group_id})
            return 0
        sent = 0
        for invite in invites:
            link = build_invite_link(group_id, invite.invite_token)
            try:
                await self.mailer.send_invite(invite.email, group_name, link)
                sent += 1
                logger.info("Invite sent", extra={"group_id": group_id, "to": invite.email})
            except MailDeliveryError as e:
                logger.warning("Failed to send invite to %s: %s", invite.email, e, extra={"group_id": group_id})
        return sent

    def accept_invite(self, group_id: str, token: str, actor_id: str) -> Group:
        """
        Redeem an invite token and join the group as a plain member.

        Raises:
            NotFound: Group or token unknown
            InviteExpired: Past the invite's expiry
            AlreadyMember: Actor already belongs to the group
            InviteAlreadyUsed: Invite was redeemed before (or concurrently)
            Forbidden: Email binding is enabled and the actor's email differs
        """
        group = self._get_group(group_id)
        invite = group.find_invite(token) if token else None
        if invite is None:
            raise NotFound("Invalid invite token")
        if datetime.now(timezone.utc) > invite.expires_at:
            raise InviteExpired("Invite has expired")
        if group.is_member(actor_id):
            raise AlreadyMember("Already a member of this group")
        if invite.status != "pending":
            raise InviteAlreadyUsed("Invite has already been used")
        if settings.bind_invites_to_email:
            user = self.db.users.get_user(actor_id)
            if user is None or user.email.lower() != invite.email.lower():
                raise Forbidden("This invite was sent to a different email address")

        outcome = self.db.groups.redeem_invite(group_id, token, actor_id)
        if outcome == INVITE_USED:
            raise InviteAlreadyUsed("Invite has already been used")
        if outcome == ALREADY_MEMBER:
            raise AlreadyMember("Already a member of this group")

        logger.info("User joined group", extra={"group_id": group_id, "user_id": actor_id})
        return self._get_group(group_id)

    # ------------------------------------------------------------------
    # Role changes and departures
    # ------------------------------------------------------------------

    def _require_target(self, group: Group, member_id: str) -> Member:
        member = group.find_member(member_id)
        if member is None:
            raise NotFound("Member not found in group")
        return member

    def promote_member(self, group_id: str, member_id: str, actor_id: str) -> Member:
        group = self.require_admin(group_id, actor_id)
        member = self._require_target(group, member_id)
        if member.role == "admin":
            raise AlreadyAdmin("Member is already an admin")

        if not self.db.groups.set_member_role(group_id, member_id, "admin", expected_role="member"):
            # Changed underneath us
            self._require_target(self._get_group(group_id), member_id)
            raise AlreadyAdmin("Member is already an admin")

        logger.info("Member promoted", extra={"group_id": group_id, "member_id": member_id, "by": actor_id})
        return member.model_copy(update={"role": "admin"})

    def demote_member(self, group_id: str, member_id: str, actor_id: str) -> Member:
        group = self._get_group(group_id)
        # Holds whatever the actor's role is
        if group.is_creator(member_id):
            raise CannotDemoteCreator("Cannot demote the group creator")
        group = self.require_admin(group_id, actor_id)
        member = self._require_target(group, member_id)
        if member.role == "member":
            raise AlreadyPlainMember("Member is already a regular member")

        if not self.db.groups.set_member_role(group_id, member_id, "member", expected_role="admin"):
            self._require_target(self._get_group(group_id), member_id)
            raise AlreadyPlainMember("Member is already a regular member")

        logger.info("Admin demoted", extra={"group_id": group_id, "member_id": member_id, "by": actor_id})
        return member.model_copy(update={"role": "member"})

    def remove_member(self, group_id: str, member_id: str, actor_id: str) -> None:
        group = self.require_admin(group_id, actor_id)
        if member_id == actor_id:
            raise CannotRemoveSelf("Cannot remove yourself. Leave the group instead.")
        if group.is_creator(member_id):
            raise CannotRemoveCreator("Cannot remove the group creator")
        self._require_target(group, member_id)

        if not self.db.groups.remove_member(group_id, member_id):
            raise NotFound("Member not found in group")
        logger.info("Member removed", extra={"group_id": group_id, "member_id": member_id, "by": actor_id})

    def leave_group(self, group_id: str, actor_id: str) -> None:
        group = self._get_group(group_id)
        if not group.is_member(actor_id):
            raise NotAMember("You are not a member of this group")
        if group.is_creator(actor_id):
            raise CreatorCannotLeave("Group creator cannot leave. Delete the group instead.")

        if not self.db.groups.remove_member(group_id, actor_id):
            raise NotAMember("You are not a member of this group")
        logger.info("User left group", extra={"group_id": group_id, "user_id": actor_id})

    def delete_group(self, group_id: str, actor_id: str) -> Dict[str, int]:
        """Creator-only. Removes the group's budgets, transactions and the group atomically."""
        group = self._get_group(group_id)
        if not group.is_creator(actor_id):
            raise Forbidden("Only group creator can delete this group")

        counts = self.db.groups.delete_group_cascade(group_id)
        logger.info("Group deleted", extra={"group_id": group_id, "by": actor_id, **counts})
        return counts
