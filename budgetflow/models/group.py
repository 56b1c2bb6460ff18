"""Group, membership and invite models."""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


Role = Literal["admin", "member"]
MemberStatus = Literal["active", "pending", "invited"]
# "declined" is part of the stored schema but nothing sets it
InviteStatus = Literal["pending", "accepted", "declined"]


class Member(BaseModel):
    """A user's membership in a group."""

    user_id: str
    role: Role = "member"
    status: MemberStatus = "active"
    name: Optional[str] = Field(None, description="Display name, resolved from the user record")
    email: Optional[str] = Field(None, description="Email, resolved from the user record")


class Invite(BaseModel):
    """A pending or redeemed invitation."""

    email: str
    invite_token: str
    status: InviteStatus = "pending"
    invited_at: datetime
    expires_at: datetime


class Group(BaseModel):
    """Group with its members and invites."""

    id: str
    name: str
    created_by: str
    members: List[Member] = Field(default_factory=list)
    invites: List[Invite] = Field(default_factory=list)
    created_at: datetime

    def find_member(self, user_id: str) -> Optional[Member]:
        return next((m for m in self.members if m.user_id == user_id), None)

    def find_invite(self, token: str) -> Optional[Invite]:
        return next((i for i in self.invites if i.invite_token == token), None)

    def is_member(self, user_id: str) -> bool:
        return self.find_member(user_id) is not None

    def is_creator(self, user_id: str) -> bool:
        return self.created_by == user_id

    def is_admin(self, user_id: str) -> bool:
        """Creator counts as admin whatever its stored role."""
        member = self.find_member(user_id)
        return self.is_creator(user_id) or (member is not None and member.role == "admin")


class GroupCreate(BaseModel):
    """Group creation request."""

    name: str = Field(default="", description="Group name")
    members: List[str] = Field(default_factory=list, description="Emails to invite")


class InviteRequest(BaseModel):
    """Invite more people to an existing group."""

    emails: List[str] = Field(..., description="Emails to invite")


class AcceptInviteRequest(BaseModel):
    token: str = Field(..., description="Invite token from the invite link")


class GroupCreateResponse(BaseModel):
    group: Group
    invites_sent: int = Field(..., description="Number of invites attempted")
    message: str


class InviteResponse(BaseModel):
    invites: List[Invite]
    invites_sent: int
    message: str


class GroupMembersResponse(BaseModel):
    members: List[Member]
    total_members: int
    is_admin: bool
    current_user_id: str
    group_creator_id: str


class RoleInfo(BaseModel):
    """Caller's role in a group."""

    model_config = ConfigDict(populate_by_name=True)

    role: Optional[Role] = None
    is_admin: bool = Field(..., serialization_alias="isAdmin")
    is_creator: bool = Field(..., serialization_alias="isCreator")
    is_member: bool = Field(..., serialization_alias="isMember")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class MemberChangeResponse(MessageResponse):
    member: Member
