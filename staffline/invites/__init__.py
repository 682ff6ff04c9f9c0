"""Expert invitations."""

from staffline.invites.models import ExpertInvite, InviteStatus
from staffline.invites.service import InviteService, generate_token

__all__ = ["ExpertInvite", "InviteStatus", "InviteService", "generate_token"]
