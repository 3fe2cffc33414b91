from .user import (
    UserCreate,
    UserLogin,
    UserResponse,
    ProfileUpdateRequest,
    UserSummary,
    Token,
)
from .room import (
    PrivateRoomCreate,
    PublicRoomCreate,
    RoomResponse,
    RoomListItem,
    RoomMemberResponse,
    PresenceUser,
    RoomPresenceResponse,
)
from .invitation import InvitationCreate, InvitationResponse
from .message import MessageCreate, MessageResponse
from .opportunity import (
    OpportunitySummary,
    OpportunityResponse,
    ShareOpportunityRequest,
    SharedOpportunityResponse,
)

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "ProfileUpdateRequest",
    "UserSummary",
    "Token",
    "PrivateRoomCreate",
    "PublicRoomCreate",
    "RoomResponse",
    "RoomListItem",
    "RoomMemberResponse",
    "PresenceUser",
    "RoomPresenceResponse",
    "InvitationCreate",
    "InvitationResponse",
    "MessageCreate",
    "MessageResponse",
    "OpportunitySummary",
    "OpportunityResponse",
    "ShareOpportunityRequest",
    "SharedOpportunityResponse",
]
