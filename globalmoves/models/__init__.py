from .users import User
from .breakout_rooms import BreakoutRoom
from .room_members import RoomMember
from .room_invitations import RoomInvitation
from .room_messages import RoomMessage
from .opportunities import Opportunity
from .room_shared_opportunities import RoomSharedOpportunity

__all__ = [
    "User",
    "BreakoutRoom",
    "RoomMember",
    "RoomInvitation",
    "RoomMessage",
    "Opportunity",
    "RoomSharedOpportunity",
]
