from .user import User
from .activity import Activity

__all__ = [
    "User",
    "Activity",
]
