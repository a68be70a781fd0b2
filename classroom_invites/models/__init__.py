from classroom_invites.models.user import User
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.models.enrollment import Enrollment
from classroom_invites.models.invite_code import InviteCode

__all__ = ["User", "SchoolClass", "Enrollment", "InviteCode"]
