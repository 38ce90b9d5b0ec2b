from .user import User
from .team import Team, TeamMember, TeamInvitation
from .task import TeamTask
from .memo import TeamMemo
from .comment import TeamComment
from .activity import ActivityLog
from .notification import Notification

# додай тут всі свої моделі!
