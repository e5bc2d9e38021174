from .authorized_email import AuthorizedEmail
from .project import Project
from .task import Task
from .time_entry import TimeEntry
from .user import User

__all__ = ["AuthorizedEmail", "Project", "Task", "TimeEntry", "User"]
