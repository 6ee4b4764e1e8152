from .users_repo import UsersRepo
from .teams_repo import TeamsRepo
from .tasks_repo import TasksRepo

__all__ = [
    "UsersRepo",
    "TeamsRepo",
    "TasksRepo",
]
