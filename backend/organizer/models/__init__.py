# Importing the models registers them on Base.metadata (Alembic, create_all)
from organizer.models.drawing import Drawing
from organizer.models.project import Project
from organizer.models.user import User

__all__ = ["Drawing", "Project", "User"]
