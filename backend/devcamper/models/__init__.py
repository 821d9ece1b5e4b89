"""ORM models. Importing this package registers every table with Base.metadata."""

from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.models.review import Review
from devcamper.models.user import Role, User

__all__ = ["Bootcamp", "Course", "Review", "Role", "User"]
