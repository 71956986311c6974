# Package marker
from inkhall.models.user import User  # noqa
from inkhall.models.course import Course, Enrollment  # noqa
from inkhall.models.lesson_package import LessonPackage  # noqa
from inkhall.models.attendance import AttendanceRecord  # noqa
from inkhall.models.payment import Payment  # noqa
