# inkhall/models/enums.py
import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class CourseStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EnrollmentStatus(str, enum.Enum):
    ENROLLED = "enrolled"
    ATTENDED = "attended"
    ABSENT = "absent"
    CANCELLED = "cancelled"


class PackageStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEAVE = "leave"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    WECHAT = "wechat"
    ALIPAY = "alipay"
    BANK_TRANSFER = "bank_transfer"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Course statuses that occupy a teacher's time slot
BLOCKING_COURSE_STATUSES = (CourseStatus.SCHEDULED.value, CourseStatus.IN_PROGRESS.value)

COURSE_TRANSITIONS: dict[str, set[str]] = {
    CourseStatus.SCHEDULED.value: {CourseStatus.IN_PROGRESS.value, CourseStatus.CANCELLED.value},
    CourseStatus.IN_PROGRESS.value: {CourseStatus.COMPLETED.value, CourseStatus.CANCELLED.value},
    CourseStatus.COMPLETED.value: set(),
    CourseStatus.CANCELLED.value: set(),
}

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING.value: {
        PaymentStatus.PAID.value,
        PaymentStatus.FAILED.value,
        PaymentStatus.REFUNDED.value,
    },
    PaymentStatus.PAID.value: {PaymentStatus.REFUNDED.value},
    PaymentStatus.FAILED.value: set(),
    PaymentStatus.REFUNDED.value: set(),
}

# completed / expired / cancelled 都是终态
PACKAGE_TRANSITIONS: dict[str, set[str]] = {
    PackageStatus.ACTIVE.value: {
        PackageStatus.COMPLETED.value,
        PackageStatus.EXPIRED.value,
        PackageStatus.CANCELLED.value,
    },
    PackageStatus.COMPLETED.value: set(),
    PackageStatus.EXPIRED.value: set(),
    PackageStatus.CANCELLED.value: set(),
}
