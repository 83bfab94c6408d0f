from .user import User, UserRole
from .teacher_profile import TeacherProfile
from .availability import TeacherAvailability
from .booking import Booking, BookingStatus, LessonType
from .payment import Payment, PaymentStatus, PaymentProvider
