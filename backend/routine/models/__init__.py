from routine.models.allocation import Allocation, AllocationSource  # noqa: F401
from routine.models.course import Course, capacity_for_credit_hours  # noqa: F401
from routine.models.day import Day  # noqa: F401
from routine.models.room import Room  # noqa: F401
from routine.models.teacher import Teacher  # noqa: F401
from routine.models.time_slot import TimeSlot  # noqa: F401
