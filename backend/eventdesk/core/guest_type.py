# eventdesk/core/guest_type.py

import enum


class GuestType(str, enum.Enum):
    VIP = "vip"          # role-holder ("Chức vụ"): speakers, mentors, sponsors
    REGULAR = "regular"  # attendee ("Khách mời")


# payment_source values offered by the dashboard
PAYMENT_SOURCE_EMPTY = "Trống"
