# Models package
from .room import Room, RoomStatus
from .calendar_feed import RoomCalendarFeed, SyncPlatform, SYNC_PLATFORMS
from .booking import Booking, BookingStatus
from .blocked_period import RoomBlockedPeriod
from .pricing import RoomPricingRule, PricingRuleType
from .room_availability import RoomAvailability, AvailabilitySource, OWN_SOURCES
from .sync_log import CalendarSyncLog, SyncStatus

__all__ = [
    "Room", "RoomStatus",
    "RoomCalendarFeed", "SyncPlatform", "SYNC_PLATFORMS",
    "Booking", "BookingStatus",
    "RoomBlockedPeriod",
    "RoomPricingRule", "PricingRuleType",
    "RoomAvailability", "AvailabilitySource", "OWN_SOURCES",
    "CalendarSyncLog", "SyncStatus",
]
