# Services package
from .exceptions import (
    CalendarError, NotFoundError, InvalidRangeError, ConflictError,
    UpstreamFetchFailedError, UpstreamFormatInvalidError, PersistenceFailureError
)
from .conflict_detector import ConflictDetector, find_conflicts
from .pricing_engine import PricingEngine, PriceQuote, get_pricing_engine
from .pricing_rule_service import PricingRuleService
from .blocked_period_service import BlockedPeriodService
from .inventory_service import InventoryService, LedgerRow
from .availability_service import AvailabilityService, CalendarDay, RoomCheck
from .ical_service import CalendarExportService, ICalEvent, parse_ical, generate_ical
from .calendar_sync_service import (
    CalendarFeedService, CalendarFetcher, CalendarSyncService,
    SyncResult, BulkSyncResult, FeedValidation
)

__all__ = [
    "CalendarError", "NotFoundError", "InvalidRangeError", "ConflictError",
    "UpstreamFetchFailedError", "UpstreamFormatInvalidError", "PersistenceFailureError",
    "ConflictDetector", "find_conflicts",
    "PricingEngine", "PriceQuote", "get_pricing_engine",
    "PricingRuleService",
    "BlockedPeriodService",
    "InventoryService", "LedgerRow",
    "AvailabilityService", "CalendarDay", "RoomCheck",
    "CalendarExportService", "ICalEvent", "parse_ical", "generate_ical",
    "CalendarFeedService", "CalendarFetcher", "CalendarSyncService",
    "SyncResult", "BulkSyncResult", "FeedValidation",
]
