"""
Incremental harvesting of paginated listings from infinite-scroll pages.
"""
from .continuation import should_continue
from .coordinator import FirstDataTimeout, PageNotReadyError, PaginationCoordinator
from .correlator import ResponseCorrelator
from .data_models import (
    BatchMeta,
    ListingIdentity,
    ListingKind,
    ListingState,
    Phase,
    Timeline,
    UnsupportedListingKind,
)
from .dedup import FilterResult, filter_new
from .parsing import extract_page_data, parse_entry_data, parse_timeline
from .state import ListingStateStore
