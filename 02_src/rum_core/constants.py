"""Shared constants for transactions, spans and timeline entry kinds."""

# Transaction types
PAGE_LOAD = "page-load"
ROUTE_CHANGE = "route-change"
TYPE_CUSTOM = "custom"

# Span types
LONG_TASK = "longtask"
USER_TIMING_TYPE = "app"
NAVIGATION_TIMING_TYPE = "hard-navigation.browser-timing"
RESOURCE_TYPE = "resource"
EXTERNAL_HTTP = "external.http"
TRUNCATED_TYPE = ".truncated"

NAME_UNKNOWN = "Unknown"

# Timeline entry kinds
LARGEST_CONTENTFUL_PAINT = "largest-contentful-paint"
RESOURCE = "resource"
MEASURE = "measure"
PAINT = "paint"
NAVIGATION = "navigation"

FIRST_CONTENTFUL_PAINT = "first-contentful-paint"

# Spans longer than this are treated as bogus host data
MAX_SPAN_DURATION = 5 * 60 * 1000

# Measures at or below this duration (ms) are not worth a span
USER_TIMING_THRESHOLD = 5

SERVER_STRING_LIMIT = 1024

# Transaction lifecycle events
TRANSACTION_START = "transaction:start"
TRANSACTION_END = "transaction:end"
