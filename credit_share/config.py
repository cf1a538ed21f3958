"""Shared constants for the credit sharing engine.

Money rounding, view defaults, label density breakpoints and the colour
palette used for timeline bars all live here so that the engine, the CLI
and the web layer agree on them.
"""

from decimal import Decimal, ROUND_HALF_UP

# =============================================================================
# MONEY
# =============================================================================

# Every persisted amount (monthly payment, total due, share) has 2 decimals
MONEY_QUANTUM = Decimal("0.01")
MONEY_ROUNDING = ROUND_HALF_UP

# =============================================================================
# CALENDAR VIEW
# =============================================================================

GRANULARITY_YEAR = "year"
GRANULARITY_MONTH = "month"
GRANULARITY_WEEK = "week"
GRANULARITIES = (GRANULARITY_YEAR, GRANULARITY_MONTH, GRANULARITY_WEEK)
DEFAULT_GRANULARITY = GRANULARITY_YEAR

# (minimum screen width in px, label step) checked in order; the last step
# applies below every breakpoint
LABEL_STEP_BREAKPOINTS = ((768, 1), (500, 2), (400, 3))
NARROW_LABEL_STEP = 4

# Bar colours cycled by entity index
PALETTE = (
    "#81C784",
    "#90CAF9",
    "#FFB74D",
    "#CE93D8",
    "#E57373",
    "#F06292",
    "#4DD0E1",
    "#FFF176",
    "#AED581",
    "#B39DDB",
    "#9FA8DA",
    "#BCAAA4",
    "#B0BEC5",
    "#80CBC4",
)

# Backgrounds brighter than this get black text
TEXT_LUMINANCE_THRESHOLD = 0.5

# =============================================================================
# DISPLAY FORMATS
# =============================================================================

YEAR_MONTH_FORMAT = "%Y-%m"
DATE_FORMAT = "%Y-%m-%d"
DAY_DISPLAY_FORMAT = "%d %b %Y"
