"""Calendar layout engine for time-ranged entities.

A view is a (reference date, granularity) pair. This module computes the
bounds and sub-interval labels of a view, positions entity bars inside it as
percentages of its width, and steps the view backwards and forwards. Every
function is a pure function of its arguments; the current view is an explicit
``ViewState`` value that the caller keeps and replaces.

Dates are ``datetime.date`` values, so all arithmetic is in whole days. The
bounds of a view are inclusive calendar days and its right edge, for
geometry, is the end of its last day. Entity dates are read as the start of
their day, matching how they are stored.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple, TypeVar

from .config import (
    DAY_DISPLAY_FORMAT,
    GRANULARITIES,
    GRANULARITY_MONTH,
    GRANULARITY_WEEK,
    GRANULARITY_YEAR,
    LABEL_STEP_BREAKPOINTS,
    NARROW_LABEL_STEP,
    PALETTE,
    TEXT_LUMINANCE_THRESHOLD,
)
from .data_models import (
    EntityLayout,
    Placement,
    TimeRangedEntity,
    TimelineView,
    ViewState,
)
from .utils import shift_months

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)

E = TypeVar("E", bound=TimeRangedEntity)


def parse_granularity(value: str) -> str:
    """Normalize a granularity name, raising ``ValueError`` if unknown."""
    granularity = (value or "").strip().lower()
    if granularity not in GRANULARITIES:
        raise ValueError(
            f"Granularity must be one of {', '.join(GRANULARITIES)}; got {value}"
        )
    return granularity


# ---------------------------------------------------------------------------
# Bounds and labels
# ---------------------------------------------------------------------------


def get_view_bounds(reference_date: date, granularity: str) -> Tuple[date, date]:
    """Return the first and last day of the period containing ``reference_date``.

    Year views span January 1 to December 31, month views the calendar month
    and week views Monday to Sunday.
    """
    if granularity == GRANULARITY_YEAR:
        return date(reference_date.year, 1, 1), date(reference_date.year, 12, 31)
    if granularity == GRANULARITY_MONTH:
        last_day = calendar.monthrange(reference_date.year, reference_date.month)[1]
        return (
            reference_date.replace(day=1),
            reference_date.replace(day=last_day),
        )
    if granularity == GRANULARITY_WEEK:
        monday = reference_date - timedelta(days=reference_date.weekday())
        return monday, monday + timedelta(days=6)
    raise ValueError(f"Unknown granularity: {granularity}")


def view_bounds(view: ViewState) -> Tuple[date, date]:
    return get_view_bounds(view.reference_date, view.granularity)


def _each_day(start: date, end: date) -> List[date]:
    return [start + timedelta(days=n) for n in range((end - start).days + 1)]


def get_sub_interval_labels(
    interval_start: date,
    interval_end: date,
    granularity: str,
    month_names: Optional[Sequence[str]] = None,
    weekday_names: Optional[Sequence[str]] = None,
) -> List[str]:
    """Return the column labels of a view.

    Year views get one short month name per month, month views one
    zero-padded day number per day and week views one short weekday name per
    day, Monday first. ``month_names`` (12 entries, January first) and
    ``weekday_names`` (7 entries, Monday first) replace the English names.
    Month views always return every day; use ``decimate_labels`` to thin
    them out for narrow displays.
    """
    if granularity == GRANULARITY_YEAR:
        names = month_names or calendar.month_abbr[1:]
        return [
            names[month - 1]
            for month in range(interval_start.month, interval_end.month + 1)
        ]
    if granularity == GRANULARITY_MONTH:
        return [f"{day.day:02d}" for day in _each_day(interval_start, interval_end)]
    if granularity == GRANULARITY_WEEK:
        names = weekday_names or calendar.day_abbr
        return [names[day.weekday()] for day in _each_day(interval_start, interval_end)]
    raise ValueError(f"Unknown granularity: {granularity}")


def decimate_labels(labels: Sequence[str], step: int) -> List[str]:
    """Keep every ``step``-th label, starting with the first."""
    if step < 1:
        raise ValueError(f"Label step must be at least 1; got {step}")
    return [label for index, label in enumerate(labels) if index % step == 0]


def label_step_for_width(width_px: int) -> int:
    """Day label step for a month view drawn ``width_px`` pixels wide."""
    for min_width, step in LABEL_STEP_BREAKPOINTS:
        if width_px > min_width:
            return step
    return NARROW_LABEL_STEP


# ---------------------------------------------------------------------------
# Entity geometry
# ---------------------------------------------------------------------------


def is_malformed(entity: TimeRangedEntity) -> bool:
    return entity.end_date < entity.start_date


def layout_entity(
    entity: TimeRangedEntity, interval_start: date, interval_end: date
) -> Optional[Placement]:
    """Position ``entity``'s bar inside the view ``[interval_start, interval_end]``.

    The entity's span is clipped to the view, and its offset and width are
    returned as percentages of the view's width, so that
    ``0 <= offset`` and ``offset + width <= 100``.

    Returns ``None`` when the entity does not overlap the view, and also when
    its end date precedes its start date; such entities are logged and
    skipped without affecting the others.
    """
    if is_malformed(entity):
        logger.warning(
            "Entity %r (%s) ends before it starts: %s > %s; not drawn",
            entity.id,
            entity.label,
            entity.start_date,
            entity.end_date,
        )
        return None

    right_edge = interval_end + ONE_DAY
    effective_start = max(entity.start_date, interval_start)
    effective_end = min(entity.end_date, right_edge)
    if effective_start > interval_end or effective_end < interval_start:
        return None

    total_days = (right_edge - interval_start).days
    offset = (effective_start - interval_start).days / total_days * 100
    width = (effective_end - effective_start).days / total_days * 100
    return Placement(offset_percent=offset, width_percent=width)


def select_visible_entities(
    entities: Iterable[E], interval_start: date, interval_end: date
) -> List[E]:
    """Entities overlapping the view, in input order."""
    return [
        entity
        for entity in entities
        if entity.start_date <= interval_end and entity.end_date >= interval_start
    ]


# ---------------------------------------------------------------------------
# Colours and titles
# ---------------------------------------------------------------------------


def entity_color(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def text_color(background: str) -> str:
    """Return ``"black"`` or ``"white"``, whichever reads better on ``background``.

    ``background`` is a ``#RRGGBB`` colour; its perceived luminance decides.
    """
    red = int(background[1:3], 16)
    green = int(background[3:5], 16)
    blue = int(background[5:7], 16)
    luminance = (0.299 * red + 0.587 * green + 0.114 * blue) / 255
    return "black" if luminance > TEXT_LUMINANCE_THRESHOLD else "white"


def period_title(view: ViewState) -> str:
    start, end = view_bounds(view)
    if view.granularity == GRANULARITY_YEAR:
        return str(start.year)
    if view.granularity == GRANULARITY_MONTH:
        return f"{calendar.month_name[start.month]} {start.year}"
    return f"Week of {start.strftime(DAY_DISPLAY_FORMAT)} to {end.strftime(DAY_DISPLAY_FORMAT)}"


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def initial_view(today: Optional[date] = None) -> ViewState:
    return ViewState(reference_date=today or date.today(), granularity=GRANULARITY_YEAR)


def _step(view: ViewState, direction: int) -> ViewState:
    if view.granularity == GRANULARITY_YEAR:
        reference = shift_months(view.reference_date, 12 * direction)
    elif view.granularity == GRANULARITY_MONTH:
        reference = shift_months(view.reference_date, direction)
    elif view.granularity == GRANULARITY_WEEK:
        reference = view.reference_date + timedelta(weeks=direction)
    else:
        raise ValueError(f"Unknown granularity: {view.granularity}")
    logger.debug("View moved from %s to %s (%s)", view.reference_date, reference, view.granularity)
    return ViewState(reference_date=reference, granularity=view.granularity)


def previous_period(view: ViewState) -> ViewState:
    """Move back by one year, month or week depending on the granularity."""
    return _step(view, -1)


def next_period(view: ViewState) -> ViewState:
    """Move forward by one year, month or week depending on the granularity."""
    return _step(view, 1)


def set_granularity(view: ViewState, granularity: str) -> ViewState:
    """Change the zoom level, keeping the reference date."""
    return ViewState(reference_date=view.reference_date, granularity=parse_granularity(granularity))


def jump_to_today(view: ViewState, today: Optional[date] = None) -> ViewState:
    return ViewState(reference_date=today or date.today(), granularity=view.granularity)


# ---------------------------------------------------------------------------
# Full view
# ---------------------------------------------------------------------------


def build_timeline(
    view: ViewState,
    entities: Iterable[TimeRangedEntity],
    label_step: int = 1,
) -> TimelineView:
    """Lay out ``entities`` for ``view``.

    Colours are assigned by position among the visible entities. Entities
    that are visible but cannot be placed (reversed ranges) keep their
    colour slot but get no layout.
    """
    start, end = view_bounds(view)
    labels = get_sub_interval_labels(start, end, view.granularity)
    if label_step != 1:
        labels = decimate_labels(labels, label_step)

    layouts: List[EntityLayout] = []
    for index, entity in enumerate(select_visible_entities(entities, start, end)):
        placement = layout_entity(entity, start, end)
        if placement is None:
            continue
        color = entity_color(index)
        layouts.append(
            EntityLayout(
                entity=entity,
                placement=placement,
                color=color,
                text_color=text_color(color),
            )
        )

    return TimelineView(
        view=view,
        interval_start=start,
        interval_end=end,
        title=period_title(view),
        labels=labels,
        layouts=layouts,
    )
