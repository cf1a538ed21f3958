import unittest
from datetime import date

from credit_share.config import PALETTE
from credit_share.data_models import TimeRangedEntity, ViewState
from credit_share.timeline import (
    build_timeline,
    decimate_labels,
    entity_color,
    get_sub_interval_labels,
    get_view_bounds,
    initial_view,
    jump_to_today,
    label_step_for_width,
    layout_entity,
    next_period,
    parse_granularity,
    period_title,
    previous_period,
    select_visible_entities,
    set_granularity,
    text_color,
)


def entity(label, start, end, entity_id=None):
    return TimeRangedEntity(id=entity_id or label, label=label, start_date=start, end_date=end)


YEAR_2024 = (date(2024, 1, 1), date(2024, 12, 31))
FEB_2024 = (date(2024, 2, 1), date(2024, 2, 29))


class TestViewBounds(unittest.TestCase):

    def test_year(self):
        self.assertEqual(get_view_bounds(date(2024, 7, 4), "year"), YEAR_2024)

    def test_month_handles_leap_february(self):
        self.assertEqual(get_view_bounds(date(2024, 2, 10), "month"), FEB_2024)
        self.assertEqual(
            get_view_bounds(date(2023, 2, 10), "month"),
            (date(2023, 2, 1), date(2023, 2, 28)),
        )

    def test_week_starts_on_monday(self):
        expected = (date(2024, 2, 5), date(2024, 2, 11))
        self.assertEqual(get_view_bounds(date(2024, 2, 7), "week"), expected)
        self.assertEqual(get_view_bounds(date(2024, 2, 5), "week"), expected)
        self.assertEqual(get_view_bounds(date(2024, 2, 11), "week"), expected)

    def test_week_across_year_end(self):
        self.assertEqual(
            get_view_bounds(date(2025, 1, 1), "week"),
            (date(2024, 12, 30), date(2025, 1, 5)),
        )

    def test_unknown_granularity(self):
        with self.assertRaises(ValueError):
            get_view_bounds(date(2024, 1, 1), "decade")


class TestLabels(unittest.TestCase):

    def test_year_labels(self):
        labels = get_sub_interval_labels(*YEAR_2024, "year")
        self.assertEqual(len(labels), 12)
        self.assertEqual(labels[0], "Jan")
        self.assertEqual(labels[-1], "Dec")

    def test_month_labels_every_day(self):
        labels = get_sub_interval_labels(*FEB_2024, "month")
        self.assertEqual(len(labels), 29)
        self.assertEqual(labels[:3], ["01", "02", "03"])
        self.assertEqual(labels[-1], "29")

    def test_week_labels_monday_first(self):
        labels = get_sub_interval_labels(date(2024, 2, 5), date(2024, 2, 11), "week")
        self.assertEqual(labels, ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"])

    def test_custom_names(self):
        french_months = [
            "janv", "févr", "mars", "avr", "mai", "juin",
            "juil", "août", "sept", "oct", "nov", "déc",
        ]
        french_days = ["lun", "mar", "mer", "jeu", "ven", "sam", "dim"]
        self.assertEqual(
            get_sub_interval_labels(*YEAR_2024, "year", month_names=french_months),
            french_months,
        )
        self.assertEqual(
            get_sub_interval_labels(
                date(2024, 2, 5), date(2024, 2, 11), "week", weekday_names=french_days
            ),
            french_days,
        )

    def test_labels_are_recomputed_each_call(self):
        first = get_sub_interval_labels(*FEB_2024, "month")
        first.clear()
        self.assertEqual(len(get_sub_interval_labels(*FEB_2024, "month")), 29)

    def test_decimate(self):
        labels = get_sub_interval_labels(date(2024, 1, 1), date(2024, 1, 31), "month")
        halved = decimate_labels(labels, 2)
        self.assertEqual(len(halved), 16)
        self.assertEqual(halved[:3], ["01", "03", "05"])
        self.assertEqual(decimate_labels(labels, 1), labels)
        with self.assertRaises(ValueError):
            decimate_labels(labels, 0)

    def test_label_step_for_width(self):
        self.assertEqual(label_step_for_width(1024), 1)
        self.assertEqual(label_step_for_width(768), 2)
        self.assertEqual(label_step_for_width(600), 2)
        self.assertEqual(label_step_for_width(450), 3)
        self.assertEqual(label_step_for_width(320), 4)


class TestLayoutEntity(unittest.TestCase):

    def test_june_in_leap_year_view(self):
        placement = layout_entity(entity("June", date(2024, 6, 1), date(2024, 6, 30)), *YEAR_2024)

        self.assertAlmostEqual(placement.offset_percent, 152 / 366 * 100)
        self.assertAlmostEqual(placement.width_percent, 29 / 366 * 100)

    def test_entity_crossing_both_month_boundaries_fills_the_view(self):
        placement = layout_entity(entity("Roof", date(2024, 1, 15), date(2024, 3, 15)), *FEB_2024)

        self.assertEqual(placement.offset_percent, 0)
        self.assertEqual(placement.width_percent, 100)

    def test_entity_containing_every_view_fills_it(self):
        long_entity = entity("Long", date(2020, 1, 1), date(2030, 1, 1))
        for reference in (date(2024, 6, 15), date(2023, 2, 1)):
            for granularity in ("year", "month", "week"):
                with self.subTest(reference=reference, granularity=granularity):
                    placement = layout_entity(
                        long_entity, *get_view_bounds(reference, granularity)
                    )
                    self.assertEqual(placement.offset_percent, 0)
                    self.assertEqual(placement.width_percent, 100)

    def test_disjoint_entities_are_not_placed(self):
        before = entity("Before", date(2023, 3, 1), date(2023, 12, 31))
        after = entity("After", date(2025, 1, 1), date(2025, 2, 1))
        self.assertIsNone(layout_entity(before, *YEAR_2024))
        self.assertIsNone(layout_entity(after, *YEAR_2024))

    def test_clipped_at_view_end_stays_inside(self):
        placement = layout_entity(
            entity("Winter", date(2024, 12, 15), date(2025, 1, 10)), *YEAR_2024
        )
        self.assertAlmostEqual(placement.offset_percent, 349 / 366 * 100)
        self.assertGreaterEqual(placement.offset_percent, 0)
        self.assertLessEqual(placement.offset_percent + placement.width_percent, 100 + 1e-9)

    def test_single_day_entity_on_last_day_has_zero_width(self):
        placement = layout_entity(entity("Eve", date(2024, 12, 31), date(2024, 12, 31)), *YEAR_2024)
        self.assertAlmostEqual(placement.offset_percent, 365 / 366 * 100)
        self.assertEqual(placement.width_percent, 0)

    def test_reversed_range_is_not_placed_and_logged(self):
        reversed_entity = entity("Backwards", date(2024, 6, 10), date(2024, 6, 5))
        with self.assertLogs("credit_share.timeline", level="WARNING") as logs:
            self.assertIsNone(layout_entity(reversed_entity, *YEAR_2024))
        self.assertIn("Backwards", logs.output[0])


class TestSelectVisible(unittest.TestCase):

    def test_keeps_input_order_and_inclusive_edges(self):
        entities = [
            entity("Late", date(2024, 2, 29), date(2024, 4, 1)),
            entity("Outside", date(2024, 3, 1), date(2024, 3, 5)),
            entity("Early", date(2024, 1, 10), date(2024, 2, 1)),
            entity("Old", date(2023, 1, 1), date(2024, 1, 31)),
        ]
        visible = select_visible_entities(entities, *FEB_2024)
        self.assertEqual([e.label for e in visible], ["Late", "Early"])

    def test_empty_input(self):
        self.assertEqual(select_visible_entities([], *FEB_2024), [])


class TestNavigation(unittest.TestCase):

    def test_initial_view(self):
        view = initial_view(today=date(2024, 5, 5))
        self.assertEqual(view, ViewState(date(2024, 5, 5), "year"))

    def test_year_steps(self):
        view = ViewState(date(2024, 2, 29), "year")
        self.assertEqual(previous_period(view).reference_date, date(2023, 2, 28))
        self.assertEqual(next_period(view).reference_date, date(2025, 2, 28))

    def test_month_steps_clamp_day(self):
        view = ViewState(date(2024, 1, 31), "month")
        self.assertEqual(next_period(view).reference_date, date(2024, 2, 29))
        self.assertEqual(previous_period(view).reference_date, date(2023, 12, 31))

    def test_week_steps(self):
        view = ViewState(date(2024, 12, 28), "week")
        self.assertEqual(next_period(view), ViewState(date(2025, 1, 4), "week"))
        self.assertEqual(previous_period(view), ViewState(date(2024, 12, 21), "week"))

    def test_navigation_does_not_mutate(self):
        view = ViewState(date(2024, 6, 1), "month")
        next_period(view)
        self.assertEqual(view.reference_date, date(2024, 6, 1))

    def test_set_granularity_keeps_reference_date(self):
        view = set_granularity(ViewState(date(2024, 6, 12), "year"), "Week")
        self.assertEqual(view, ViewState(date(2024, 6, 12), "week"))
        with self.assertRaises(ValueError):
            set_granularity(view, "day")

    def test_jump_to_today_keeps_granularity(self):
        view = jump_to_today(ViewState(date(2020, 1, 1), "month"), today=date(2024, 8, 8))
        self.assertEqual(view, ViewState(date(2024, 8, 8), "month"))

    def test_parse_granularity(self):
        self.assertEqual(parse_granularity(" MONTH "), "month")
        with self.assertRaises(ValueError):
            parse_granularity("")


class TestPresentation(unittest.TestCase):

    def test_palette_cycles(self):
        self.assertEqual(entity_color(0), PALETTE[0])
        self.assertEqual(entity_color(len(PALETTE)), PALETTE[0])
        self.assertEqual(entity_color(len(PALETTE) + 3), PALETTE[3])

    def test_text_color(self):
        self.assertEqual(text_color("#81C784"), "black")
        self.assertEqual(text_color("#FFFFFF"), "black")
        self.assertEqual(text_color("#000000"), "white")
        self.assertEqual(text_color("#E57373"), "black")

    def test_period_titles(self):
        self.assertEqual(period_title(ViewState(date(2024, 2, 10), "year")), "2024")
        self.assertEqual(period_title(ViewState(date(2024, 2, 10), "month")), "February 2024")
        self.assertEqual(
            period_title(ViewState(date(2024, 2, 7), "week")),
            "Week of 05 Feb 2024 to 11 Feb 2024",
        )


class TestBuildTimeline(unittest.TestCase):

    def test_year_view(self):
        entities = [
            entity("Kitchen", date(2024, 1, 1), date(2024, 3, 31)),
            entity("Broken", date(2024, 6, 10), date(2024, 6, 5)),
            entity("Garden", date(2024, 7, 1), date(2024, 8, 31)),
            entity("Old", date(2022, 1, 1), date(2022, 12, 31)),
        ]
        with self.assertLogs("credit_share.timeline", level="WARNING"):
            timeline = build_timeline(ViewState(date(2024, 5, 1), "year"), entities)

        self.assertEqual(timeline.title, "2024")
        self.assertEqual((timeline.interval_start, timeline.interval_end), YEAR_2024)
        self.assertEqual(len(timeline.labels), 12)
        self.assertEqual([layout.entity.label for layout in timeline.layouts], ["Kitchen", "Garden"])
        self.assertEqual(timeline.layouts[0].color, PALETTE[0])
        self.assertEqual(timeline.layouts[1].color, PALETTE[2])
        self.assertEqual(timeline.layouts[0].placement.offset_percent, 0)

    def test_month_view_label_step(self):
        timeline = build_timeline(ViewState(date(2024, 2, 10), "month"), [], label_step=3)
        self.assertEqual(timeline.labels[:2], ["01", "04"])
        self.assertEqual(len(timeline.labels), 10)
        self.assertEqual(timeline.layouts, [])


if __name__ == "__main__":
    unittest.main()
