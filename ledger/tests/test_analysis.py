from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from ledger.aggregation import aggregate_timeline
from ledger.analysis import (
    AnalysisConfig,
    analyze,
    future_value_of_annuity,
    income_percentile,
    loyalty_insight,
    loyalty_tax,
    loyalty_window_start,
    market_opportunity_insight,
    overtime_insight,
    percentile_insight,
    project_super,
    super_cap_utilization,
    super_trajectory,
    tenure_blocks,
)
from ledger.exceptions import InsufficientData
from ledger.market import default_market_reference
from ledger.models import InsightCategory, LoyaltyWindow
from ledger.records import (
    EarningsSnapshot,
    LoyaltyTax,
    NormalizedAnnual,
    PositionRecord,
    ProfileRecord,
    WeeklyEntry,
)


def snapshot(on, base, position_id=1):
    base = Decimal(base)
    return EarningsSnapshot(
        date=on,
        base_annual=base,
        actual_annual=base,
        total_with_super=base,
        effective_hourly_rate=Decimal("0"),
        position_id=position_id,
    )


def normalized(effective_date, base="80000", **overrides):
    values = {
        "record_id": "compensation:1",
        "position_id": 1,
        "effective_date": effective_date,
        "base": Decimal(base),
        "overtime": Decimal("0"),
        "allowances": Decimal("0"),
        "bonuses": Decimal("0"),
        "super_employer": Decimal("0"),
        "super_personal": Decimal("0"),
        "tax_withheld": Decimal("0"),
        "confidence": 100,
        "standard_weekly_hours": Decimal("38"),
    }
    values.update(overrides)
    return NormalizedAnnual(**values)


def weekly(gross="1000", week_ending=date(2024, 3, 8), **overrides):
    values = {
        "record_id": "weekly:1",
        "position_id": 1,
        "week_ending": week_ending,
        "gross_pay": Decimal(gross),
        "tax_withheld": Decimal("200"),
        "net_pay": Decimal(gross) - Decimal("200"),
        "hours_ordinary": Decimal("38"),
    }
    values.update(overrides)
    return WeeklyEntry(**values)


class IncomePercentileTests(SimpleTestCase):
    def setUp(self):
        self.market = default_market_reference("Finance")

    def test_median_income_sits_at_the_fiftieth_percentile(self):
        self.assertEqual(income_percentile(Decimal("100000"), self.market), Decimal("50.0"))

    def test_interpolates_between_curve_points(self):
        self.assertEqual(income_percentile(Decimal("87500"), self.market), Decimal("37.5"))

    def test_below_first_point_interpolates_from_zero(self):
        self.assertEqual(income_percentile(Decimal("30000"), self.market), Decimal("5.0"))

    def test_above_top_point_is_clamped(self):
        self.assertEqual(income_percentile(Decimal("200000"), self.market), Decimal("90.0"))

    def test_zero_income(self):
        self.assertEqual(income_percentile(Decimal("0"), self.market), Decimal("0"))

    def test_no_market_reference(self):
        self.assertIsNone(income_percentile(Decimal("100000"), None))

    def test_percentile_does_not_decrease_with_income(self):
        incomes = [Decimal(value) for value in range(0, 200001, 12500)]
        percentiles = [income_percentile(income, self.market) for income in incomes]
        self.assertEqual(percentiles, sorted(percentiles))


class LoyaltyWindowTests(SimpleTestCase):
    def setUp(self):
        self.timeline = [
            snapshot(date(2020, 1, 1), "100000"),
            snapshot(date(2021, 1, 1), "100000"),
            snapshot(date(2022, 1, 1), "110000"),
        ]

    def test_last_increase_uses_latest_base_change(self):
        start = loyalty_window_start(LoyaltyWindow.LAST_INCREASE, self.timeline, None, date(2024, 1, 1))
        self.assertEqual(start, date(2022, 1, 1))

    def test_position_change_uses_tenure_start(self):
        start = loyalty_window_start(LoyaltyWindow.POSITION_CHANGE, self.timeline, date(2019, 6, 1), date(2024, 1, 1))
        self.assertEqual(start, date(2019, 6, 1))

    def test_position_change_without_tenure_uses_first_snapshot(self):
        start = loyalty_window_start(LoyaltyWindow.POSITION_CHANGE, self.timeline, None, date(2024, 1, 1))
        self.assertEqual(start, date(2020, 1, 1))


class LoyaltyTaxTests(SimpleTestCase):
    def test_flat_salary_against_reference_growth(self):
        timeline = [snapshot(date(2020, 7, 1), "100000")]

        result = loyalty_tax(timeline, Decimal("0.06"), date(2020, 7, 1), date(2023, 7, 1))

        self.assertEqual(result.annual, Decimal("6000.00"))
        self.assertEqual(result.actual_growth, Decimal("0.0000"))
        self.assertEqual(len(result.yearly), 3)
        self.assertEqual(result.yearly[0].amount, Decimal("6000.00"))
        self.assertEqual(result.yearly[1].amount, Decimal("12360.00"))
        self.assertEqual(result.cumulative, sum(item.amount for item in result.yearly))

    def test_growth_above_reference_costs_nothing(self):
        timeline = [snapshot(date(2021, 1, 1), "100000"), snapshot(date(2021, 7, 1), "120000")]

        result = loyalty_tax(timeline, Decimal("0.06"), date(2021, 1, 1), date(2022, 6, 1))

        self.assertEqual(result.annual, Decimal("0"))
        self.assertEqual(result.cumulative, Decimal("0"))
        self.assertEqual(result.yearly, ())

    def test_window_starts_at_first_salary_recorded_in_the_new_position(self):
        timeline = [
            snapshot(date(2018, 1, 1), "60000", position_id=1),
            snapshot(date(2021, 1, 15), "100000", position_id=2),
        ]

        result = loyalty_tax(timeline, Decimal("0.06"), date(2021, 1, 1), date(2024, 1, 15))

        self.assertEqual(result.window_start, date(2021, 1, 15))
        self.assertEqual(result.actual_growth, Decimal("0.0000"))
        self.assertEqual(result.annual, Decimal("6000.00"))

    def test_window_without_later_records_uses_salary_in_effect(self):
        timeline = [snapshot(date(2019, 3, 1), "100000")]

        result = loyalty_tax(timeline, Decimal("0.06"), date(2020, 7, 1), date(2023, 7, 1))

        self.assertEqual(result.window_start, date(2020, 7, 1))
        self.assertEqual(result.annual, Decimal("6000.00"))

    def test_window_shorter_than_a_year_is_insufficient(self):
        timeline = [snapshot(date(2021, 1, 1), "100000")]
        with self.assertRaises(InsufficientData):
            loyalty_tax(timeline, Decimal("0.06"), date(2021, 1, 1), date(2021, 6, 1))

    def test_no_history_is_insufficient(self):
        with self.assertRaises(InsufficientData):
            loyalty_tax([], Decimal("0.06"), date(2021, 1, 1), date(2024, 1, 1))


class SuperTests(SimpleTestCase):
    def test_cap_utilization(self):
        percent, headroom = super_cap_utilization(Decimal("25000"), Decimal("30000"))
        self.assertEqual(percent, Decimal("83.33"))
        self.assertEqual(headroom, Decimal("5000.00"))

    def test_over_cap_has_no_headroom(self):
        percent, headroom = super_cap_utilization(Decimal("33000"), Decimal("30000"))
        self.assertEqual(percent, Decimal("110.00"))
        self.assertEqual(headroom, Decimal("0.00"))

    def test_future_value_of_annuity(self):
        projection = project_super(Decimal("10000"), Decimal("0.07"), 30)
        self.assertEqual(projection.projected_balance, Decimal("944607.86"))

    def test_zero_return_is_sum_of_contributions(self):
        self.assertEqual(future_value_of_annuity(Decimal("10000"), Decimal("0"), 30), Decimal("300000"))

    def test_trajectory_credits_monthly_share_of_employer_super(self):
        entries = [normalized(date(2023, 7, 1), super_employer=Decimal("12000"))]

        trajectory = super_trajectory(entries, [], date(2024, 6, 30), Decimal("30000"), Decimal("0.07"))

        self.assertEqual(len(trajectory), 1)
        year = trajectory[0]
        self.assertEqual(year.financial_year, "2023-2024")
        self.assertEqual(year.employer_contributions, Decimal("12000.00"))
        self.assertEqual(year.cap_utilization_percent, Decimal("40.00"))
        self.assertEqual(year.remaining_headroom, Decimal("18000.00"))
        self.assertEqual(year.total_super_balance, Decimal("12000.00"))

    def test_trajectory_balance_compounds_between_years(self):
        entries = [normalized(date(2023, 7, 1), super_employer=Decimal("12000"))]

        trajectory = super_trajectory(entries, [], date(2025, 6, 30), Decimal("30000"), Decimal("0.07"))

        self.assertEqual([year.financial_year for year in trajectory], ["2023-2024", "2024-2025"])
        self.assertEqual(trajectory[-1].total_super_balance, Decimal("24840.00"))

    def test_payslips_replace_estimate_for_their_financial_year(self):
        entries = [normalized(date(2023, 7, 1), super_employer=Decimal("12000"))]
        weeks = [weekly(super_contributed=Decimal("200"))]

        trajectory = super_trajectory(entries, weeks, date(2024, 6, 30), Decimal("30000"), Decimal("0.07"))

        self.assertEqual(trajectory[0].employer_contributions, Decimal("200.00"))

    def test_no_entries_gives_empty_trajectory(self):
        self.assertEqual(super_trajectory([], [], date(2024, 6, 30), Decimal("30000"), Decimal("0.07")), [])


class TenureBlockTests(SimpleTestCase):
    def test_long_tenure_is_compared_with_market_growth(self):
        positions = [
            PositionRecord(position_id=1, employer_name="Acme", job_title="Analyst", start_date=date(2018, 1, 1)),
            PositionRecord(
                position_id=2,
                employer_name="Short Co",
                job_title="Analyst",
                start_date=date(2016, 1, 1),
                end_date=date(2017, 1, 1),
            ),
        ]
        timeline = [
            snapshot(date(2016, 1, 1), "70000", position_id=2),
            snapshot(date(2018, 1, 1), "80000"),
            snapshot(date(2021, 1, 1), "92000"),
        ]

        blocks = tenure_blocks(positions, timeline, lambda level: Decimal("0.06"), date(2022, 1, 1))

        self.assertEqual(len(blocks), 1)
        block = blocks[0]
        self.assertEqual(block.employer_name, "Acme")
        self.assertIsNone(block.end_date)
        self.assertEqual(block.years_of_service, Decimal("4.00"))
        self.assertEqual(block.actual_progression, Decimal("3.75"))
        self.assertEqual(block.market_expected_progression, Decimal("6.00"))
        self.assertEqual(block.loyalty_tax_impact, Decimal("8280.00"))


class InsightTests(SimpleTestCase):
    def setUp(self):
        self.config = AnalysisConfig()
        self.market = default_market_reference("")

    def test_overtime_heavy_from_exact_entry(self):
        entry = normalized(date(2023, 1, 1), overtime=Decimal("20000"))
        insight = overtime_insight(entry, [], self.config)
        self.assertEqual(insight.category, InsightCategory.OVERTIME_HEAVY)
        self.assertEqual(insight.confidence_level, 95)

    def test_overtime_from_fuzzy_entry_without_payslips_is_less_certain(self):
        entry = normalized(date(2023, 1, 1), overtime=Decimal("20000"), confidence=70)
        self.assertEqual(overtime_insight(entry, [], self.config).confidence_level, 70)

    def test_payslip_sample_restores_confidence(self):
        entry = normalized(date(2023, 1, 1), overtime=Decimal("20000"), confidence=70)
        weeks = [weekly() for _ in range(4)]
        self.assertEqual(overtime_insight(entry, weeks, self.config).confidence_level, 95)

    def test_small_overtime_share_has_no_insight(self):
        entry = normalized(date(2023, 1, 1), overtime=Decimal("5000"))
        self.assertIsNone(overtime_insight(entry, [], self.config))

    def test_overtime_from_payslips_alone(self):
        weeks = [weekly(hours_ordinary=Decimal("38"), hours_overtime=Decimal("10"))]
        insight = overtime_insight(None, weeks, self.config)
        self.assertEqual(insight.confidence_level, 70)

    def test_material_loyalty_tax(self):
        result = LoyaltyTax(
            baseline="INDUSTRY_AVERAGE",
            window_start=date(2020, 7, 1),
            reference_growth=Decimal("0.06"),
            actual_growth=Decimal("0"),
            years_in_window=Decimal("3.00"),
            current_base=Decimal("100000"),
            annual=Decimal("6000.00"),
            cumulative=Decimal("5000.00"),
        )
        insight = loyalty_insight(result, self.config)
        self.assertEqual(insight.category, InsightCategory.LOYALTY_TAX)
        self.assertEqual(insight.confidence_level, 85)

    def test_immaterial_loyalty_tax_is_ignored(self):
        self.assertIsNone(loyalty_insight(None, self.config))

    def test_low_income_is_underpaid_with_market_opportunity(self):
        income = Decimal("40000")
        percentile = income_percentile(income, self.market)

        underpaid = percentile_insight(percentile, income, self.market, self.config)
        opportunity = market_opportunity_insight(Decimal("20.24"), self.market, self.config)

        self.assertEqual(underpaid.category, InsightCategory.UNDERPAID)
        self.assertEqual(opportunity.category, InsightCategory.MARKET_OPPORTUNITY)

    def test_median_income_is_fairly_paid(self):
        income = Decimal("90000")
        insight = percentile_insight(income_percentile(income, self.market), income, self.market, self.config)
        self.assertEqual(insight.category, InsightCategory.FAIRLY_PAID)

    def test_high_income_is_overpaid(self):
        income = Decimal("130000")
        insight = percentile_insight(income_percentile(income, self.market), income, self.market, self.config)
        self.assertEqual(insight.category, InsightCategory.OVERPAID)

    def test_rate_near_market_has_no_opportunity(self):
        self.assertIsNone(market_opportunity_insight(Decimal("44.00"), self.market, self.config))


class AnalyzeTests(SimpleTestCase):
    def setUp(self):
        self.profile = ProfileRecord(industry="Finance")
        self.market = default_market_reference("Finance")

    def test_without_records_there_is_no_data(self):
        analysis = analyze([], self.profile, self.market, date(2024, 1, 1))
        self.assertFalse(analysis.has_data)
        self.assertIsNone(analysis.income_percentile)

    def test_full_analysis(self):
        entries = [normalized(date(2020, 7, 1), base="100000", super_employer=Decimal("11000"))]
        timeline = aggregate_timeline(entries)

        analysis = analyze(
            timeline,
            self.profile,
            self.market,
            date(2023, 7, 1),
            normalized=entries,
            tenure_start=date(2020, 7, 1),
        )

        self.assertTrue(analysis.has_data)
        self.assertEqual(analysis.current_total_compensation, Decimal("111000.00"))
        self.assertEqual(analysis.income_percentile, Decimal("61.0"))
        self.assertEqual(analysis.loyalty_tax_annual, Decimal("6000.00"))
        self.assertEqual(analysis.years_since_last_change, Decimal("3.00"))
        self.assertEqual(analysis.current_weekly_hours, Decimal("38.00"))
        self.assertEqual(analysis.super_projection.annual_contribution, Decimal("11000.00"))
        self.assertEqual(
            {insight.category for insight in analysis.insights},
            {InsightCategory.LOYALTY_TAX, InsightCategory.FAIRLY_PAID},
        )

    def test_job_change_raise_is_not_counted_as_growth(self):
        entries = [
            normalized(date(2018, 1, 1), base="60000", end_date=date(2020, 12, 31)),
            normalized(date(2021, 1, 15), base="100000", record_id="compensation:2", position_id=2),
        ]

        analysis = analyze(
            aggregate_timeline(entries),
            self.profile,
            self.market,
            date(2024, 1, 15),
            normalized=entries,
            tenure_start=date(2021, 1, 1),
        )

        self.assertEqual(analysis.loyalty_tax.window_start, date(2021, 1, 15))
        self.assertEqual(analysis.loyalty_tax_annual, Decimal("6000.00"))

    def test_current_figures_come_from_the_active_entry(self):
        entries = [
            normalized(date(2020, 1, 1), base="80000"),
            normalized(
                date(2022, 1, 1),
                base="120000",
                record_id="compensation:2",
                position_id=2,
                end_date=date(2022, 12, 31),
            ),
        ]

        analysis = analyze(aggregate_timeline(entries), self.profile, None, date(2023, 6, 1), normalized=entries)

        self.assertEqual(analysis.current_total_compensation, Decimal("80000.00"))
        self.assertEqual(analysis.current_effective_hourly_rate, Decimal("40.49"))

    def test_ended_positions_report_the_latest_entry_consistently(self):
        entries = [
            normalized(
                date(2020, 1, 1),
                base="90000",
                overtime=Decimal("20000"),
                overtime_hours_per_year=Decimal("208"),
                end_date=date(2022, 12, 31),
            )
        ]

        analysis = analyze(aggregate_timeline(entries), self.profile, None, date(2023, 6, 1), normalized=entries)

        self.assertEqual(analysis.current_total_compensation, Decimal("110000.00"))
        self.assertEqual(analysis.current_weekly_hours, Decimal("42.00"))
        self.assertIn(InsightCategory.OVERTIME_HEAVY, {insight.category for insight in analysis.insights})

    def test_analysis_is_repeatable(self):
        entries = [normalized(date(2020, 7, 1), base="100000")]
        timeline = aggregate_timeline(entries)
        first = analyze(timeline, self.profile, self.market, date(2023, 7, 1), normalized=entries)
        second = analyze(timeline, self.profile, self.market, date(2023, 7, 1), normalized=entries)
        self.assertEqual(first, second)

    def test_payslips_alone_produce_an_analysis(self):
        weeks = [weekly(super_contributed=Decimal("115")) for _ in range(4)]

        analysis = analyze([], self.profile, None, date(2024, 6, 30), weekly_entries=weeks)

        self.assertTrue(analysis.has_data)
        self.assertEqual(analysis.current_total_compensation, Decimal("57980.00"))
        self.assertEqual(analysis.current_effective_hourly_rate, Decimal("26.32"))
        self.assertIsNone(analysis.income_percentile)
        self.assertIsNone(analysis.loyalty_tax)
        self.assertIsNone(analysis.compensation_summary)

    def test_missing_market_leaves_market_metrics_empty(self):
        entries = [normalized(date(2020, 7, 1), base="100000")]
        analysis = analyze(aggregate_timeline(entries), self.profile, None, date(2023, 7, 1), normalized=entries)
        self.assertTrue(analysis.has_data)
        self.assertIsNone(analysis.income_percentile)
        self.assertIsNone(analysis.loyalty_tax_cumulative)
