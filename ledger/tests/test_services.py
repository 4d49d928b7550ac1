from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings

from ledger.models import (
    CompensationRecord,
    GrowthBaseline,
    MarketBenchmark,
    OvertimeFrequency,
    Position,
    SeniorityLevel,
    UserProfile,
    WeeklyPayslip,
    YearlyIncomeEntry,
)
from ledger.normalization import overtime_annual, overtime_annual_hourly_derived
from ledger.records import CompensationEntry, PositionRecord, ProfileRecord, YearlySummaryEntry
from ledger.repository import DjangoLedgerRepository, InMemoryLedgerRepository
from ledger.services import (
    analysis_payload,
    build_analysis,
    loyalty_breakdown_for,
    overtime_calculator_from_settings,
    prepare_ledger,
    reality_check_for,
    to_payload,
    weekly_projection_for,
)

User = get_user_model()


class LedgerServiceTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="ledger", password="pass12345")
        UserProfile.objects.create(user=self.user, industry="Finance")
        self.position = Position.objects.create(
            user=self.user,
            employer_name="Acme",
            job_title="Analyst",
            seniority_level=SeniorityLevel.MID,
            start_date=date(2020, 7, 1),
        )
        CompensationRecord.objects.create(
            position=self.position,
            base_rate=Decimal("100000"),
            super_contribution_rate=Decimal("11.5"),
            effective_date=date(2020, 7, 1),
        )
        self.repository = DjangoLedgerRepository(self.user)


class DjangoRepositoryTests(LedgerServiceTestCase):
    def test_reads_profile_positions_and_entries(self):
        profile = self.repository.profile()
        self.assertEqual(profile.industry, "Finance")
        self.assertEqual(profile.loyalty_baseline, GrowthBaseline.INDUSTRY_AVERAGE)

        positions = self.repository.positions()
        self.assertEqual([position.employer_name for position in positions], ["Acme"])

        entries = self.repository.compensation_entries()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].record_id, f"compensation:{CompensationRecord.objects.get().id}")
        self.assertEqual(entries[0].base_rate, Decimal("100000"))

    def test_blank_super_rate_uses_the_guarantee_rate(self):
        CompensationRecord.objects.create(
            position=self.position,
            base_rate=Decimal("100000"),
            effective_date=date(2024, 8, 1),
        )
        entries = self.repository.compensation_entries()
        self.assertEqual(entries[-1].super_contributions.contribution_rate, Decimal("11.5"))

    def test_mixed_overtime_bands_are_weighted(self):
        payslip = WeeklyPayslip(
            position=self.position,
            week_ending=date(2024, 3, 1),
            gross_pay=Decimal("2500"),
            net_pay=Decimal("1900"),
        )
        payslip.set_overtime_bands(Decimal("2"), Decimal("2"))
        payslip.save()

        week = self.repository.weekly_entries()[0]
        self.assertEqual(week.hours_overtime, Decimal("4"))
        self.assertEqual(week.overtime_rate_multiplier, Decimal("1.75"))

    def test_missing_profile_uses_defaults(self):
        other = User.objects.create_user(username="blank", password="pass12345")
        self.assertEqual(DjangoLedgerRepository(other).profile(), ProfileRecord())

    def test_malformed_allowances_are_rejected(self):
        CompensationRecord.objects.create(
            position=self.position,
            base_rate=Decimal("105000"),
            allowances=[{"name": "Car"}],
            effective_date=date(2021, 7, 1),
        )

        with self.assertLogs("ledger.repository", level="WARNING"):
            entries = self.repository.compensation_entries()

        self.assertEqual(len(entries), 1)
        self.assertEqual(len(self.repository.rejections), 1)
        self.assertEqual(self.repository.rejections[0].field, "allowances[0]")
        self.assertEqual(self.repository.rejections[0].error, "InvalidInput")

    def test_weekly_entries_are_newest_first(self):
        for week_ending in (date(2024, 3, 1), date(2024, 3, 15), date(2024, 3, 8)):
            WeeklyPayslip.objects.create(
                position=self.position,
                week_ending=week_ending,
                gross_pay=Decimal("2000"),
                net_pay=Decimal("1500"),
            )
        weeks = self.repository.weekly_entries()
        self.assertEqual([week.week_ending.day for week in weeks], [15, 8, 1])

    def test_records_are_scoped_to_the_user(self):
        other = User.objects.create_user(username="other", password="pass12345")
        position = Position.objects.create(user=other, employer_name="Elsewhere", job_title="Clerk", start_date=date(2019, 1, 1))
        CompensationRecord.objects.create(position=position, base_rate=Decimal("50000"), effective_date=date(2019, 1, 1))

        self.assertEqual(len(self.repository.positions()), 1)
        self.assertEqual(len(self.repository.compensation_entries()), 1)
        self.assertEqual(len(DjangoLedgerRepository(other).compensation_entries()), 1)

    def test_stored_benchmark_wins_over_defaults(self):
        MarketBenchmark.objects.create(
            industry="finance",
            seniority_level=SeniorityLevel.MID,
            median_income=Decimal("120000"),
            percentile_curve=[[50, 120000], [90, 180000]],
            role_level_growth=Decimal("0.065"),
        )

        market = self.repository.market_reference("Finance", SeniorityLevel.MID)

        self.assertFalse(market.is_default)
        self.assertEqual(market.median_income, Decimal("120000"))
        self.assertEqual(market.percentile_curve[-1], (Decimal("90"), Decimal("180000")))
        self.assertEqual(market.role_level_growth, Decimal("0.065"))

    def test_industry_wide_benchmark_uses_role_level_defaults(self):
        MarketBenchmark.objects.create(industry="Finance", median_income=Decimal("95000"))

        market = self.repository.market_reference("Finance", SeniorityLevel.SENIOR)

        self.assertEqual(market.median_income, Decimal("95000"))
        self.assertEqual(market.role_level_growth, Decimal("0.07"))
        self.assertEqual(len(market.percentile_curve), 5)

    def test_without_benchmarks_the_builtin_reference_is_used(self):
        market = self.repository.market_reference("Mining", SeniorityLevel.MID)
        self.assertTrue(market.is_default)
        self.assertEqual(market.median_income, Decimal("125000"))


class BuildAnalysisTests(LedgerServiceTestCase):
    def test_analysis_from_stored_records(self):
        analysis = build_analysis(self.repository, date(2023, 7, 1))

        self.assertTrue(analysis.has_data)
        self.assertEqual(analysis.current_total_compensation, Decimal("111500.00"))
        self.assertEqual(analysis.loyalty_tax_annual, Decimal("6000.00"))
        self.assertEqual(analysis.rejections, ())

    def test_invalid_records_are_reported_not_fatal(self):
        CompensationRecord.objects.create(position=self.position, base_rate=Decimal("0"), effective_date=date(2022, 7, 1))
        CompensationRecord.objects.create(
            position=self.position,
            base_rate=Decimal("110000"),
            allowances=["not an object"],
            effective_date=date(2022, 8, 1),
        )

        with self.assertLogs("ledger", level="WARNING"):
            analysis = build_analysis(self.repository, date(2023, 7, 1))

        self.assertTrue(analysis.has_data)
        self.assertEqual(analysis.current_total_compensation, Decimal("111500.00"))
        self.assertEqual({rejection.field for rejection in analysis.rejections}, {"base_rate", "allowances[0]"})

    def test_user_without_records_has_no_data(self):
        other = User.objects.create_user(username="empty", password="pass12345")
        analysis = build_analysis(DjangoLedgerRepository(other), date(2023, 7, 1))
        self.assertFalse(analysis.has_data)

    def test_payload_uses_camel_case(self):
        payload = analysis_payload(build_analysis(self.repository, date(2023, 7, 1)))
        self.assertTrue(payload["hasData"])
        self.assertEqual(payload["currentTotalCompensation"], 111500.0)
        self.assertEqual(payload["earningsOverTime"][0]["date"], "2020-07-01")
        self.assertIn("superTrajectory", payload)


class WeeklyAndRealityServiceTests(LedgerServiceTestCase):
    def setUp(self):
        super().setUp()
        for day in (1, 8, 15, 22):
            WeeklyPayslip.objects.create(
                position=self.position,
                week_ending=date(2023, 6, day),
                gross_pay=Decimal("2000"),
                tax_withheld=Decimal("500"),
                net_pay=Decimal("1500"),
                hours_ordinary=Decimal("38"),
                hours_overtime=Decimal("2"),
            )

    def test_weekly_projection(self):
        projection = weekly_projection_for(self.repository)
        self.assertEqual(projection.entry_count, 4)
        self.assertEqual(projection.projected_annual_gross, Decimal("104000.00"))
        self.assertEqual(projection.real_hourly_rate, Decimal("50.00"))

    def test_weekly_projection_for_unknown_position(self):
        self.assertIsNone(weekly_projection_for(self.repository, position_id=self.position.id + 100))

    def test_reality_check_with_explicit_hours(self):
        check = reality_check_for(self.repository, date(2023, 7, 1), Decimal("50"))

        self.assertEqual(check.real_hourly_rate, Decimal("38.46"))
        self.assertEqual(check.overtime_hours_per_week, Decimal("12"))
        self.assertTrue(check.overtime_concern)
        self.assertTrue(check.market_concern)
        self.assertTrue(check.loyalty_concern)

    def test_reality_check_defaults_to_payslip_hours(self):
        check = reality_check_for(self.repository, date(2023, 7, 1))
        self.assertEqual(check.overtime_hours_per_week, Decimal("2.00"))
        self.assertFalse(check.overtime_concern)


class LoyaltyBreakdownTests(LedgerServiceTestCase):
    def test_breakdown_includes_tenure_blocks(self):
        payload = loyalty_breakdown_for(self.repository, date(2023, 7, 1))

        self.assertEqual(payload["loyaltyTax"]["annual"], 6000.0)
        self.assertIsNone(payload["reason"])
        self.assertEqual(len(payload["tenureBlocks"]), 1)
        self.assertEqual(payload["tenureBlocks"][0]["employerName"], "Acme")

    def test_short_history_reports_reason(self):
        payload = loyalty_breakdown_for(self.repository, date(2021, 1, 1))
        self.assertIsNone(payload["loyaltyTax"])
        self.assertEqual(payload["reason"], "Comparison window is shorter than a year.")
        self.assertEqual(payload["tenureBlocks"], [])


class PrepareLedgerTests(SimpleTestCase):
    def test_compensation_entry_supersedes_summary_on_the_same_date(self):
        repository = InMemoryLedgerRepository(
            positions=[PositionRecord(position_id=1, employer_name="Acme", job_title="Analyst", start_date=date(2020, 1, 1))],
            yearly_summaries=[
                YearlySummaryEntry(record_id="yearly:1", position_id=1, financial_year="2023-2024", gross_income=Decimal("90000"))
            ],
            compensation_entries=[
                CompensationEntry(
                    record_id="compensation:1",
                    position_id=1,
                    effective_date=date(2023, 7, 1),
                    base_rate=Decimal("95000"),
                )
            ],
        )

        ledger = prepare_ledger(repository, overtime_annual)

        self.assertEqual(len(ledger.normalized), 2)
        self.assertEqual(len(ledger.timeline), 1)
        self.assertEqual(ledger.timeline[0].base_annual, Decimal("95000.00"))

    def test_entries_end_with_their_position(self):
        repository = InMemoryLedgerRepository(
            positions=[
                PositionRecord(
                    position_id=1,
                    employer_name="Acme",
                    job_title="Analyst",
                    start_date=date(2020, 1, 1),
                    end_date=date(2021, 12, 31),
                )
            ],
            compensation_entries=[
                CompensationEntry(
                    record_id="compensation:1",
                    position_id=1,
                    effective_date=date(2020, 1, 1),
                    base_rate=Decimal("80000"),
                )
            ],
        )
        ledger = prepare_ledger(repository, overtime_annual)
        self.assertEqual(ledger.normalized[0].end_date, date(2021, 12, 31))

    def test_inconsistent_position_is_rejected(self):
        repository = InMemoryLedgerRepository(
            positions=[
                PositionRecord(
                    position_id=1,
                    employer_name="Acme",
                    job_title="Analyst",
                    start_date=date(2022, 1, 1),
                    end_date=date(2021, 1, 1),
                )
            ]
        )

        with self.assertLogs("ledger.services", level="WARNING"):
            ledger = prepare_ledger(repository, overtime_annual)

        self.assertEqual(ledger.positions, [])
        self.assertEqual(ledger.rejections[0].field, "end_date")
        self.assertEqual(ledger.rejections[0].error, "InconsistentData")

    def test_in_memory_repository_without_default_market(self):
        repository = InMemoryLedgerRepository(profile=ProfileRecord(industry="Mining"), use_default_market=False)
        self.assertIsNone(repository.market_reference("Mining", ""))


class OvertimeFormulaSettingTests(SimpleTestCase):
    @override_settings(CAREERFLOW_OVERTIME_FORMULA="hourly-derived")
    def test_hourly_derived_formula(self):
        self.assertIs(overtime_calculator_from_settings(), overtime_annual_hourly_derived)

    @override_settings(CAREERFLOW_OVERTIME_FORMULA="made-up")
    def test_unknown_formula_falls_back(self):
        with self.assertLogs("ledger.services", level="WARNING"):
            self.assertIs(overtime_calculator_from_settings(), overtime_annual)


class PayloadTests(SimpleTestCase):
    def test_nested_records_become_plain_data(self):
        payload = to_payload(
            {
                "position": PositionRecord(
                    position_id=1,
                    employer_name="Acme",
                    job_title="Analyst",
                    start_date=date(2020, 1, 1),
                    skills=("sql",),
                ),
                "amount": Decimal("1.50"),
            }
        )
        self.assertEqual(payload["position"]["employerName"], "Acme")
        self.assertEqual(payload["position"]["startDate"], "2020-01-01")
        self.assertEqual(payload["position"]["skills"], ["sql"])
        self.assertEqual(payload["position"]["seniorityLevel"], "Mid")
        self.assertEqual(payload["amount"], 1.5)
