from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .fiscal import financial_year_start_year, super_guarantee_rate


def weighted_overtime_multiplier(hours_time_and_half: Decimal, hours_double_time: Decimal) -> Decimal:
    """Hours weighted multiplier for a payslip mixing 1.5x and 2x overtime bands."""
    total = hours_time_and_half + hours_double_time
    if total <= 0:
        return Decimal("1.5")
    return (hours_time_and_half * Decimal("1.5") + hours_double_time * Decimal("2")) / total


class AustralianState(models.TextChoices):
    NSW = "NSW", "New South Wales"
    VIC = "VIC", "Victoria"
    QLD = "QLD", "Queensland"
    WA = "WA", "Western Australia"
    SA = "SA", "South Australia"
    TAS = "TAS", "Tasmania"
    ACT = "ACT", "Australian Capital Territory"
    NT = "NT", "Northern Territory"


class Qualification(models.TextChoices):
    HIGH_SCHOOL = "HighSchool", "High school"
    CERTIFICATE = "Certificate", "Certificate"
    DIPLOMA = "Diploma", "Diploma"
    BACHELOR = "Bachelor", "Bachelor"
    GRADUATE_CERTIFICATE = "GraduateCertificate", "Graduate certificate"
    GRADUATE_DIPLOMA = "GraduateDiploma", "Graduate diploma"
    MASTERS = "Masters", "Masters"
    PHD = "PhD", "PhD"
    OTHER = "Other", "Other"


class EmploymentType(models.TextChoices):
    PERMANENT = "Permanent", "Permanent"
    CONTRACT = "Contract", "Contract"
    CASUAL = "Casual", "Casual"


class SeniorityLevel(models.TextChoices):
    ENTRY = "Entry", "Entry"
    JUNIOR = "Junior", "Junior"
    MID = "Mid", "Mid"
    SENIOR = "Senior", "Senior"
    LEAD = "Lead", "Lead"
    MANAGER = "Manager", "Manager"
    DIRECTOR = "Director", "Director"
    EXECUTIVE = "Executive", "Executive"


class OvertimeAppetite(models.TextChoices):
    NONE = "None", "None"
    MINIMAL = "Minimal", "Minimal"
    MODERATE = "Moderate", "Moderate"
    HIGH = "High", "High"
    EXTREME = "Extreme", "Extreme"


class PayType(models.TextChoices):
    SALARY = "Salary", "Salary"
    HOURLY = "Hourly", "Hourly"


class OvertimeFrequency(models.TextChoices):
    NONE = "None", "Never"
    OCCASIONAL = "Occasional", "Occasional (1-2 days/month)"
    FREQUENT = "Frequent", "Frequent (1-2 days/week)"
    EXTREME = "Extreme", "Extreme (3+ days/week)"


class AllowanceFrequency(models.TextChoices):
    WEEKLY = "Weekly", "Weekly"
    FORTNIGHTLY = "Fortnightly", "Fortnightly"
    MONTHLY = "Monthly", "Monthly"
    ANNUALLY = "Annually", "Annually"


class PayslipFrequency(models.TextChoices):
    WEEKLY = "Weekly", "Weekly"
    FORTNIGHTLY = "Fortnightly", "Fortnightly"
    MONTHLY = "Monthly", "Monthly"


class CompensationEntryType(models.TextChoices):
    EXACT = "Exact", "Exact (payslip)"
    FUZZY = "Fuzzy", "Fuzzy estimate"


class IncomeSource(models.TextChoices):
    ATO = "ATO", "ATO income statement"
    MANUAL = "Manual", "Manual entry"


class InsightCategory(models.TextChoices):
    UNDERPAID = "Underpaid", "Underpaid"
    FAIRLY_PAID = "FairlyPaid", "Fairly paid"
    OVERPAID = "Overpaid", "Overpaid"
    OVERTIME_HEAVY = "OvertimeHeavy", "Overtime heavy"
    LOYALTY_TAX = "LoyaltyTax", "Loyalty tax"
    MARKET_OPPORTUNITY = "MarketOpportunity", "Market opportunity"
    SKILLS_GAP = "SkillsGap", "Skills gap"


class GrowthBaseline(models.TextChoices):
    INDUSTRY_AVERAGE = "INDUSTRY_AVERAGE", "Industry average growth"
    ROLE_LEVEL = "ROLE_LEVEL", "Role level growth"
    CPI_ADJUSTED = "CPI_ADJUSTED", "CPI adjusted growth"


class LoyaltyWindow(models.TextChoices):
    POSITION_CHANGE = "POSITION_CHANGE", "Since last position change"
    LAST_INCREASE = "LAST_INCREASE", "Since last salary increase"


class Trend(models.TextChoices):
    UP = "trending up", "Trending up"
    DOWN = "trending down", "Trending down"
    STABLE = "stable", "Stable"
    NOT_ENOUGH_DATA = "not enough data", "Not enough data"


class UserProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="career_profile")
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    date_of_birth = models.DateField(blank=True, null=True)
    state = models.CharField(max_length=3, choices=AustralianState.choices, default=AustralianState.NSW)
    industry = models.CharField(max_length=120, blank=True)
    highest_qualification = models.CharField(
        max_length=30,
        choices=Qualification.choices,
        default=Qualification.HIGH_SCHOOL,
    )
    standard_weekly_hours = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("38"))
    overtime_appetite = models.CharField(
        max_length=10,
        choices=OvertimeAppetite.choices,
        default=OvertimeAppetite.NONE,
    )
    loyalty_baseline = models.CharField(
        max_length=20,
        choices=GrowthBaseline.choices,
        default=GrowthBaseline.INDUSTRY_AVERAGE,
    )
    loyalty_window = models.CharField(
        max_length=20,
        choices=LoyaltyWindow.choices,
        default=LoyaltyWindow.POSITION_CHANGE,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Career profile for {self.user}"


class Position(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="positions")
    employer_name = models.CharField(max_length=200)
    job_title = models.CharField(max_length=200)
    employment_type = models.CharField(
        max_length=10,
        choices=EmploymentType.choices,
        default=EmploymentType.PERMANENT,
    )
    seniority_level = models.CharField(max_length=10, choices=SeniorityLevel.choices, default=SeniorityLevel.MID)
    location = models.CharField(max_length=200, blank=True)
    start_date = models.DateField()
    end_date = models.DateField(blank=True, null=True)
    core_responsibilities = models.TextField(blank=True)
    skills = models.JSONField(blank=True, default=list)
    achievements = models.JSONField(blank=True, default=list)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_date", "-created_at"]

    def clean(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValidationError("End date must be on or after the start date.")

    @property
    def is_current(self) -> bool:
        return self.end_date is None or self.end_date >= date.today()

    def __str__(self) -> str:
        return f"{self.job_title} at {self.employer_name}"


class CompensationRecord(models.Model):
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="compensation_records")
    entry_type = models.CharField(
        max_length=10,
        choices=CompensationEntryType.choices,
        default=CompensationEntryType.EXACT,
    )
    pay_type = models.CharField(max_length=10, choices=PayType.choices, default=PayType.SALARY)
    base_rate = models.DecimalField(max_digits=12, decimal_places=2, help_text="Annual salary or hourly rate")
    standard_weekly_hours = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("38"))
    overtime_frequency = models.CharField(
        max_length=12,
        choices=OvertimeFrequency.choices,
        default=OvertimeFrequency.NONE,
    )
    overtime_rate_multiplier = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal("1.5"))
    overtime_hours_per_week = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("0"))
    overtime_annual_hours = models.DecimalField(max_digits=8, decimal_places=2, blank=True, null=True)
    allowances = models.JSONField(blank=True, default=list)
    bonuses = models.JSONField(blank=True, default=list)
    super_contribution_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        blank=True,
        null=True,
        help_text="Employer super rate in percent; blank uses the super guarantee rate of the financial year",
    )
    super_additional_contributions = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    super_salary_sacrifice = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    tax_withheld = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    payslip_frequency = models.CharField(max_length=12, choices=PayslipFrequency.choices, blank=True)
    effective_date = models.DateField()
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-effective_date", "-created_at"]

    def clean(self):
        if self.overtime_annual_hours is not None and self.overtime_annual_hours < 0:
            raise ValidationError("Annual overtime hours cannot be negative.")

    @property
    def effective_super_rate(self) -> Decimal:
        if self.super_contribution_rate is not None:
            return self.super_contribution_rate
        return super_guarantee_rate(financial_year_start_year(self.effective_date))

    def __str__(self) -> str:
        return f"{self.position} - {self.entry_type} from {self.effective_date}"


class YearlyIncomeEntry(models.Model):
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="yearly_summaries")
    financial_year = models.CharField(max_length=9, help_text="Financial year label, e.g. 2024-2025")
    gross_income = models.DecimalField(max_digits=12, decimal_places=2)
    tax_withheld = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    reportable_super = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    reportable_fringe_benefits = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    allowances = models.JSONField(blank=True, default=list)
    source = models.CharField(max_length=10, choices=IncomeSource.choices, default=IncomeSource.ATO)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-financial_year", "-created_at"]

    def clean(self):
        if self.tax_withheld is not None and self.gross_income is not None and self.tax_withheld > self.gross_income:
            raise ValidationError("Tax withheld cannot exceed gross income.")

    def __str__(self) -> str:
        return f"{self.position} - FY {self.financial_year}"


class WeeklyPayslip(models.Model):
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="weekly_payslips")
    week_ending = models.DateField()
    gross_pay = models.DecimalField(max_digits=10, decimal_places=2)
    tax_withheld = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    net_pay = models.DecimalField(max_digits=10, decimal_places=2)
    hours_ordinary = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("38"))
    hours_overtime = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("0"))
    overtime_rate_multiplier = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal("1.5"))
    super_contributed = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    allowances = models.JSONField(blank=True, default=list)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-week_ending", "-created_at"]

    def set_overtime_bands(self, hours_time_and_half: Decimal, hours_double_time: Decimal) -> None:
        self.hours_overtime = hours_time_and_half + hours_double_time
        self.overtime_rate_multiplier = weighted_overtime_multiplier(hours_time_and_half, hours_double_time).quantize(
            Decimal("0.01")
        )

    def __str__(self) -> str:
        return f"{self.position} - week ending {self.week_ending:%d/%m/%Y}"


class MarketBenchmark(models.Model):
    industry = models.CharField(max_length=120)
    seniority_level = models.CharField(max_length=10, choices=SeniorityLevel.choices, blank=True)
    median_income = models.DecimalField(max_digits=12, decimal_places=2)
    percentile_curve = models.JSONField(
        blank=True,
        default=list,
        help_text="List of [percentile, annual income] pairs in ascending order",
    )
    industry_average_growth = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0.06"))
    role_level_growth = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0.07"))
    cpi_adjusted_growth = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0.03"))
    metadata = models.JSONField(blank=True, default=dict)
    fetched_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("industry", "seniority_level")
        ordering = ["industry", "seniority_level"]

    def __str__(self) -> str:
        level = self.seniority_level or "all levels"
        return f"{self.industry} ({level})"
