from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

SENIORITY_CHOICES = [
    ("Entry", "Entry"),
    ("Junior", "Junior"),
    ("Mid", "Mid"),
    ("Senior", "Senior"),
    ("Lead", "Lead"),
    ("Manager", "Manager"),
    ("Director", "Director"),
    ("Executive", "Executive"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="MarketBenchmark",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("industry", models.CharField(max_length=120)),
                ("seniority_level", models.CharField(blank=True, choices=SENIORITY_CHOICES, max_length=10)),
                ("median_income", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "percentile_curve",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="List of [percentile, annual income] pairs in ascending order",
                    ),
                ),
                ("industry_average_growth", models.DecimalField(decimal_places=4, default=Decimal("0.06"), max_digits=6)),
                ("role_level_growth", models.DecimalField(decimal_places=4, default=Decimal("0.07"), max_digits=6)),
                ("cpi_adjusted_growth", models.DecimalField(decimal_places=4, default=Decimal("0.03"), max_digits=6)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("fetched_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["industry", "seniority_level"],
                "unique_together": {("industry", "seniority_level")},
            },
        ),
        migrations.CreateModel(
            name="Position",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("employer_name", models.CharField(max_length=200)),
                ("job_title", models.CharField(max_length=200)),
                (
                    "employment_type",
                    models.CharField(
                        choices=[("Permanent", "Permanent"), ("Contract", "Contract"), ("Casual", "Casual")],
                        default="Permanent",
                        max_length=10,
                    ),
                ),
                ("seniority_level", models.CharField(choices=SENIORITY_CHOICES, default="Mid", max_length=10)),
                ("location", models.CharField(blank=True, max_length=200)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(blank=True, null=True)),
                ("core_responsibilities", models.TextField(blank=True)),
                ("skills", models.JSONField(blank=True, default=list)),
                ("achievements", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="positions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-start_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CompensationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[("Exact", "Exact (payslip)"), ("Fuzzy", "Fuzzy estimate")],
                        default="Exact",
                        max_length=10,
                    ),
                ),
                (
                    "pay_type",
                    models.CharField(choices=[("Salary", "Salary"), ("Hourly", "Hourly")], default="Salary", max_length=10),
                ),
                (
                    "base_rate",
                    models.DecimalField(decimal_places=2, help_text="Annual salary or hourly rate", max_digits=12),
                ),
                ("standard_weekly_hours", models.DecimalField(decimal_places=2, default=Decimal("38"), max_digits=5)),
                (
                    "overtime_frequency",
                    models.CharField(
                        choices=[
                            ("None", "Never"),
                            ("Occasional", "Occasional (1-2 days/month)"),
                            ("Frequent", "Frequent (1-2 days/week)"),
                            ("Extreme", "Extreme (3+ days/week)"),
                        ],
                        default="None",
                        max_length=12,
                    ),
                ),
                ("overtime_rate_multiplier", models.DecimalField(decimal_places=2, default=Decimal("1.5"), max_digits=4)),
                ("overtime_hours_per_week", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=6)),
                ("overtime_annual_hours", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("allowances", models.JSONField(blank=True, default=list)),
                ("bonuses", models.JSONField(blank=True, default=list)),
                (
                    "super_contribution_rate",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Employer super rate in percent; blank uses the super guarantee rate of the financial year",
                        max_digits=5,
                        null=True,
                    ),
                ),
                ("super_additional_contributions", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("super_salary_sacrifice", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("tax_withheld", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "payslip_frequency",
                    models.CharField(
                        blank=True,
                        choices=[("Weekly", "Weekly"), ("Fortnightly", "Fortnightly"), ("Monthly", "Monthly")],
                        max_length=12,
                    ),
                ),
                ("effective_date", models.DateField()),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="compensation_records",
                        to="ledger.position",
                    ),
                ),
            ],
            options={
                "ordering": ["-effective_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(blank=True, max_length=100)),
                ("last_name", models.CharField(blank=True, max_length=100)),
                ("date_of_birth", models.DateField(blank=True, null=True)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("NSW", "New South Wales"),
                            ("VIC", "Victoria"),
                            ("QLD", "Queensland"),
                            ("WA", "Western Australia"),
                            ("SA", "South Australia"),
                            ("TAS", "Tasmania"),
                            ("ACT", "Australian Capital Territory"),
                            ("NT", "Northern Territory"),
                        ],
                        default="NSW",
                        max_length=3,
                    ),
                ),
                ("industry", models.CharField(blank=True, max_length=120)),
                (
                    "highest_qualification",
                    models.CharField(
                        choices=[
                            ("HighSchool", "High school"),
                            ("Certificate", "Certificate"),
                            ("Diploma", "Diploma"),
                            ("Bachelor", "Bachelor"),
                            ("GraduateCertificate", "Graduate certificate"),
                            ("GraduateDiploma", "Graduate diploma"),
                            ("Masters", "Masters"),
                            ("PhD", "PhD"),
                            ("Other", "Other"),
                        ],
                        default="HighSchool",
                        max_length=30,
                    ),
                ),
                ("standard_weekly_hours", models.DecimalField(decimal_places=2, default=Decimal("38"), max_digits=5)),
                (
                    "overtime_appetite",
                    models.CharField(
                        choices=[
                            ("None", "None"),
                            ("Minimal", "Minimal"),
                            ("Moderate", "Moderate"),
                            ("High", "High"),
                            ("Extreme", "Extreme"),
                        ],
                        default="None",
                        max_length=10,
                    ),
                ),
                (
                    "loyalty_baseline",
                    models.CharField(
                        choices=[
                            ("INDUSTRY_AVERAGE", "Industry average growth"),
                            ("ROLE_LEVEL", "Role level growth"),
                            ("CPI_ADJUSTED", "CPI adjusted growth"),
                        ],
                        default="INDUSTRY_AVERAGE",
                        max_length=20,
                    ),
                ),
                (
                    "loyalty_window",
                    models.CharField(
                        choices=[
                            ("POSITION_CHANGE", "Since last position change"),
                            ("LAST_INCREASE", "Since last salary increase"),
                        ],
                        default="POSITION_CHANGE",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="career_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="WeeklyPayslip",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("week_ending", models.DateField()),
                ("gross_pay", models.DecimalField(decimal_places=2, max_digits=10)),
                ("tax_withheld", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("net_pay", models.DecimalField(decimal_places=2, max_digits=10)),
                ("hours_ordinary", models.DecimalField(decimal_places=2, default=Decimal("38"), max_digits=6)),
                ("hours_overtime", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=6)),
                ("overtime_rate_multiplier", models.DecimalField(decimal_places=2, default=Decimal("1.5"), max_digits=4)),
                ("super_contributed", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("allowances", models.JSONField(blank=True, default=list)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="weekly_payslips",
                        to="ledger.position",
                    ),
                ),
            ],
            options={
                "ordering": ["-week_ending", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="YearlyIncomeEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "financial_year",
                    models.CharField(help_text="Financial year label, e.g. 2024-2025", max_length=9),
                ),
                ("gross_income", models.DecimalField(decimal_places=2, max_digits=12)),
                ("tax_withheld", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("reportable_super", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("reportable_fringe_benefits", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("allowances", models.JSONField(blank=True, default=list)),
                (
                    "source",
                    models.CharField(
                        choices=[("ATO", "ATO income statement"), ("Manual", "Manual entry")],
                        default="ATO",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="yearly_summaries",
                        to="ledger.position",
                    ),
                ),
            ],
            options={
                "ordering": ["-financial_year", "-created_at"],
            },
        ),
    ]
