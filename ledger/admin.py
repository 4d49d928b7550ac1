from django.contrib import admin

from .models import CompensationRecord, MarketBenchmark, Position, UserProfile, WeeklyPayslip, YearlyIncomeEntry


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "industry", "state", "standard_weekly_hours")
    list_filter = ("state",)
    search_fields = ("user__username", "industry")


@admin.register(Position)
class PositionAdmin(admin.ModelAdmin):
    list_display = ("job_title", "employer_name", "seniority_level", "start_date", "end_date", "user")
    list_filter = ("seniority_level", "employment_type")
    search_fields = ("employer_name", "job_title")


@admin.register(CompensationRecord)
class CompensationRecordAdmin(admin.ModelAdmin):
    list_display = ("position", "entry_type", "pay_type", "base_rate", "effective_date")
    list_filter = ("entry_type", "pay_type")
    search_fields = ("position__employer_name", "notes")


@admin.register(YearlyIncomeEntry)
class YearlyIncomeEntryAdmin(admin.ModelAdmin):
    list_display = ("position", "financial_year", "gross_income", "tax_withheld", "source")
    list_filter = ("source",)
    ordering = ("-financial_year",)


@admin.register(WeeklyPayslip)
class WeeklyPayslipAdmin(admin.ModelAdmin):
    list_display = ("position", "week_ending", "gross_pay", "net_pay", "hours_ordinary", "hours_overtime")
    search_fields = ("position__employer_name",)
    ordering = ("-week_ending",)


@admin.register(MarketBenchmark)
class MarketBenchmarkAdmin(admin.ModelAdmin):
    list_display = ("industry", "seniority_level", "median_income", "fetched_at")
    list_filter = ("seniority_level",)
    search_fields = ("industry",)
