from django.urls import path

from .views import EarningsAnalysisApiView, LoyaltyTaxApiView, RealityCheckApiView, WeeklyProjectionApiView

urlpatterns = [
    path("analysis/", EarningsAnalysisApiView.as_view(), name="earnings-analysis-api"),
    path("weekly-projection/", WeeklyProjectionApiView.as_view(), name="weekly-projection-api"),
    path("reality-check/", RealityCheckApiView.as_view(), name="reality-check-api"),
    path("loyalty-tax/", LoyaltyTaxApiView.as_view(), name="loyalty-tax-api"),
]
