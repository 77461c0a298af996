"""
URL routing for the loyalty application API.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from loyalty.views import CustomerLoyaltyViewSet, LoyaltySettingsView, LoyaltyStatsView, TransactionHistoryViewSet

router = DefaultRouter()
router.register(r"customers", CustomerLoyaltyViewSet, basename="loyalty-customers")
router.register(r"transactions", TransactionHistoryViewSet, basename="transactions")  # Read Only

urlpatterns = [
    path("settings/", LoyaltySettingsView.as_view(), name="loyalty-settings"),
    path("stats/", LoyaltyStatsView.as_view(), name="loyalty-stats"),
] + router.urls
