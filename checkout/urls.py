"""
URL routing for the checkout application API.
"""

from django.urls import path

from checkout.views import FinalizeCheckoutView

urlpatterns = [
    path("finalize/", FinalizeCheckoutView.as_view(), name="checkout-finalize"),
]
