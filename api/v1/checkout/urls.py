"""
URL configuration for checkout API endpoints.
"""

from django.urls import path

from api.v1.checkout import views

urlpatterns = [
    path("", views.CheckoutView.as_view(), name="checkout"),
    path("/verify", views.VerifyCheckoutView.as_view(), name="checkout-verify"),
]
