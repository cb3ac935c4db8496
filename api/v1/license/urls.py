"""
URL configuration for license API endpoints.
"""

from django.urls import path

from api.v1.license import views

urlpatterns = [
    path("trial/init", views.TrialInitView.as_view(), name="trial-init"),
    path("validate", views.ValidateLicenseView.as_view(), name="validate-license"),
    path("activate", views.ActivateLicenseView.as_view(), name="activate-license"),
    path("deactivate", views.DeactivateLicenseView.as_view(), name="deactivate-license"),
    path("heartbeat", views.HeartbeatView.as_view(), name="license-heartbeat"),
    path("check", views.LicenseCheckView.as_view(), name="license-check"),
]
