"""
URL configuration for customer portal endpoints.
"""

from django.urls import path

from api.v1.portal import views

urlpatterns = [
    path("status", views.PortalStatusView.as_view(), name="portal-status"),
    path("license", views.PortalLicenseView.as_view(), name="portal-license"),
    path("devices", views.DevicesView.as_view(), name="portal-devices"),
    path("billing", views.BillingView.as_view(), name="portal-billing"),
    path("invoices", views.InvoicesView.as_view(), name="portal-invoices"),
    path("stripe-session", views.StripeSessionView.as_view(), name="portal-stripe-session"),
    path("team", views.TeamView.as_view(), name="portal-team"),
    path("invite/<str:token>", views.InviteView.as_view(), name="portal-invite"),
    path("seats", views.SeatsView.as_view(), name="portal-seats"),
    path("settings", views.SettingsView.as_view(), name="portal-settings"),
    path("settings/export", views.ExportDataView.as_view(), name="portal-settings-export"),
    path(
        "settings/delete-account",
        views.DeleteAccountView.as_view(),
        name="portal-settings-delete-account",
    ),
    path(
        "settings/leave-organization",
        views.LeaveOrganizationView.as_view(),
        name="portal-settings-leave-organization",
    ),
]
