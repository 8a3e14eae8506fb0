"""
Order API URLs for the settlement ledger
"""

from django.urls import path

from . import views

urlpatterns = [
    path("", views.place_order, name="place_order"),
    path("<uuid:order_id>/", views.order_detail, name="order_detail"),
    path("<uuid:order_id>/status/", views.update_order_status, name="update_order_status"),
    path("<uuid:order_id>/payment-status/", views.update_payment_status, name="update_payment_status"),
]
