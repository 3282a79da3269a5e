"""
URL configuration for billing app.
"""
from django.urls import path
from . import views

urlpatterns = [
    path('websites/<int:website_id>/manage/', views.manage_subscription, name='billing-manage'),
    path('websites/<int:website_id>/upgrade/', views.upgrade, name='billing-upgrade'),
    path('websites/<int:website_id>/events/', views.billing_events, name='billing-events'),
    path('portal/', views.create_portal_session, name='billing-portal'),
    path('checkout/', views.create_checkout_session, name='billing-checkout'),
    path('webhook/', views.stripe_webhook, name='stripe-webhook'),
]
