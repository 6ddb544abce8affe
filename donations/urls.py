# donations/urls.py

from django.urls import path
from . import views

urlpatterns = [
    # --- Donor ---
    path('api/donations/', views.create_donation, name='create_donation'),
    path('api/donations/mine/', views.donor_donations, name='donor_donations'),
    path('api/donations/<int:donation_id>/cancel/', views.cancel_donation, name='cancel_donation'),
    path('api/donations/suggest-priority/', views.priority_suggestion, name='priority_suggestion'),

    # --- NGO ---
    path('api/ngo/pending/', views.ngo_pending_donations, name='ngo_pending_donations'),
    path('api/ngo/capacity/', views.ngo_capacity, name='ngo_capacity'),
    path('api/ngo/load/', views.district_load, name='district_load'),
    path('api/ngo/donations/<int:donation_id>/approve/', views.approve_donation, name='approve_donation'),
    path('api/ngo/donations/<int:donation_id>/reject/', views.reject_donation, name='reject_donation'),
    path('api/ngo/donations/<int:donation_id>/complete/', views.complete_donation, name='complete_donation'),
    path('api/ngo/donations/<int:donation_id>/suggestions/', views.distribution_suggestions, name='distribution_suggestions'),

    # --- Volunteer ---
    path('api/volunteer/available/', views.available_donations, name='available_donations'),
    path('api/volunteer/pickups/', views.volunteer_pickups, name='volunteer_pickups'),
    path('api/volunteer/donations/<int:donation_id>/accept/', views.accept_donation, name='accept_donation'),
    path('api/volunteer/donations/<int:donation_id>/collected/', views.mark_as_collected, name='mark_as_collected'),
    path('api/volunteer/donations/<int:donation_id>/in-transit/', views.mark_in_transit, name='mark_in_transit'),
    path('api/volunteer/donations/<int:donation_id>/delivered/', views.mark_as_delivered, name='mark_as_delivered'),
    path('api/volunteer/donations/<int:donation_id>/distance/', views.donation_distance, name='donation_distance'),

    # --- Trust score ---
    path('api/trust/me/', views.my_trust_score, name='my_trust_score'),
    path('api/trust/volunteers/<int:volunteer_id>/', views.volunteer_trust_score, name='volunteer_trust_score'),
    path('api/trust/leaderboard/', views.trust_leaderboard, name='trust_leaderboard'),

    # --- Admin ---
    path('api/admin/stuck-assignments/', views.stuck_assignments, name='stuck_assignments'),
    path('api/admin/reconciler/run/', views.run_reconciler, name='run_reconciler'),
    path('api/admin/trust/initialize/', views.initialize_trust_scores, name='initialize_trust_scores'),
    path('api/admin/coverage/<str:district>/', views.district_coverage, name='district_coverage'),
]
