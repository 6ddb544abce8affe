# giving_network/urls.py
from django.urls import include, path

urlpatterns = [
    path('', include('donations.urls')),
]
