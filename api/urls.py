# api/urls.py

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import views

app_name = 'api'

urlpatterns = [
    # JWT
    path('token/', views.CustomTokenObtainPairView.as_view(), name='token-obtain'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),

    # Blood needs
    path('blood-needs/', views.blood_needs, name='blood-needs'),
    path('blood-needs/mine/', views.my_blood_needs, name='my-blood-needs'),
    path('blood-needs/<int:pk>/', views.blood_need_detail, name='blood-need-detail'),

    # Appointments
    path('appointments/', views.appointments, name='appointments'),
    path('appointments/<int:pk>/', views.appointment_detail, name='appointment-detail'),
    path('appointments/<int:pk>/status/', views.appointment_status, name='appointment-status'),

    # Donations
    path('donations/', views.donations, name='donations'),

    # Inventory
    path('inventory/', views.inventory, name='inventory'),
    path('inventory/adjust/', views.inventory_adjust, name='inventory-adjust'),

    # Profiles
    path('donors/profile/', views.donor_profile, name='donor-profile'),
    path('donors/search/', views.donor_search, name='donor-search'),
    path('hospitals/profile/', views.hospital_profile, name='hospital-profile'),
]

# Available endpoints:
# POST   /api/token/                        - Obtain JWT pair (access token carries user_type)
# POST   /api/token/refresh/                - Refresh access token
#
# GET    /api/blood-needs/                  - Active needs (?blood_type=&max_distance_km=)
# POST   /api/blood-needs/                  - Post a need (hospital admin)
# GET    /api/blood-needs/mine/             - Needs of the acting hospital
# GET    /api/blood-needs/{id}/             - One need
# PATCH  /api/blood-needs/{id}/             - Update own need
# DELETE /api/blood-needs/{id}/             - Delete own need
#
# GET    /api/appointments/                 - Own / hospital appointments
# POST   /api/appointments/                 - Book (donor)
# PUT    /api/appointments/{id}/status/     - Change status
# DELETE /api/appointments/{id}/            - Delete
#
# GET    /api/donations/                    - Own / hospital donations
# POST   /api/donations/                    - Record donation (hospital admin)
#
# GET    /api/inventory/                    - Stock levels
# POST   /api/inventory/adjust/             - Add or remove units
#
# GET    /api/donors/profile/               - Own donor profile
# PATCH  /api/donors/profile/               - Update own donor profile
# GET    /api/donors/search/?q=             - Find donors by name, email or phone (hospital admin)
# GET    /api/hospitals/profile/            - Own hospital profile
# PATCH  /api/hospitals/profile/            - Update own hospital profile
