# api/views.py

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from accounts.decorators import CustomTokenObtainPairSerializer, role_required
from accounts.models import CustomUser
from bloodbridge.exceptions import Forbidden
from donations import utils as donation_utils
from donors import utils as donor_utils
from hospitals import utils as need_utils
from hospitals.inventory import adjust_stock, list_inventory
from .serializers import (
    ActiveNeedsQuerySerializer,
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AppointmentStatusSerializer,
    BloodNeedCreateSerializer,
    BloodNeedSerializer,
    BloodNeedUpdateSerializer,
    DonationCreateSerializer,
    DonationSerializer,
    DonorProfileSerializer,
    DonorProfileUpdateSerializer,
    DonorSearchResultSerializer,
    HospitalProfileSerializer,
    HospitalProfileUpdateSerializer,
    InventoryAdjustSerializer,
    InventoryEntrySerializer,
)


DONOR = CustomUser.DONOR
HOSPITAL_ADMIN = CustomUser.HOSPITAL_ADMIN
SUPER_ADMIN = CustomUser.SUPER_ADMIN


class CustomTokenObtainPairView(TokenObtainPairView):
    """JWT login; the access token carries the user's role"""
    serializer_class = CustomTokenObtainPairSerializer


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# ============================================
# BLOOD NEEDS
# ============================================

@api_view(['GET', 'POST'])
@role_required(DONOR, HOSPITAL_ADMIN, SUPER_ADMIN)
def blood_needs(request):
    """
    GET  - active needs (donors get distances and may pass max_distance_km)
    POST - hospital admin posts a new need
    """
    if request.method == 'POST':
        data = _validated(BloodNeedCreateSerializer, request.data)
        need = need_utils.create_need(request.user, **data)
        need.distance_km = None
        return Response(BloodNeedSerializer(need).data, status=status.HTTP_201_CREATED)

    params = _validated(ActiveNeedsQuerySerializer, request.query_params)
    needs = need_utils.list_active_needs(request.user, **params)
    return Response(BloodNeedSerializer(needs, many=True).data)


@api_view(['GET'])
@role_required(HOSPITAL_ADMIN)
def my_blood_needs(request):
    needs = need_utils.list_hospital_needs(request.user)
    return Response(BloodNeedSerializer(needs, many=True).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@role_required(DONOR, HOSPITAL_ADMIN, SUPER_ADMIN)
def blood_need_detail(request, pk):
    if request.method == 'GET':
        need = need_utils.get_need(request.user, pk)
        return Response(BloodNeedSerializer(need).data)

    if request.method == 'DELETE':
        need_utils.delete_need(request.user, pk)
        return Response({'message': 'Blood need deleted.'})

    # PUT and PATCH are both partial: only supplied fields change
    data = _validated(BloodNeedUpdateSerializer, request.data)
    need = need_utils.update_need(request.user, pk, **data)
    need.distance_km = None
    return Response(BloodNeedSerializer(need).data)


# ============================================
# APPOINTMENTS
# ============================================

@api_view(['GET', 'POST'])
@role_required(DONOR, HOSPITAL_ADMIN)
def appointments(request):
    if request.method == 'POST':
        data = _validated(AppointmentCreateSerializer, request.data)
        appointment = donation_utils.book_appointment(request.user, **data)
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)

    rows = donation_utils.list_appointments(request.user)
    return Response(AppointmentSerializer(rows, many=True).data)


@api_view(['PUT', 'PATCH'])
@role_required(DONOR, HOSPITAL_ADMIN, SUPER_ADMIN)
def appointment_status(request, pk):
    data = _validated(AppointmentStatusSerializer, request.data)
    appointment = donation_utils.transition_appointment(request.user, pk, data['status'])
    return Response(AppointmentSerializer(appointment).data)


@api_view(['DELETE'])
@role_required(DONOR, HOSPITAL_ADMIN, SUPER_ADMIN)
def appointment_detail(request, pk):
    donation_utils.delete_appointment(request.user, pk)
    return Response({'message': 'Appointment deleted.'})


# ============================================
# DONATIONS
# ============================================

@api_view(['GET', 'POST'])
@role_required(DONOR, HOSPITAL_ADMIN)
def donations(request):
    if request.method == 'POST':
        if not request.user.is_hospital_admin:
            # Donors may only read their history
            raise Forbidden("Only hospital admins can record donations.")
        data = _validated(DonationCreateSerializer, request.data)
        donation = donation_utils.record_donation(request.user, **data)
        return Response(DonationSerializer(donation).data, status=status.HTTP_201_CREATED)

    rows = donation_utils.list_donations(request.user)
    return Response(DonationSerializer(rows, many=True).data)


# ============================================
# INVENTORY
# ============================================

@api_view(['GET'])
@role_required(HOSPITAL_ADMIN)
def inventory(request):
    hospital = need_utils.get_acting_hospital(request.user)
    return Response(InventoryEntrySerializer(list_inventory(hospital), many=True).data)


@api_view(['POST'])
@role_required(HOSPITAL_ADMIN)
def inventory_adjust(request):
    data = _validated(InventoryAdjustSerializer, request.data)
    hospital = need_utils.get_acting_hospital(request.user)
    new_stock = adjust_stock(hospital, data['blood_type'], data['delta'])
    return Response({'blood_type': data['blood_type'], 'new_stock': new_stock})


# ============================================
# PROFILES
# ============================================

@api_view(['GET', 'PUT', 'PATCH'])
@role_required(DONOR)
def donor_profile(request):
    if request.method == 'GET':
        donor = donor_utils.get_donor_profile(request.user)
        return Response(DonorProfileSerializer(donor).data)

    data = _validated(DonorProfileUpdateSerializer, request.data)
    donor = donor_utils.update_donor_profile(request.user, **data)
    return Response(DonorProfileSerializer(donor).data)


@api_view(['GET', 'PUT', 'PATCH'])
@role_required(HOSPITAL_ADMIN)
def hospital_profile(request):
    if request.method == 'GET':
        hospital = need_utils.get_hospital_profile(request.user)
        return Response(HospitalProfileSerializer(hospital).data)

    data = _validated(HospitalProfileUpdateSerializer, request.data)
    hospital = need_utils.update_hospital_profile(request.user, **data)
    return Response(HospitalProfileSerializer(hospital).data)


@api_view(['GET'])
@role_required(HOSPITAL_ADMIN)
def donor_search(request):
    """GET ?q= - up to 10 donors matching name, email or phone"""
    donors = donor_utils.search_donors(request.user, request.query_params.get('q', ''))
    return Response(DonorSearchResultSerializer(donors, many=True).data)
