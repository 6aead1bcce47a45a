import pytest

from accounts.models import CustomUser
from bloodbridge.exceptions import Forbidden, NotFound, ValidationError
from donors.models import DonorProfile
from donors.utils import get_donor_profile, search_donors, update_donor_profile, validate_coordinates
from hospitals.utils import get_hospital_profile, update_hospital_profile

pytestmark = pytest.mark.django_db


class TestDonorProfile:
    def test_get_own_profile(self, donor):
        assert get_donor_profile(donor.user) == donor

    def test_account_without_profile(self, make_user):
        with pytest.raises(NotFound):
            get_donor_profile(make_user('bare'))

    def test_other_roles_refused(self, hospital):
        with pytest.raises(Forbidden):
            get_donor_profile(hospital.user)

    def test_partial_update(self, donor):
        updated = update_donor_profile(
            donor.user,
            full_name='  Sita Sharma ',
            phone='9800000001',
            is_available_for_alerts=False,
            preferred_contact_method=DonorProfile.CONTACT_SMS,
        )

        donor.refresh_from_db()
        assert updated.full_name == 'Sita Sharma'
        assert donor.phone == '9800000001'
        assert donor.is_available_for_alerts is False
        assert donor.preferred_contact_method == DonorProfile.CONTACT_SMS
        assert donor.blood_type == 'O-'

    def test_location_update(self, donor):
        update_donor_profile(donor.user, latitude=28.2096, longitude=83.9856)

        donor.refresh_from_db()
        assert (donor.latitude, donor.longitude) == (28.2096, 83.9856)

    def test_location_can_be_cleared(self, donor):
        update_donor_profile(donor.user, latitude=None, longitude=None)

        donor.refresh_from_db()
        assert donor.has_location is False

    @pytest.mark.parametrize('fields', [
        {},
        {'last_donation_date': None},
        {'full_name': '   '},
        {'blood_type': 'Z+'},
        {'preferred_contact_method': 'pigeon'},
        {'is_available_for_alerts': 'yes'},
        {'latitude': 27.7},
        {'latitude': 91.0, 'longitude': 85.3},
        {'latitude': 27.7, 'longitude': -180.5},
        {'latitude': True, 'longitude': 85.3},
        {'latitude': float('nan'), 'longitude': 85.3},
    ])
    def test_invalid_updates(self, donor, fields):
        with pytest.raises(ValidationError):
            update_donor_profile(donor.user, **fields)

        donor.refresh_from_db()
        assert donor.full_name == 'Donor'

    def test_coordinate_bounds_are_inclusive(self):
        validate_coordinates(-90, 180)
        validate_coordinates(90.0, -180.0)
        validate_coordinates(None, None)


class TestHospitalProfile:
    def test_get_own_profile(self, hospital):
        assert get_hospital_profile(hospital.user) == hospital

    def test_donor_refused(self, donor):
        with pytest.raises(Forbidden):
            get_hospital_profile(donor.user)

    def test_admin_without_profile(self, make_user):
        with pytest.raises(NotFound):
            get_hospital_profile(make_user('newadmin', CustomUser.HOSPITAL_ADMIN))

    def test_partial_update(self, hospital):
        update_hospital_profile(
            hospital.user,
            hospital_name='Bir Hospital',
            address='Mahaboudha, Kathmandu',
            contact_person='Dr. Rai',
            contact_email='blood@bir.example.com',
            latitude=27.7049,
            longitude=85.3133,
        )

        hospital.refresh_from_db()
        assert hospital.hospital_name == 'Bir Hospital'
        assert hospital.address == 'Mahaboudha, Kathmandu'
        assert hospital.contact_person == 'Dr. Rai'
        assert hospital.contact_email == 'blood@bir.example.com'
        assert (hospital.latitude, hospital.longitude) == (27.7049, 85.3133)

    @pytest.mark.parametrize('fields', [
        {},
        {'user': None},
        {'hospital_name': ''},
        {'longitude': 85.3},
        {'latitude': -90.1, 'longitude': 85.3},
        {'latitude': 27.7, 'longitude': 181},
    ])
    def test_invalid_updates(self, hospital, fields):
        with pytest.raises(ValidationError):
            update_hospital_profile(hospital.user, **fields)

        hospital.refresh_from_db()
        assert hospital.latitude == 27.7


class TestDonorSearch:
    def test_matches_name_email_or_phone(self, hospital, make_donor):
        sita = make_donor('sita', phone='9800000001')
        ram = make_donor('ram', email='ram.thapa@mail.example.org')
        make_donor('hari', phone='9811111111')

        assert search_donors(hospital.user, 'SIT') == [sita]
        assert search_donors(hospital.user, 'thapa@') == [ram]
        assert search_donors(hospital.user, '98000') == [sita]

    def test_query_is_trimmed(self, hospital, make_donor):
        sita = make_donor('sita')

        assert search_donors(hospital.user, '  sita  ') == [sita]

    @pytest.mark.parametrize('q', [None, '', ' ', ' s '])
    def test_query_too_short(self, hospital, q):
        with pytest.raises(ValidationError):
            search_donors(hospital.user, q)

    def test_at_most_ten_results(self, hospital, make_donor):
        for i in range(12):
            make_donor(f"walkin{i:02d}")

        results = search_donors(hospital.user, 'walkin')

        assert len(results) == 10
        assert results[0].full_name == 'Walkin00'

    def test_donor_cannot_search(self, donor):
        with pytest.raises(Forbidden):
            search_donors(donor.user, 'donor')

    def test_super_admin_cannot_search(self, super_admin):
        with pytest.raises(Forbidden):
            search_donors(super_admin, 'donor')
