# donors/management/commands/import_donors.py
"""
Django management command to import donor data from Excel or CSV
Usage: python manage.py import_donors path/to/donors.xlsx
"""
import os

import pandas as pd
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from bloodbridge.exceptions import ValidationError
from donors.models import BLOOD_TYPES, DonorProfile
from donors.utils import validate_coordinates

User = get_user_model()


def read_sheet(path):
    """Load a .csv or Excel workbook into a DataFrame of strings"""
    # Text cells keep phone numbers and leading zeros intact
    if path.lower().endswith('.csv'):
        return pd.read_csv(path, dtype=str)
    return pd.read_excel(path, dtype=str)


def cell(row, *names, default=None):
    """First non-empty value among the given column names"""
    for name in names:
        if name in row and pd.notna(row[name]) and str(row[name]).strip() != '':
            return row[name]
    return default


class Command(BaseCommand):
    help = 'Import donors from an Excel or CSV file'

    def add_arguments(self, parser):
        parser.add_argument('sheet', type=str, help='Path to the .xlsx or .csv file')
        parser.add_argument(
            '--default-password',
            default='ChangeMe123!',
            help='Password given to newly created donor accounts',
        )

    def handle(self, *args, **options):
        path = options['sheet']
        if not os.path.exists(path):
            raise CommandError(f'File not found: {path}')

        self.stdout.write(self.style.WARNING(f'Starting import from {path}...'))
        df = read_sheet(path)
        self.stdout.write(f'Found {len(df)} rows')

        imported_count = 0
        updated_count = 0
        skipped_count = 0

        for index, row in df.iterrows():
            line = index + 2
            full_name = cell(row, 'full_name', 'name')
            email = cell(row, 'email')
            blood_type = str(cell(row, 'blood_type', 'blood_group', default='')).strip().upper()

            if not full_name or not email:
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: missing name or email'))
                skipped_count += 1
                continue
            if blood_type not in BLOOD_TYPES:
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: invalid blood type {blood_type!r}'))
                skipped_count += 1
                continue

            latitude = cell(row, 'latitude')
            longitude = cell(row, 'longitude')
            last_donation_date = cell(row, 'last_donation_date')
            contact = str(cell(row, 'preferred_contact_method', default=DonorProfile.CONTACT_EMAIL)).strip().lower()
            if contact not in (DonorProfile.CONTACT_EMAIL, DonorProfile.CONTACT_SMS):
                contact = DonorProfile.CONTACT_EMAIL

            try:
                latitude = float(latitude) if latitude is not None else None
                longitude = float(longitude) if longitude is not None else None
                validate_coordinates(latitude, longitude)

                with transaction.atomic():
                    email = str(email).strip().lower()
                    user, user_created = User.objects.get_or_create(
                        email=email,
                        defaults={
                            'username': email.split('@')[0].replace(' ', '_')[:30],
                            'user_type': User.DONOR,
                            'is_active': True,
                        }
                    )
                    if user_created:
                        user.set_password(options['default_password'])
                        user.save()

                    donor, created = DonorProfile.objects.update_or_create(
                        user=user,
                        defaults={
                            'full_name': str(full_name).strip(),
                            'phone': str(cell(row, 'phone', 'phone_number', default='')).strip(),
                            'blood_type': blood_type,
                            'latitude': latitude,
                            'longitude': longitude,
                            'last_donation_date': (
                                pd.to_datetime(last_donation_date).date() if last_donation_date is not None else None
                            ),
                            'preferred_contact_method': contact,
                        }
                    )
            except (ValueError, TypeError, ValidationError) as e:
                skipped_count += 1
                self.stdout.write(self.style.ERROR(f'Error at row {line}: {e}'))
                continue

            if created:
                imported_count += 1
                self.stdout.write(f'Created: {donor.full_name} ({donor.blood_type}) - {user.email}')
            else:
                updated_count += 1
                self.stdout.write(f'Updated: {donor.full_name} ({donor.blood_type})')

        self.stdout.write(
            self.style.SUCCESS(
                f'\nImport complete!\n'
                f'Created: {imported_count}\n'
                f'Updated: {updated_count}\n'
                f'Skipped: {skipped_count}'
            )
        )
