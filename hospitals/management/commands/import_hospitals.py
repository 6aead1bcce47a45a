# hospitals/management/commands/import_hospitals.py
"""
Django Management Command to Import Hospitals from Excel or CSV
Creates or updates hospital admin accounts with hashed passwords.

USAGE:
    python manage.py import_hospitals path/to/hospitals.xlsx
"""
import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from bloodbridge.exceptions import ValidationError
from donors.management.commands.import_donors import cell, read_sheet
from donors.utils import validate_coordinates
from hospitals.models import HospitalProfile

User = get_user_model()

REQUIRED_COLUMNS = ['Username', 'Email', 'Password', 'Hospital Name']


class Command(BaseCommand):
    help = 'Import hospitals from an Excel or CSV file with proper password hashing'

    def add_arguments(self, parser):
        parser.add_argument('sheet', type=str, help='Path to the .xlsx or .csv file')

    def handle(self, *args, **options):
        path = options['sheet']
        if not os.path.exists(path):
            raise CommandError(f'File not found: {path}')

        df = read_sheet(path)
        missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing_columns:
            raise CommandError(f'Missing columns: {", ".join(missing_columns)}')

        total = len(df)
        self.stdout.write(f"Found {total} hospitals\n")

        created_count = 0
        updated_count = 0
        errors = []

        for index, row in df.iterrows():
            username = str(row['Username']).strip()
            email = str(row['Email']).strip().lower()
            latitude = cell(row, 'latitude', 'Latitude')
            longitude = cell(row, 'longitude', 'Longitude')

            try:
                latitude = float(latitude) if latitude is not None else None
                longitude = float(longitude) if longitude is not None else None
                validate_coordinates(latitude, longitude)

                with transaction.atomic():
                    user = User.objects.filter(username=username).first()
                    created = user is None
                    if created:
                        user = User(username=username)
                    if User.objects.filter(email=email).exclude(pk=user.pk).exists():
                        raise ValueError(f"email {email} already belongs to another account")

                    user.email = email
                    user.user_type = User.HOSPITAL_ADMIN
                    user.is_active = True
                    user.set_password(str(row['Password']).strip())
                    user.save()

                    HospitalProfile.objects.update_or_create(
                        user=user,
                        defaults={
                            'hospital_name': str(row['Hospital Name']).strip(),
                            'address': str(cell(row, 'Address', default='')).strip(),
                            'phone': str(cell(row, 'Phone Number', 'Phone', default='')).strip(),
                            'contact_person': str(cell(row, 'Contact Person', default='')).strip(),
                            'contact_email': str(cell(row, 'Contact Email', default='')).strip(),
                            'latitude': latitude,
                            'longitude': longitude,
                        }
                    )
            except (ValueError, TypeError, ValidationError) as e:
                errors.append(f"{username}: {e}")
                self.stdout.write(self.style.ERROR(f"[{index + 1}/{total}] Error: {username}: {e}"))
                continue

            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"[{index + 1}/{total}] Created: {username}"))
            else:
                updated_count += 1
                self.stdout.write(self.style.WARNING(f"[{index + 1}/{total}] Updated: {username}"))

        self.stdout.write("\n" + "=" * 70)
        self.stdout.write(f"Created:  {created_count} new hospitals")
        self.stdout.write(f"Updated:  {updated_count} existing hospitals")
        self.stdout.write(f"Errors:   {len(errors)}")
        self.stdout.write("=" * 70)
