import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


BLOOD_TYPE_CHOICES = [('A+', 'A+'), ('A-', 'A-'), ('B+', 'B+'), ('B-', 'B-'), ('O+', 'O+'), ('O-', 'O-'), ('AB+', 'AB+'), ('AB-', 'AB-')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='HospitalProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('hospital_name', models.CharField(max_length=200)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('address', models.TextField(blank=True)),
                ('contact_person', models.CharField(blank=True, max_length=200)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='hospital_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Hospital Profile',
                'verbose_name_plural': 'Hospital Profiles',
            },
        ),
        migrations.CreateModel(
            name='BloodNeed',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('blood_type', models.CharField(choices=BLOOD_TYPE_CHOICES, max_length=3)),
                ('units_needed', models.PositiveIntegerField()),
                ('urgency_level', models.CharField(choices=[('critical', 'Critical - Life Threatening'), ('urgent', 'Urgent - Within 24 Hours'), ('normal', 'Normal - Within 48 Hours')], default='normal', max_length=10)),
                ('fulfilled_units', models.PositiveIntegerField(default=0)),
                ('is_fulfilled', models.BooleanField(default=False)),
                ('details', models.TextField(blank=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('posted_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_updated_at', models.DateTimeField(auto_now=True)),
                ('hospital', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blood_needs', to='hospitals.hospitalprofile')),
            ],
            options={
                'verbose_name': 'Blood Need',
                'verbose_name_plural': 'Blood Needs',
                'ordering': ['-posted_at'],
                'indexes': [
                    models.Index(fields=['is_fulfilled', 'blood_type'], name='need_fulfilled_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InventoryEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('blood_type', models.CharField(choices=BLOOD_TYPE_CHOICES, max_length=3)),
                ('units_in_stock', models.IntegerField(default=0)),
                ('last_updated_at', models.DateTimeField(auto_now=True)),
                ('hospital', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inventory', to='hospitals.hospitalprofile')),
            ],
            options={
                'verbose_name': 'Inventory Entry',
                'verbose_name_plural': 'Inventory Entries',
                'ordering': ['hospital', 'blood_type'],
                'constraints': [
                    models.UniqueConstraint(fields=('hospital', 'blood_type'), name='unique_hospital_blood_type'),
                    models.CheckConstraint(condition=models.Q(units_in_stock__gte=0), name='units_in_stock_non_negative'),
                ],
            },
        ),
    ]
