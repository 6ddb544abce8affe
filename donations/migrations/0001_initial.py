# Initial schema for the donation pipeline

from django.conf import settings
import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('user_type', models.CharField(choices=[('ADMIN', 'Admin'), ('DONOR', 'Donor'), ('NGO', 'NGO'), ('VOLUNTEER', 'Volunteer')], default='ADMIN', max_length=10)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='DonorProfile',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='donor_profile', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('full_name', models.CharField(max_length=255, validators=[django.core.validators.RegexValidator(code='invalid_name', message='This field can only contain alphabetic characters and spaces.', regex='^[a-zA-Z\\s]+$')])),
                ('phone_number', models.CharField(blank=True, default='', max_length=15)),
                ('address', models.TextField(blank=True, default='')),
                ('city', models.CharField(max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='NGOProfile',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='ngo_profile', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('ngo_name', models.CharField(max_length=255, validators=[django.core.validators.RegexValidator(code='invalid_name', message='This field can only contain alphabetic characters and spaces.', regex='^[a-zA-Z\\s]+$')])),
                ('registration_number', models.CharField(max_length=100, unique=True)),
                ('ngo_type', models.CharField(choices=[('food', 'Food NGO'), ('clothing', 'Clothing NGO'), ('education', 'Education NGO'), ('medical', 'Medical NGO'), ('elderly_care', 'Elderly Care NGO'), ('multi_purpose', 'Multi-purpose NGO')], default='multi_purpose', max_length=20)),
                ('can_accept_universal', models.BooleanField(default=True, help_text='May approve food/medicine/water outside its specialization')),
                ('is_verified', models.BooleanField(default=True, help_text='Only verified NGOs are suggested for distribution')),
                ('address', models.TextField(blank=True, default='')),
                ('city', models.CharField(max_length=100)),
                ('district', models.CharField(blank=True, db_index=True, max_length=100)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('contact_number', models.CharField(blank=True, default='', help_text='10-digit mobile number', max_length=10, validators=[django.core.validators.RegexValidator(code='invalid_contact_number', message='Contact number must be exactly 10 digits.', regex='^\\d{10}$')])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='VolunteerProfile',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='volunteer_profile', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('full_name', models.CharField(max_length=255, validators=[django.core.validators.RegexValidator(code='invalid_name', message='This field can only contain alphabetic characters and spaces.', regex='^[a-zA-Z\\s]+$')])),
                ('phone_number', models.CharField(blank=True, default='', max_length=15)),
                ('city', models.CharField(max_length=100)),
                ('district', models.CharField(blank=True, db_index=True, max_length=100)),
                ('vehicle_type', models.CharField(choices=[('2-wheeler', 'Two wheeler'), ('4-wheeler', 'Four wheeler'), ('none', 'No vehicle')], default='none', max_length=10)),
                ('is_active', models.BooleanField(default=True, help_text='Inactive volunteers are never offered work')),
                ('completed_deliveries', models.PositiveIntegerField(default=0)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('registered_ngo', models.ForeignKey(blank=True, help_text='NGO that registered this volunteer', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='managed_volunteers', to='donations.ngoprofile')),
            ],
        ),
        migrations.CreateModel(
            name='Donation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('books', models.PositiveIntegerField(default=0)),
                ('clothes', models.PositiveIntegerField(default=0)),
                ('grains', models.PositiveIntegerField(default=0, help_text='Grains / food packets')),
                ('footwear', models.PositiveIntegerField(default=0)),
                ('toys', models.PositiveIntegerField(default=0)),
                ('school_supplies', models.PositiveIntegerField(default=0)),
                ('is_custom_item', models.BooleanField(default=False)),
                ('custom_item_name', models.CharField(blank=True, default='', max_length=255)),
                ('custom_quantity', models.PositiveIntegerField(default=0)),
                ('custom_description', models.TextField(blank=True, default='')),
                ('description', models.TextField(blank=True, default='', help_text='Donor notes')),
                ('priority', models.CharField(choices=[('critical', 'Critical'), ('high', 'High'), ('medium', 'Medium'), ('low', 'Low')], db_index=True, default='medium', max_length=10)),
                ('is_universal_item', models.BooleanField(default=False)),
                ('city', models.CharField(max_length=100)),
                ('district', models.CharField(db_index=True, max_length=100)),
                ('pickup_address', models.TextField(blank=True, default='')),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending_approval', 'Pending NGO Approval'), ('assigned', 'Assigned'), ('picked_up', 'Picked Up'), ('in_transit', 'In Transit'), ('delivered', 'Delivered'), ('completed', 'Completed'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], db_index=True, default='pending_approval', max_length=20)),
                ('ngo_approval_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=10)),
                ('volunteer_name', models.CharField(blank=True, default='', max_length=255)),
                ('volunteer_phone', models.CharField(blank=True, default='', max_length=15)),
                ('auto_unassigned', models.BooleanField(default=False)),
                ('cancelled_reason', models.CharField(blank=True, default='', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('assigned_at', models.DateTimeField(blank=True, help_text='When a volunteer took the donation', null=True)),
                ('picked_up_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='donations', to='donations.donorprofile')),
                ('ngo', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_donations', to='donations.ngoprofile')),
                ('volunteer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_donations', to='donations.volunteerprofile')),
            ],
        ),
        migrations.CreateModel(
            name='DonationRejection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('donation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rejections', to='donations.donation')),
                ('ngo', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rejections', to='donations.ngoprofile')),
            ],
            options={
                'unique_together': {('donation', 'ngo')},
            },
        ),
        migrations.CreateModel(
            name='VolunteerAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('accepted', 'Accepted'), ('started', 'Started'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='accepted', max_length=10)),
                ('accepted_at', models.DateTimeField()),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('auto_unassigned', models.BooleanField(default=False)),
                ('cancelled_reason', models.CharField(blank=True, default='', max_length=100)),
                ('donation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='donations.donation')),
                ('volunteer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='donations.volunteerprofile')),
            ],
        ),
        migrations.AddConstraint(
            model_name='volunteerassignment',
            constraint=models.UniqueConstraint(condition=models.Q(('status__in', ['accepted', 'started'])), fields=('donation',), name='one_active_assignment_per_donation'),
        ),
        migrations.AddField(
            model_name='donation',
            name='assignment',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='donations.volunteerassignment'),
        ),
        migrations.CreateModel(
            name='NGODailyLimit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('daily_limit', models.PositiveIntegerField(default=7)),
                ('approvals_used', models.PositiveIntegerField(default=0, help_text='Non-critical approvals today')),
                ('critical_approvals', models.PositiveIntegerField(default=0, help_text='Critical approvals bypass the cap')),
                ('performance_score', models.FloatField(default=5.0)),
                ('load_level', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('ngo', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='daily_limits', to='donations.ngoprofile')),
            ],
            options={
                'unique_together': {('ngo', 'date')},
            },
        ),
        migrations.CreateModel(
            name='NGOPerformance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('volunteer_count', models.PositiveIntegerField(default=0)),
                ('rating', models.FloatField(default=5.0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(5)])),
                ('city_coverage_percentage', models.FloatField(default=0.0)),
                ('avg_approval_time_hours', models.FloatField(default=0.0)),
                ('avg_delivery_time_hours', models.FloatField(default=0.0)),
                ('total_approvals', models.PositiveIntegerField(default=0)),
                ('total_deliveries', models.PositiveIntegerField(default=0)),
                ('last_updated', models.DateTimeField(auto_now=True)),
                ('ngo', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='performance', to='donations.ngoprofile')),
            ],
        ),
        migrations.CreateModel(
            name='DistrictCoverageSnapshot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('district', models.CharField(max_length=100)),
                ('date', models.DateField()),
                ('total_ngos', models.PositiveIntegerField(default=0)),
                ('active_ngos', models.PositiveIntegerField(default=0)),
                ('total_requests', models.PositiveIntegerField(default=0)),
                ('approved_requests', models.PositiveIntegerField(default=0)),
                ('pending_requests', models.PositiveIntegerField(default=0)),
                ('coverage_percentage', models.FloatField(default=0.0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('district', 'date')},
            },
        ),
        migrations.CreateModel(
            name='VolunteerTrustScore',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('score', models.IntegerField(default=40, help_text='0-100 score', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('tier', models.CharField(choices=[('RESTRICTED', 'Restricted'), ('NEW', 'New'), ('STANDARD', 'Standard'), ('PREMIUM', 'Premium'), ('ELITE', 'Elite')], default='NEW', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('last_updated', models.DateTimeField(auto_now=True)),
                ('volunteer', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='trust_score', to='donations.volunteerprofile')),
            ],
        ),
        migrations.CreateModel(
            name='TrustScoreActivity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('activity_type', models.CharField(max_length=50)),
                ('score_change', models.IntegerField(default=0)),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('volunteer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trust_activities', to='donations.volunteerprofile')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
