from django.db import models
from django.db.models import Q
from django.contrib.auth.models import AbstractUser
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator

# --- VALIDATORS ---
alphabetic_validator = RegexValidator(
    regex=r'^[a-zA-Z\s]+$',
    message='This field can only contain alphabetic characters and spaces.',
    code='invalid_name'
)

ITEM_CATEGORIES = ('books', 'clothes', 'grains', 'footwear', 'toys', 'school_supplies')


def normalize_district(value):
    """Districts are matched case-insensitively, so they are stored lowercased."""
    return (value or '').strip().lower()


# --- SHARED CHOICES ---
class Priority(models.TextChoices):
    CRITICAL = 'critical', 'Critical'
    HIGH = 'high', 'High'
    MEDIUM = 'medium', 'Medium'
    LOW = 'low', 'Low'


PRIORITY_RANK = {
    Priority.CRITICAL: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}


class NGOType(models.TextChoices):
    FOOD = 'food', 'Food NGO'
    CLOTHING = 'clothing', 'Clothing NGO'
    EDUCATION = 'education', 'Education NGO'
    MEDICAL = 'medical', 'Medical NGO'
    ELDERLY_CARE = 'elderly_care', 'Elderly Care NGO'
    MULTI_PURPOSE = 'multi_purpose', 'Multi-purpose NGO'


class TrustTier(models.TextChoices):
    RESTRICTED = 'RESTRICTED', 'Restricted'
    NEW = 'NEW', 'New'
    STANDARD = 'STANDARD', 'Standard'
    PREMIUM = 'PREMIUM', 'Premium'
    ELITE = 'ELITE', 'Elite'


# --- CORE USER AND PROFILE MODELS ---
class User(AbstractUser):
    class UserType(models.TextChoices):
        ADMIN = 'ADMIN', 'Admin'
        DONOR = 'DONOR', 'Donor'
        NGO = 'NGO', 'NGO'
        VOLUNTEER = 'VOLUNTEER', 'Volunteer'
    user_type = models.CharField(max_length=10, choices=UserType.choices, default=UserType.ADMIN)

    def __str__(self):
        return f"{self.username} ({self.get_user_type_display()})" # type: ignore


class DonorProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, primary_key=True, related_name='donor_profile')
    full_name = models.CharField(max_length=255, validators=[alphabetic_validator])
    phone_number = models.CharField(max_length=15, blank=True, default='')
    address = models.TextField(blank=True, default='')
    city = models.CharField(max_length=100)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def district(self):
        return normalize_district(self.city)

    def __str__(self):
        return self.full_name


class NGOProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, primary_key=True, related_name='ngo_profile')
    ngo_name = models.CharField(max_length=255, validators=[alphabetic_validator])
    registration_number = models.CharField(max_length=100, unique=True)
    ngo_type = models.CharField(max_length=20, choices=NGOType.choices, default=NGOType.MULTI_PURPOSE)
    can_accept_universal = models.BooleanField(default=True, help_text="May approve food/medicine/water outside its specialization")
    is_verified = models.BooleanField(default=True, help_text="Only verified NGOs are suggested for distribution")
    address = models.TextField(blank=True, default='')
    city = models.CharField(max_length=100)
    district = models.CharField(max_length=100, db_index=True, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    contact_number = models.CharField(
        max_length=10,
        blank=True,
        default='',
        validators=[
            RegexValidator(
                regex=r'^\d{10}$',
                message='Contact number must be exactly 10 digits.',
                code='invalid_contact_number'
            )
        ],
        help_text="10-digit mobile number"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.district = normalize_district(self.district or self.city)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.ngo_name


class VolunteerProfile(models.Model):
    class VehicleType(models.TextChoices):
        TWO_WHEELER = '2-wheeler', 'Two wheeler'
        FOUR_WHEELER = '4-wheeler', 'Four wheeler'
        NONE = 'none', 'No vehicle'

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, primary_key=True, related_name='volunteer_profile')
    full_name = models.CharField(max_length=255, validators=[alphabetic_validator])
    phone_number = models.CharField(max_length=15, blank=True, default='')
    city = models.CharField(max_length=100)
    district = models.CharField(max_length=100, db_index=True, blank=True)
    vehicle_type = models.CharField(max_length=10, choices=VehicleType.choices, default=VehicleType.NONE)
    is_active = models.BooleanField(default=True, help_text="Inactive volunteers are never offered work")
    completed_deliveries = models.PositiveIntegerField(default=0)
    registered_ngo = models.ForeignKey(NGOProfile, on_delete=models.SET_NULL, null=True, blank=True, related_name='managed_volunteers', help_text="NGO that registered this volunteer")
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.district = normalize_district(self.district or self.city)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.full_name


# --- DONATION LIFECYCLE ---
class Donation(models.Model):
    class Status(models.TextChoices):
        PENDING_APPROVAL = 'pending_approval', 'Pending NGO Approval'
        ASSIGNED = 'assigned', 'Assigned'
        PICKED_UP = 'picked_up', 'Picked Up'
        IN_TRANSIT = 'in_transit', 'In Transit'
        DELIVERED = 'delivered', 'Delivered'
        COMPLETED = 'completed', 'Completed'
        REJECTED = 'rejected', 'Rejected'
        CANCELLED = 'cancelled', 'Cancelled'

    class ApprovalStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    donor = models.ForeignKey(DonorProfile, on_delete=models.CASCADE, related_name='donations')

    # Item quantities
    books = models.PositiveIntegerField(default=0)
    clothes = models.PositiveIntegerField(default=0)
    grains = models.PositiveIntegerField(default=0, help_text="Grains / food packets")
    footwear = models.PositiveIntegerField(default=0)
    toys = models.PositiveIntegerField(default=0)
    school_supplies = models.PositiveIntegerField(default=0)
    is_custom_item = models.BooleanField(default=False)
    custom_item_name = models.CharField(max_length=255, blank=True, default='')
    custom_quantity = models.PositiveIntegerField(default=0)
    custom_description = models.TextField(blank=True, default='')
    description = models.TextField(blank=True, default='', help_text="Donor notes")

    # Classification
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM, db_index=True)
    is_universal_item = models.BooleanField(default=False)

    # Location
    city = models.CharField(max_length=100)
    district = models.CharField(max_length=100, db_index=True)
    pickup_address = models.TextField(blank=True, default='')
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    # Lifecycle
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING_APPROVAL, db_index=True)
    ngo_approval_status = models.CharField(max_length=10, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING, db_index=True)
    ngo = models.ForeignKey(NGOProfile, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_donations')
    volunteer = models.ForeignKey(VolunteerProfile, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_donations', db_index=True)
    volunteer_name = models.CharField(max_length=255, blank=True, default='')
    volunteer_phone = models.CharField(max_length=15, blank=True, default='')
    assignment = models.ForeignKey('VolunteerAssignment', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    auto_unassigned = models.BooleanField(default=False)
    cancelled_reason = models.CharField(max_length=100, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    assigned_at = models.DateTimeField(null=True, blank=True, help_text="When a volunteer took the donation")
    picked_up_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    def item_quantities(self):
        return {category: getattr(self, category) for category in ITEM_CATEGORIES}

    def __str__(self):
        return f"Donation #{self.pk} from {self.donor} ({self.status})"


class DonationRejection(models.Model):
    """An NGO declined a pending donation; other NGOs in the district still see it."""
    donation = models.ForeignKey(Donation, on_delete=models.CASCADE, related_name='rejections')
    ngo = models.ForeignKey(NGOProfile, on_delete=models.CASCADE, related_name='rejections')
    reason = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('donation', 'ngo')

    def __str__(self):
        return f"{self.ngo} rejected donation #{self.donation_id}"


class VolunteerAssignment(models.Model):
    class Status(models.TextChoices):
        ACCEPTED = 'accepted', 'Accepted'
        STARTED = 'started', 'Started'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    ACTIVE_STATUSES = (Status.ACCEPTED, Status.STARTED)

    donation = models.ForeignKey(Donation, on_delete=models.CASCADE, related_name='assignments')
    volunteer = models.ForeignKey(VolunteerProfile, on_delete=models.CASCADE, related_name='assignments')
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACCEPTED, db_index=True)
    accepted_at = models.DateTimeField()
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    auto_unassigned = models.BooleanField(default=False)
    cancelled_reason = models.CharField(max_length=100, blank=True, default='')

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['donation'],
                condition=Q(status__in=['accepted', 'started']),
                name='one_active_assignment_per_donation',
            ),
        ]

    def __str__(self):
        return f"Assignment #{self.pk}: donation #{self.donation_id} -> {self.volunteer_id} ({self.status})"


# --- NGO CAPACITY ---
class NGODailyLimit(models.Model):
    class LoadLevel(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'

    ngo = models.ForeignKey(NGOProfile, on_delete=models.CASCADE, related_name='daily_limits')
    date = models.DateField()
    daily_limit = models.PositiveIntegerField(default=7)
    approvals_used = models.PositiveIntegerField(default=0, help_text="Non-critical approvals today")
    critical_approvals = models.PositiveIntegerField(default=0, help_text="Critical approvals bypass the cap")
    performance_score = models.FloatField(default=5.0)
    load_level = models.CharField(max_length=10, choices=LoadLevel.choices, default=LoadLevel.MEDIUM)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('ngo', 'date')

    @property
    def remaining(self):
        return max(0, self.daily_limit - self.approvals_used)

    def __str__(self):
        return f"{self.ngo} on {self.date}: {self.approvals_used}/{self.daily_limit}"


class NGOPerformance(models.Model):
    ngo = models.OneToOneField(NGOProfile, on_delete=models.CASCADE, related_name='performance')
    volunteer_count = models.PositiveIntegerField(default=0)
    rating = models.FloatField(default=5.0, validators=[MinValueValidator(0), MaxValueValidator(5)])
    city_coverage_percentage = models.FloatField(default=0.0)
    avg_approval_time_hours = models.FloatField(default=0.0)
    avg_delivery_time_hours = models.FloatField(default=0.0)
    total_approvals = models.PositiveIntegerField(default=0)
    total_deliveries = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Performance for {self.ngo}: {self.rating:.1f}"


class DistrictCoverageSnapshot(models.Model):
    """Read-mostly analytics, always recomputable from donations and NGOs."""
    district = models.CharField(max_length=100)
    date = models.DateField()
    total_ngos = models.PositiveIntegerField(default=0)
    active_ngos = models.PositiveIntegerField(default=0)
    total_requests = models.PositiveIntegerField(default=0)
    approved_requests = models.PositiveIntegerField(default=0)
    pending_requests = models.PositiveIntegerField(default=0)
    coverage_percentage = models.FloatField(default=0.0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('district', 'date')

    def __str__(self):
        return f"Coverage for {self.district} on {self.date}: {self.coverage_percentage:.1f}%"


# --- TRUST SCORE ---
class VolunteerTrustScore(models.Model):
    """
    Tracks a volunteer's reputation. The tier is always derived from the score.
    """
    volunteer = models.OneToOneField(VolunteerProfile, on_delete=models.CASCADE, related_name='trust_score')
    score = models.IntegerField(default=40, validators=[MinValueValidator(0), MaxValueValidator(100)], help_text="0-100 score")
    tier = models.CharField(max_length=10, choices=TrustTier.choices, default=TrustTier.NEW)
    created_at = models.DateTimeField(auto_now_add=True)
    last_updated = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Trust Score for {self.volunteer.full_name}: {self.score} ({self.tier})"


class TrustScoreActivity(models.Model):
    volunteer = models.ForeignKey(VolunteerProfile, on_delete=models.CASCADE, related_name='trust_activities')
    activity_type = models.CharField(max_length=50)
    score_change = models.IntegerField(default=0)
    description = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.activity_type} ({self.score_change:+d}) for {self.volunteer_id}"
