# fest-backend/events/models.py
from django.db import models
from django.db.models import F, Q
from django.conf import settings


class Event(models.Model):
    """
    Read model of an organizer-owned event.

    Everything except `registered_count` is owned by the organizer side.
    `registered_count` is the live number of non-cancelled registrations and
    is only ever changed through `events.capacity`.
    """
    STATUS_DRAFT = "draft"
    STATUS_PUBLISHED = "published"
    STATUS_ONGOING = "ongoing"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PUBLISHED, "Published"),
        (STATUS_ONGOING, "Ongoing"),
        (STATUS_CLOSED, "Closed"),
    ]

    TYPE_NORMAL = "normal"
    TYPE_MERCHANDISE = "merchandise"

    TYPE_CHOICES = [
        (TYPE_NORMAL, "Normal"),
        (TYPE_MERCHANDISE, "Merchandise"),
    ]

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='organized_events'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    event_type = models.CharField(max_length=32, choices=TYPE_CHOICES, default=TYPE_NORMAL)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    start_time = models.DateTimeField(blank=True, null=True)
    end_time = models.DateTimeField(blank=True, null=True)
    registration_deadline = models.DateTimeField(blank=True, null=True)
    registration_limit = models.PositiveIntegerField(
        blank=True,
        null=True,
        help_text="Maximum non-cancelled registrations. Empty means unlimited.",
    )
    registered_count = models.PositiveIntegerField(default=0, editable=False)

    team_registration_enabled = models.BooleanField(default=False)
    team_min_size = models.PositiveSmallIntegerField(default=2)
    team_max_size = models.PositiveSmallIntegerField(default=5)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(
                fields=['organizer', 'start_time'],
                name='event_org_start_idx',
            ),
            models.Index(
                fields=['status'],
                name='event_status_idx',
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(registration_limit__isnull=True) | Q(registered_count__lte=F("registration_limit")),
                name="event_registered_within_limit",
            ),
        ]

    def __str__(self):
        return self.title

    @property
    def is_open(self):
        return self.status == self.STATUS_PUBLISHED

    def deadline_passed(self, now):
        return self.registration_deadline is not None and self.registration_deadline <= now

    @property
    def team_config(self):
        return {
            "enabled": self.team_registration_enabled,
            "min_size": self.team_min_size,
            "max_size": self.team_max_size,
        }


class EventStaff(models.Model):
    """
    Per-event staff allowed to take attendance (besides the organizer).
    """
    ROLE_HOST = "host"
    ROLE_VOLUNTEER = "volunteer"

    ROLE_CHOICES = [
        (ROLE_HOST, "Host"),
        (ROLE_VOLUNTEER, "Volunteer"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="staff")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="event_staff_roles",
    )
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, default=ROLE_VOLUNTEER)
    is_active = models.BooleanField(default=True)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("event", "user")

    def __str__(self):
        return f"{self.user.username} - {self.role} @ {self.event}"


class Registration(models.Model):
    KIND_INDIVIDUAL = "individual"
    KIND_TEAM = "team"
    KIND_MERCHANDISE = "merchandise"

    KIND_CHOICES = [
        (KIND_INDIVIDUAL, "Individual"),
        (KIND_TEAM, "Team"),
        (KIND_MERCHANDISE, "Merchandise"),
    ]

    STATUS_REGISTERED = "registered"
    STATUS_CANCELLED = "cancelled"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_REGISTERED, "Registered"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REJECTED, "Rejected"),
    ]

    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="registrations")
    participant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="registrations",
    )
    kind = models.CharField(max_length=32, choices=KIND_CHOICES, default=KIND_INDIVIDUAL)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_REGISTERED)
    team = models.ForeignKey(
        "events.Team",
        on_delete=models.SET_NULL,
        related_name="registrations",
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    closed_at = models.DateTimeField(blank=True, null=True, help_text="When it was cancelled or rejected")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["event", "participant"], name="uniq_registration_per_participant"),
        ]
        indexes = [
            models.Index(
                fields=['event', 'created_at'],
                name='reg_event_created_idx',
            ),
            models.Index(
                fields=['event', 'status'],
                name='reg_event_status_idx',
            ),
        ]

    def __str__(self):
        return f"{self.participant} -> {self.event} ({self.status})"

    @property
    def is_active(self):
        return self.status == self.STATUS_REGISTERED


class Team(models.Model):
    """
    A forming cohort of participants targeting one event.

    `member_count` mirrors the number of TeamMember rows and is the value the
    join path compares against `max_size` in a single conditional UPDATE.
    `version` is bumped on every membership change.
    """
    STATUS_FORMING = "forming"
    STATUS_COMPLETE = "complete"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_FORMING, "Forming"),
        (STATUS_COMPLETE, "Complete"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='teams')
    leader = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='led_teams')
    name = models.CharField(max_length=60)
    invite_code = models.CharField(max_length=6, unique=True)
    max_size = models.PositiveSmallIntegerField()
    member_count = models.PositiveSmallIntegerField(default=1)
    version = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_FORMING)

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(member_count__lte=F("max_size")) & Q(member_count__gte=1),
                name="team_member_count_within_bounds",
            ),
        ]
        indexes = [
            models.Index(fields=['event', 'status'], name='team_event_status_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.event.title})"

    @property
    def slots_left(self):
        return self.max_size - self.member_count

    @property
    def is_forming(self):
        return self.status == self.STATUS_FORMING


class TeamMember(models.Model):
    """
    Participant membership in a team.

    `event` is denormalised from the team so that "one forming team per
    participant per event" can be a partial unique index. Memberships of a
    cancelled team are deactivated.
    """
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='members')
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='team_memberships')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='team_memberships')
    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["team", "user"], name="uniq_team_member"),
            models.UniqueConstraint(
                fields=["event", "user"],
                condition=Q(is_active=True),
                name="uniq_active_team_per_event",
            ),
        ]
        indexes = [
            models.Index(fields=['team', 'joined_at'], name='teammember_team_joined_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} in {self.team.name}"


class Ticket(models.Model):
    """
    Redeemable credential, exactly one per registration.

    `is_scanned` / `scanned_at` are a cache of the Attendance row; never
    authorise against them.
    """
    registration = models.OneToOneField(
        Registration,
        on_delete=models.PROTECT,
        related_name='ticket',
    )
    ticket_id = models.CharField(max_length=32, unique=True)
    qr_code = models.CharField(max_length=64, unique=True)
    is_scanned = models.BooleanField(default=False)
    scanned_at = models.DateTimeField(blank=True, null=True)
    issued_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.ticket_id


class Attendance(models.Model):
    """
    Canonical record that a ticket was redeemed. Written once, never updated.
    """
    METHOD_SCAN = "scan"
    METHOD_MANUAL = "manual"

    METHOD_CHOICES = [
        (METHOD_SCAN, "QR scan"),
        (METHOD_MANUAL, "Manual entry"),
    ]

    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="attendance")
    ticket = models.OneToOneField(Ticket, on_delete=models.PROTECT, related_name="attendance")
    registration = models.ForeignKey(Registration, on_delete=models.PROTECT, related_name="attendance")
    participant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="attendance",
    )
    scanned_at = models.DateTimeField()
    scanned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="scans_taken",
    )
    method = models.CharField(max_length=16, choices=METHOD_CHOICES, default=METHOD_SCAN)
    remarks = models.TextField(blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["event", "scanned_at"], name="att_event_scanned_idx"),
            models.Index(fields=["event", "participant"], name="att_event_participant_idx"),
        ]

    def __str__(self):
        return f"{self.participant} @ {self.event} ({self.method})"
