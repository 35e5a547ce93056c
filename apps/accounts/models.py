"""
Accounts models for ShiftGuard.

Defines the custom User model (the employee directory) and time-off requests.
The User model uses email as the unique identifier (no username).

Key design decisions:
  - AbstractBaseUser gives us full control over the user model
  - Role is a simple enum field; permissions derived from role in views/mixins
  - Only owners and admins may unlock a locked schedule period
  - Approved time off hides that employee's shifts for the covered dates
"""

from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    """Custom manager for the ShiftGuard User model (email-based auth)."""

    def create_user(self, email: str, password: str = None, **extra_fields) -> "User":
        """
        Create and save a regular user with the given email and password.

        Args:
            email: The user's email address (used as login identifier).
            password: The raw password (will be hashed). None → unusable password.
            **extra_fields: Additional fields to set on the User model.

        Returns:
            The newly created User instance.

        Raises:
            ValueError: If email is not provided.
        """
        if not email:
            raise ValueError(_("The Email field must be set"))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str, **extra_fields) -> "User":
        """
        Create and save a superuser (owner) with the given email and password.

        Args:
            email: The owner's email address.
            password: The raw password.
            **extra_fields: Additional fields (is_staff and is_superuser forced to True).

        Returns:
            The newly created owner User instance.
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", User.Role.OWNER)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model for ShiftGuard; doubles as the employee directory.

    Role determines what the user can see and do throughout the platform:
      - OWNER: business owner, every location, may unlock periods
      - ADMIN: corporate-level, every location, may unlock periods
      - MANAGER: manages one or more specific locations
      - STAFF: works shifts, may claim open shifts and request time off
    """

    class Role(models.TextChoices):
        OWNER = "owner", _("Owner")
        ADMIN = "admin", _("Admin")
        MANAGER = "manager", _("Manager")
        STAFF = "staff", _("Staff")

    # Core identity
    email = models.EmailField(_("email address"), unique=True)
    first_name = models.CharField(_("first name"), max_length=150)
    last_name = models.CharField(_("last name"), max_length=150)

    # Role & status
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.STAFF)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Django admin access

    # Employee directory fields
    job_role = models.CharField(
        max_length=100,
        blank=True,
        help_text="Working role matched against Shift.role (e.g. 'Server', 'Cook').",
    )
    hourly_rate = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Used by the labor cost aggregation only.",
    )
    home_location = models.ForeignKey(
        "locations.Location",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="home_employees",
    )
    phone_number = models.CharField(max_length=20, blank=True)

    # Timestamps
    date_joined = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    class Meta:
        verbose_name = _("user")
        verbose_name_plural = _("users")
        ordering = ["last_name", "first_name"]

    def __str__(self) -> str:
        """Return the user's full name and role for display."""
        return f"{self.get_full_name()} ({self.get_role_display()})"

    def get_full_name(self) -> str:
        """Return the first_name plus the last_name, with a space in between."""
        return f"{self.first_name} {self.last_name}".strip()

    def get_short_name(self) -> str:
        """Return the first name for the user."""
        return self.first_name

    @property
    def is_owner(self) -> bool:
        return self.role == self.Role.OWNER

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == self.Role.MANAGER

    @property
    def is_staff_member(self) -> bool:
        """Check if this user has the Staff role (avoids collision with is_staff)."""
        return self.role == self.Role.STAFF

    @property
    def can_unlock_periods(self) -> bool:
        """Only owners and admins may reopen a locked schedule period."""
        return self.role in (self.Role.OWNER, self.Role.ADMIN)

    @property
    def can_manage_schedules(self) -> bool:
        """Owners, admins and managers act directly on the schedule."""
        return self.role in (self.Role.OWNER, self.Role.ADMIN, self.Role.MANAGER)


class TimeOffRequest(models.Model):
    """
    A staff member's request to be off for an inclusive date range.

    Status machine:
      PENDING → APPROVED (manager)
      PENDING → REJECTED (manager)

    Only APPROVED requests affect scheduling: the employee's shifts inside the
    range are hidden from schedule views and assigning them raises a warning.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")

    class Type(models.TextChoices):
        VACATION = "vacation", _("Vacation")
        SICK = "sick", _("Sick")
        PERSONAL = "personal", _("Personal")
        OTHER = "other", _("Other")

    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="time_off_requests",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    request_type = models.CharField(max_length=10, choices=Type.choices, default=Type.VACATION)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    reason = models.TextField(blank=True)

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="time_off_reviews",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Time Off Request"
        verbose_name_plural = "Time Off Requests"
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="time_off_end_after_start",
            )
        ]
        indexes = [
            models.Index(fields=["employee", "status"]),
            models.Index(fields=["start_date", "end_date"]),
        ]

    def __str__(self) -> str:
        return (
            f"{self.employee.get_short_name()} | {self.start_date} → {self.end_date} "
            f"[{self.get_status_display()}]"
        )

    def covers(self, day) -> bool:
        """Return True if the inclusive date range contains the given day."""
        return self.start_date <= day <= self.end_date

    def review(self, approved: bool, reviewed_by) -> None:
        """
        Approve or reject a pending request.

        Args:
            approved: True to approve, False to reject.
            reviewed_by: The manager making the decision.

        Raises:
            ValueError: If the request was already reviewed.
        """
        if self.status != self.Status.PENDING:
            raise ValueError(f"Time off request {self.pk} is already {self.status}.")
        self.status = self.Status.APPROVED if approved else self.Status.REJECTED
        self.reviewed_by = reviewed_by
        self.reviewed_at = timezone.now()
        self.save(update_fields=["status", "reviewed_by", "reviewed_at", "updated_at"])
