"""Models for the users app."""

from django.db import models
from django.contrib.auth.models import AbstractUser
from django.utils.translation import gettext_lazy as _
from core.models import TimeStampedModel


class Role(models.IntegerChoices):
    """Platform roles, ordered from least to most privileged."""

    ATTENDEE = 0, _("Attendee")
    VOLUNTEER = 1, _("Volunteer")
    ORGANIZER = 2, _("Organizer")
    ADMIN = 3, _("Admin")


def has_role(user, minimum_role):
    """Return True if ``user`` holds ``minimum_role`` or anything above it."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    if user.is_superuser:
        return True
    return Role(user.role) >= minimum_role


class User(AbstractUser, TimeStampedModel):
    """Custom user model for EventHive."""

    email = models.EmailField(
        _('email address'),
        unique=True,
        error_messages={
            'unique': _("A user with that email already exists."),
        }
    )
    phone_number = models.CharField(
        _("phone number"),
        max_length=30,
        blank=True,
        null=True
    )
    role = models.PositiveSmallIntegerField(
        _("role"),
        choices=Role.choices,
        default=Role.ATTENDEE,
        db_index=True
    )
    loyalty_points = models.PositiveIntegerField(
        _("loyalty points"),
        default=0,
        help_text=_("Running balance; every change is recorded as a LoyaltyTransaction.")
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        verbose_name = _("user")
        verbose_name_plural = _("users")
        ordering = ['-date_joined']

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return the user's full name."""
        full_name = f"{self.first_name} {self.last_name}"
        return full_name.strip() or self.username

    def has_role(self, minimum_role):
        return has_role(self, minimum_role)

    @property
    def is_organizer(self):
        return self.has_role(Role.ORGANIZER)

    @property
    def is_volunteer(self):
        return self.has_role(Role.VOLUNTEER)
