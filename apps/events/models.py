"""Models for the events app."""

from django.db import models
from django.utils.translation import gettext_lazy as _
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid

from core.models import BaseModel


class Event(BaseModel):
    """Event model; cancellation is a status change, events are never deleted."""

    DRAFT = 'draft'
    PUBLISHED = 'published'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (DRAFT, _('Draft')),
        (PUBLISHED, _('Published')),
        (CANCELLED, _('Cancelled')),
    )

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='organized_events',
        verbose_name=_("organizer")
    )
    title = models.CharField(_("title"), max_length=255)
    slug = models.SlugField(_("slug"), unique=True, max_length=255, blank=True)
    description = models.TextField(_("description"), blank=True)
    location = models.CharField(_("location"), max_length=255, blank=True)
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default=DRAFT,
        db_index=True
    )
    start_at = models.DateTimeField(_("start at"))
    end_at = models.DateTimeField(_("end at"), null=True, blank=True)

    class Meta:
        verbose_name = _("event")
        verbose_name_plural = _("events")
        ordering = ['start_at']

    def __str__(self):
        return self.title

    @property
    def is_published(self):
        return self.status == self.PUBLISHED


class TicketTier(BaseModel):
    """A named ticket category of an event with its own price and capacity."""

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name='ticket_tiers',
        verbose_name=_("event")
    )
    name = models.CharField(_("name"), max_length=100)
    price = models.DecimalField(
        _("price"),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    max_quantity = models.PositiveIntegerField(
        _("max quantity"),
        help_text=_("Maximum total quantity that can be sold for this tier (across all bookings).")
    )
    total_sold = models.PositiveIntegerField(
        _("total sold"),
        default=0,
        help_text=_("Units held by PENDING and CONFIRMED bookings.")
    )
    sale_start = models.DateTimeField(_("sale start"), null=True, blank=True)
    sale_end = models.DateTimeField(_("sale end"), null=True, blank=True)

    class Meta:
        verbose_name = _("ticket tier")
        verbose_name_plural = _("ticket tiers")
        ordering = ['price']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_sold__lte=models.F('max_quantity')),
                name='%(app_label)s_%(class)s_sold_within_capacity'
            ),
        ]

    def __str__(self):
        return f"{self.name} - {self.event.title}"

    @property
    def remaining(self):
        return max(0, self.max_quantity - self.total_sold)

    @property
    def is_sold_out(self):
        return self.remaining == 0

    def is_on_sale(self, now=None):
        """Return True if ``now`` falls inside the tier's sale window."""
        now = now or timezone.now()
        if self.sale_start and self.sale_start > now:
            return False
        if self.sale_end and self.sale_end < now:
            return False
        return True


class Coupon(BaseModel):
    """Discount code granting a percent or fixed amount off a booking."""

    code = models.CharField(_("code"), max_length=50, unique=True)
    description = models.TextField(_("description"), blank=True)
    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name='coupons',
        verbose_name=_("event"),
        null=True,
        blank=True,
        help_text=_("null = global coupon, valid for every event")
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='created_coupons',
        verbose_name=_("created by"),
        null=True,
        blank=True
    )
    percent_off = models.PositiveSmallIntegerField(
        _("percent off"),
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(100)]
    )
    amount_off = models.DecimalField(
        _("amount off"),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    max_usage = models.PositiveIntegerField(_("max usage"), null=True, blank=True)
    used_count = models.PositiveIntegerField(_("used count"), default=0)
    valid_from = models.DateTimeField(_("valid from"), null=True, blank=True)
    valid_until = models.DateTimeField(_("valid until"), null=True, blank=True)

    class Meta:
        verbose_name = _("coupon")
        verbose_name_plural = _("coupons")
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(percent_off__isnull=False, amount_off__isnull=True) |
                    models.Q(percent_off__isnull=True, amount_off__isnull=False)
                ),
                name='%(app_label)s_%(class)s_single_discount_kind'
            ),
            models.CheckConstraint(
                condition=models.Q(max_usage__isnull=True) | models.Q(used_count__lte=models.F('max_usage')),
                name='%(app_label)s_%(class)s_usage_within_limit'
            ),
        ]

    def __str__(self):
        scope = self.event.title if self.event_id else "global"
        return f"{self.code} ({scope})"

    def save(self, *args, **kwargs):
        """Codes are stored uppercase so lookups can be case-insensitive."""
        self.code = normalize_coupon_code(self.code)
        super().save(*args, **kwargs)

    def clean(self):
        from django.core.exceptions import ValidationError

        if (self.percent_off is None) == (self.amount_off is None):
            raise ValidationError(_("Set exactly one of percent off or amount off."))
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            raise ValidationError({'valid_until': _("Coupon cannot expire before it starts.")})
        super().clean()

    @property
    def is_global(self):
        return self.event_id is None

    @property
    def is_exhausted(self):
        return self.max_usage is not None and self.used_count >= self.max_usage

    @property
    def remaining_uses(self):
        if self.max_usage is None:
            return None
        return max(0, self.max_usage - self.used_count)


def normalize_coupon_code(code):
    return (code or '').strip().upper()


def generate_booking_code():
    """Generate the human-readable booking reference shown on tickets."""
    return f"BH-{uuid.uuid4().hex[:8].upper()}"


class Booking(BaseModel):
    """A user's purchase of ``quantity`` tickets of one tier."""

    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'

    STATUS_CHOICES = (
        (PENDING, _('Pending')),
        (CONFIRMED, _('Confirmed')),
        (CANCELLED, _('Cancelled')),
        (REFUNDED, _('Refunded')),
    )

    # CANCELLED and REFUNDED are terminal.
    TRANSITIONS = {
        PENDING: (CONFIRMED, CANCELLED),
        CONFIRMED: (REFUNDED,),
    }

    code = models.CharField(
        _("booking code"),
        max_length=20,
        unique=True,
        default=generate_booking_code
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='bookings',
        verbose_name=_("user"),
        null=True,
        blank=True
    )
    event = models.ForeignKey(
        Event,
        on_delete=models.PROTECT,
        related_name='bookings',
        verbose_name=_("event")
    )
    ticket_tier = models.ForeignKey(
        TicketTier,
        on_delete=models.PROTECT,
        related_name='bookings',
        verbose_name=_("ticket tier")
    )
    coupon = models.ForeignKey(
        Coupon,
        on_delete=models.SET_NULL,
        related_name='bookings',
        verbose_name=_("coupon"),
        null=True,
        blank=True
    )
    quantity = models.PositiveSmallIntegerField(_("quantity"))
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING
    )
    currency = models.CharField(_("currency"), max_length=3, default='INR')
    base_amount = models.DecimalField(_("base amount"), max_digits=10, decimal_places=2)
    group_discount_amount = models.DecimalField(
        _("group discount"), max_digits=10, decimal_places=2, default=0
    )
    coupon_discount_amount = models.DecimalField(
        _("coupon discount"), max_digits=10, decimal_places=2, default=0
    )
    total_amount = models.DecimalField(
        _("total amount"),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    expires_at = models.DateTimeField(
        _("expires at"),
        help_text=_("End of the provisional hold; unpaid bookings are released after this.")
    )
    confirmed_at = models.DateTimeField(_("confirmed at"), null=True, blank=True)
    cancelled_at = models.DateTimeField(_("cancelled at"), null=True, blank=True)
    refunded_at = models.DateTimeField(_("refunded at"), null=True, blank=True)
    cancellation_reason = models.CharField(_("cancellation reason"), max_length=255, blank=True)

    class Meta:
        verbose_name = _("booking")
        verbose_name_plural = _("bookings")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='events_book_status_1d3b0f_idx'),
            models.Index(fields=['ticket_tier', 'status'], name='events_book_ticket__8c2a41_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='%(app_label)s_%(class)s_quantity_positive'
            ),
        ]

    def __str__(self):
        return self.code

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_quantity = instance.__dict__.get('quantity')
        return instance

    def save(self, *args, **kwargs):
        loaded_quantity = getattr(self, '_loaded_quantity', None)
        if not self._state.adding and loaded_quantity is not None and loaded_quantity != self.quantity:
            raise ValueError(f"Booking {self.code} quantity is fixed at {loaded_quantity}")
        super().save(*args, **kwargs)
        self._loaded_quantity = self.quantity

    def can_transition_to(self, status):
        return status in self.TRANSITIONS.get(self.status, ())

    @property
    def pricing(self):
        """Return the persisted price breakdown."""
        from apps.events.services.pricing import PriceBreakdown

        return PriceBreakdown(
            base_amount=self.base_amount,
            group_discount_amount=self.group_discount_amount,
            coupon_discount_amount=self.coupon_discount_amount,
            total_amount=self.total_amount,
        )

    @property
    def is_pending(self):
        return self.status == self.PENDING

    @property
    def is_confirmed(self):
        return self.status == self.CONFIRMED

    @property
    def is_expired(self):
        return self.is_pending and self.expires_at <= timezone.now()

    @property
    def is_checked_in(self):
        return hasattr(self, 'check_in')


class CheckIn(BaseModel):
    """Redemption record of a confirmed booking at the venue."""

    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name='check_in',
        verbose_name=_("booking")
    )
    checked_in_at = models.DateTimeField(_("checked in at"), default=timezone.now)
    scanner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='scanned_check_ins',
        verbose_name=_("scanner"),
        null=True,
        blank=True
    )

    class Meta:
        verbose_name = _("check-in")
        verbose_name_plural = _("check-ins")
        ordering = ['-checked_in_at']

    def __str__(self):
        return f"{self.booking.code} @ {self.checked_in_at.isoformat()}"


class LoyaltyTransaction(BaseModel):
    """Points credited to (or debited from) a user's loyalty balance."""

    EVENT_BOOKING = 'event_booking'
    MANUAL_ADJUSTMENT = 'manual_adjustment'

    REASON_CHOICES = (
        (EVENT_BOOKING, _('Event booking')),
        (MANUAL_ADJUSTMENT, _('Manual adjustment')),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='loyalty_transactions',
        verbose_name=_("user")
    )
    points = models.IntegerField(_("points"))
    reason = models.CharField(_("reason"), max_length=50, choices=REASON_CHOICES)
    booking = models.ForeignKey(
        Booking,
        on_delete=models.SET_NULL,
        related_name='loyalty_transactions',
        verbose_name=_("booking"),
        null=True,
        blank=True
    )

    class Meta:
        verbose_name = _("loyalty transaction")
        verbose_name_plural = _("loyalty transactions")
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user_id}: {self.points:+d} ({self.reason})"
