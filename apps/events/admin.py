from django.contrib import admin
from .models import Event, TicketTier, Coupon, Booking, CheckIn, LoyaltyTransaction


class TicketTierInline(admin.TabularInline):
    model = TicketTier
    extra = 0
    readonly_fields = ('total_sold',)


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('title', 'organizer', 'status', 'start_at', 'end_at', 'location', 'created_at')
    search_fields = ('title', 'organizer__email', 'location', 'description')
    list_filter = ('status', 'start_at')
    readonly_fields = ('created_at', 'updated_at', 'slug')
    ordering = ('-start_at',)
    inlines = [TicketTierInline]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ('code', 'event', 'percent_off', 'amount_off', 'used_count', 'max_usage', 'valid_until')
    search_fields = ('code', 'event__title')
    list_filter = ('valid_until',)
    readonly_fields = ('used_count', 'created_at', 'updated_at')


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """
    Bookings are read-only here: status and counters only change through the
    reservation ledger.
    """
    list_display = ('code', 'event', 'ticket_tier', 'user', 'quantity', 'total_amount', 'status', 'expires_at', 'created_at')
    search_fields = ('code', 'user__email', 'event__title')
    list_filter = ('status', 'event')
    readonly_fields = [field.name for field in Booking._meta.fields]
    ordering = ('-created_at',)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('event', 'ticket_tier', 'user')

    def has_add_permission(self, request):
        return False


@admin.register(CheckIn)
class CheckInAdmin(admin.ModelAdmin):
    list_display = ('booking', 'checked_in_at', 'scanner')
    search_fields = ('booking__code',)
    readonly_fields = ('created_at', 'updated_at')


@admin.register(LoyaltyTransaction)
class LoyaltyTransactionAdmin(admin.ModelAdmin):
    list_display = ('user', 'points', 'reason', 'booking', 'created_at')
    search_fields = ('user__email', 'booking__code')
    list_filter = ('reason',)
