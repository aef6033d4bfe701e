from django.contrib import admin
from .models import Payment, PaymentTransaction


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('provider_payment_id', 'booking', 'provider', 'amount', 'currency', 'status', 'captured_at')
    search_fields = ('provider_payment_id', 'provider_order_id', 'booking__code')
    list_filter = ('provider', 'status')
    readonly_fields = ('created_at', 'updated_at')


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ('transaction_type', 'reference', 'booking', 'is_successful', 'duration_ms', 'created_at')
    search_fields = ('reference', 'booking__code')
    list_filter = ('transaction_type', 'is_successful')
    readonly_fields = ('created_at', 'updated_at')
