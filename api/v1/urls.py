"""URL Configuration for API v1."""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from api.v1.bookings.views import BookingViewSet
from api.v1.coupons.views import CouponViewSet
from api.v1.events.views import EventViewSet, TicketTierViewSet

router = DefaultRouter()
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'coupons', CouponViewSet, basename='coupon')
router.register(r'events', EventViewSet, basename='event')
router.register(r'ticket-tiers', TicketTierViewSet, basename='ticket-tier')

urlpatterns = [
    path('', include(router.urls)),
    path('auth/', include('api.v1.auth.urls')),
    path('', include('api.v1.checkin.urls')),
    path('', include('api.v1.loyalty.urls')),
    path('payments/', include('payment_processor.urls')),
]
