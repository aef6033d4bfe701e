"""
🚀 ENTERPRISE PAYMENT URLs
"""

from django.urls import path
from .views import CreateOrderView, VerifyPaymentView, RazorpayWebhookView

app_name = 'payment_processor'

urlpatterns = [
    path('create-order/', CreateOrderView.as_view(), name='create-order'),
    path('verify/', VerifyPaymentView.as_view(), name='verify'),
    path('webhook/', RazorpayWebhookView.as_view(), name='webhook'),
]
