from django.urls import path

from .views import SmsApiDeliveryStatusView, SmsApiIncomingView, SmsSendListView, SmsTestSendView


urlpatterns = [
    path("webhooks/delivery-status/", SmsApiDeliveryStatusView.as_view(), name="sms_delivery_status_webhook"),
    path("webhooks/incoming/", SmsApiIncomingView.as_view(), name="sms_incoming_webhook"),
    path("sends/", SmsSendListView.as_view(), name="sms_send_list"),
    path("test/", SmsTestSendView.as_view(), name="sms_test_send"),
]
