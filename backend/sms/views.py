from __future__ import annotations

import hmac
import logging

from django.conf import settings
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from core.utils.privacy import mask_phone

from .exceptions import SmsError
from .filters import SmsSendFilter
from .gateway import normalize_provider_number
from .models import SmsEvent, SmsSend, SmsSuppression
from .preferences import is_opt_out_message, revoke_consent
from .serializers import (
	DeliveryStatusSerializer,
	IncomingMessageSerializer,
	SmsSendSerializer,
	SmsTestSendSerializer,
)
from .services import build_sms_service
from .suppression import suppress


logger = logging.getLogger(__name__)


FAILED_REPEATEDLY_THRESHOLD = 3

SMSAPI_STATUS_MAP = {
	"SENT": SmsSend.STATUS_SENT,
	"QUEUE": SmsSend.STATUS_SENT,
	"DELIVERED": SmsSend.STATUS_DELIVERED,
	"ACCEPTED": SmsSend.STATUS_DELIVERED,
	"FAILED": SmsSend.STATUS_FAILED,
	"REJECTED": SmsSend.STATUS_FAILED,
	"ERROR": SmsSend.STATUS_FAILED,
	"INVALID": SmsSend.STATUS_INVALID_NUMBER,
	"INVALID_NUMBER": SmsSend.STATUS_INVALID_NUMBER,
	"INVALID_SENDER": SmsSend.STATUS_INVALID_NUMBER,
	"EXPIRED": SmsSend.STATUS_EXPIRED,
	"NOT_DELIVERED": SmsSend.STATUS_EXPIRED,
}


def map_smsapi_status(value: str) -> str:
	return SMSAPI_STATUS_MAP.get(str(value or "").strip().upper(), SmsSend.STATUS_FAILED)


def _request_payload(request) -> dict:
	payload = request.query_params.dict()
	payload.pop("secret", None)
	data = request.data
	if hasattr(data, "dict"):
		data = data.dict()
	if isinstance(data, dict):
		payload.update(data)
	return payload


def _is_valid_webhook_secret(request) -> bool:
	expected = str(getattr(settings, "SMSAPI_WEBHOOK_SECRET", "") or "").strip()
	if not expected:
		return True
	provided = str(
		request.query_params.get("secret")
		or request.headers.get("X-Smsapi-Secret")
		or ""
	).strip()
	return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def _advance_status(sms_send: SmsSend, new_status: str) -> bool:
	current_priority = SmsSend.STATUS_PRIORITY.get(sms_send.status, 0)
	new_priority = SmsSend.STATUS_PRIORITY.get(new_status, 0)
	if new_priority <= current_priority:
		return False

	old_status = sms_send.status
	sms_send.status = new_status
	sms_send.save(update_fields=["status", "updated_at"])
	logger.info(
		"sms.webhook.status_updated",
		extra={"sms_send_id": sms_send.id, "old_status": old_status, "new_status": new_status},
	)
	return True


def _handle_suppression(*, sms_send: SmsSend, event_type: str, phone: str) -> None:
	# The stored recipient is what dispatch checks; the callback number is only a fallback.
	phone = sms_send.phone_to or normalize_provider_number(phone)
	if not phone:
		return

	if event_type == SmsSend.STATUS_INVALID_NUMBER:
		suppress(phone, SmsSuppression.REASON_INVALID_NUMBER)
		return

	if event_type != SmsSend.STATUS_FAILED:
		return

	failure_count = SmsSend.objects.filter(phone_to=phone, status=SmsSend.STATUS_FAILED).count()
	if failure_count >= FAILED_REPEATEDLY_THRESHOLD:
		suppress(phone, SmsSuppression.REASON_FAILED_REPEATEDLY)
		logger.warning(
			"sms.webhook.failed_repeatedly",
			extra={"phone": mask_phone(phone), "failure_count": failure_count},
		)


@method_decorator(csrf_exempt, name="dispatch")
class SmsApiDeliveryStatusView(APIView):
	permission_classes = [AllowAny]
	authentication_classes = []

	def post(self, request, *args, **kwargs):
		if not _is_valid_webhook_secret(request):
			logger.warning("sms.webhook.invalid_secret")
			return Response({"detail": "Invalid webhook secret."}, status=status.HTTP_403_FORBIDDEN)

		serializer = DeliveryStatusSerializer(data=_request_payload(request))
		if not serializer.is_valid():
			logger.error("sms.webhook.validation_failed", extra={"errors": serializer.errors})
			return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

		data = serializer.validated_data
		provider_message_id = data["id"].strip()
		provider_status = data["status"].strip()

		sms_send = SmsSend.objects.filter(provider_message_id=provider_message_id).first()
		if sms_send is None:
			logger.warning(
				"sms.webhook.unknown_message",
				extra={"provider_message_id": provider_message_id, "status": provider_status},
			)
			# 200 so SMSAPI stops retrying ids we never sent.
			return Response({"detail": "SMS send not found, webhook accepted."}, status=status.HTTP_200_OK)

		event_type = map_smsapi_status(provider_status)
		SmsEvent.objects.create(
			sms_send=sms_send,
			event_type=event_type,
			occurred_at=timezone.now(),
			event_data={
				"smsapi_status": provider_status,
				"error_code": data.get("error_code") or None,
				"date_sent": data.get("date_sent") or None,
			},
		)

		_advance_status(sms_send, event_type)
		_handle_suppression(sms_send=sms_send, event_type=event_type, phone=data.get("to") or "")

		logger.info(
			"sms.webhook.processed",
			extra={"provider_message_id": provider_message_id, "event_type": event_type, "sms_send_id": sms_send.id},
		)
		return Response({"detail": "Processed"}, status=status.HTTP_200_OK)

	def get(self, request, *args, **kwargs):
		return self.post(request, *args, **kwargs)


@method_decorator(csrf_exempt, name="dispatch")
class SmsApiIncomingView(APIView):
	permission_classes = [AllowAny]
	authentication_classes = []

	def post(self, request, *args, **kwargs):
		if not _is_valid_webhook_secret(request):
			logger.warning("sms.incoming.invalid_secret")
			return Response({"detail": "Invalid webhook secret."}, status=status.HTTP_403_FORBIDDEN)

		serializer = IncomingMessageSerializer(data=_request_payload(request))
		if not serializer.is_valid():
			logger.error("sms.incoming.validation_failed", extra={"errors": serializer.errors})
			return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

		phone = normalize_provider_number(serializer.validated_data["sms_from"])
		message = serializer.validated_data["message"]

		if not is_opt_out_message(message):
			logger.info("sms.incoming.received", extra={"phone": mask_phone(phone)})
			return Response({"detail": "Message received"}, status=status.HTTP_200_OK)

		suppress(phone, SmsSuppression.REASON_OPTED_OUT)
		revoke_consent(phone)
		logger.info("sms.incoming.opt_out", extra={"phone": mask_phone(phone)})
		return Response({"detail": "Opt-out request processed"}, status=status.HTTP_200_OK)


class SmsSendListView(generics.ListAPIView):
	queryset = SmsSend.objects.all().order_by("-created_at", "-id")
	serializer_class = SmsSendSerializer
	permission_classes = [IsAdminUser]
	filterset_class = SmsSendFilter


class SmsTestSendView(APIView):
	permission_classes = [IsAdminUser]

	def post(self, request, *args, **kwargs):
		serializer = SmsTestSendSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		service = build_sms_service()
		try:
			sms_send = service.send_test_sms(
				serializer.validated_data["phone"],
				language=serializer.validated_data["language"],
			)
		except SmsError as exc:
			logger.warning("sms.test.failed", extra={"code": exc.code, "error": str(exc)})
			return Response(
				{"detail": str(exc), "code": exc.code},
				status=status.HTTP_400_BAD_REQUEST,
			)

		return Response(SmsSendSerializer(sms_send).data, status=status.HTTP_200_OK)
