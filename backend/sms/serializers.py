from rest_framework import serializers

from .gateway import normalize_phone_number, validate_phone_number
from .models import SmsSend


class SmsSendSerializer(serializers.ModelSerializer):
    class Meta:
        model = SmsSend
        fields = [
            "id",
            "template_key",
            "language",
            "phone_to",
            "status",
            "sent_at",
            "provider_message_id",
            "message_length",
            "message_parts",
            "error_message",
            "created_at",
        ]
        read_only_fields = fields


class SmsTestSendSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=32)
    language = serializers.ChoiceField(choices=["pl", "en"], default="pl")

    def validate_phone(self, value: str) -> str:
        normalized = normalize_phone_number(value)
        if not validate_phone_number(normalized):
            raise serializers.ValidationError("Numer telefonu musi być w formacie międzynarodowym, np. +48501234567.")
        return normalized


class DeliveryStatusSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=100)
    status = serializers.CharField(max_length=50)
    to = serializers.CharField(max_length=32, required=False, allow_blank=True)
    date_sent = serializers.CharField(max_length=50, required=False, allow_blank=True)
    error_code = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def to_internal_value(self, data):
        # SMSAPI callbacks name the message id MsgId.
        if hasattr(data, "dict"):
            data = data.dict()
        data = dict(data)
        if not data.get("id") and data.get("MsgId"):
            data["id"] = data["MsgId"]
        return super().to_internal_value(data)


class IncomingMessageSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    sms_from = serializers.CharField(max_length=32)
    message = serializers.CharField(allow_blank=False)

    def to_internal_value(self, data):
        if hasattr(data, "dict"):
            data = data.dict()
        data = dict(data)
        if "sms_from" not in data and "from" in data:
            data["sms_from"] = data["from"]
        return super().to_internal_value(data)
