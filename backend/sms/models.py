from django.db import models


class SmsSettings(models.Model):
	SERVICE_PL = "pl"
	SERVICE_COM = "com"

	SERVICE_CHOICES = [
		(SERVICE_PL, "SMSAPI.pl"),
		(SERVICE_COM, "SMSAPI.com"),
	]

	enabled = models.BooleanField(default=True)
	service = models.CharField(max_length=10, choices=SERVICE_CHOICES, default=SERVICE_PL)
	sender_name = models.CharField(max_length=11, default="Paradocks")
	test_mode = models.BooleanField(default=False)
	daily_limit = models.PositiveIntegerField(default=500)
	monthly_limit = models.PositiveIntegerField(default=10000)
	alert_threshold = models.PositiveSmallIntegerField(default=80)
	alert_email = models.EmailField(blank=True, default="")
	updated_at = models.DateTimeField(auto_now=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["-updated_at"]
		verbose_name_plural = "SMS settings"

	def __str__(self) -> str:
		return f"SmsSettings enabled={self.enabled} service={self.service}"


class SmsTemplate(models.Model):
	key = models.CharField(max_length=255, db_index=True)
	language = models.CharField(max_length=2, db_index=True)
	message_body = models.TextField()
	opt_out_text = models.CharField(max_length=100, blank=True, default="")
	variables = models.JSONField(default=list, blank=True)
	max_length = models.PositiveIntegerField(default=160)
	active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["key", "language"]
		constraints = [
			models.UniqueConstraint(fields=["key", "language"], name="sms_template_unique_key_language"),
		]

	def __str__(self) -> str:
		return f"{self.key} [{self.language}]"


class SmsSend(models.Model):
	STATUS_PENDING = "pending"
	STATUS_SENT = "sent"
	STATUS_DELIVERED = "delivered"
	STATUS_FAILED = "failed"
	STATUS_INVALID_NUMBER = "invalid_number"
	STATUS_EXPIRED = "expired"

	STATUS_CHOICES = [
		(STATUS_PENDING, "Pending"),
		(STATUS_SENT, "Sent"),
		(STATUS_DELIVERED, "Delivered"),
		(STATUS_FAILED, "Failed"),
		(STATUS_INVALID_NUMBER, "Invalid number"),
		(STATUS_EXPIRED, "Expired"),
	]

	# Higher priority wins; provider callbacks never move a send backwards.
	STATUS_PRIORITY = {
		STATUS_PENDING: 0,
		STATUS_SENT: 1,
		STATUS_DELIVERED: 2,
		STATUS_FAILED: 2,
		STATUS_INVALID_NUMBER: 2,
		STATUS_EXPIRED: 2,
	}

	template_key = models.CharField(max_length=255, db_index=True)
	language = models.CharField(max_length=2)
	phone_to = models.CharField(max_length=20, db_index=True)
	message_body = models.TextField()
	status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
	sent_at = models.DateTimeField(blank=True, null=True, db_index=True)
	metadata = models.JSONField(default=dict, blank=True)
	message_key = models.CharField(max_length=64, unique=True)
	error_message = models.TextField(blank=True, default="")
	provider_message_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
	message_length = models.PositiveIntegerField(default=0)
	message_parts = models.PositiveIntegerField(default=1)
	created_at = models.DateTimeField(auto_now_add=True, db_index=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at"]

	def __str__(self) -> str:
		return f"{self.phone_to} - {self.template_key} ({self.status})"

	@property
	def is_terminal(self) -> bool:
		return self.STATUS_PRIORITY.get(self.status, 0) >= 2


class SmsEvent(models.Model):
	EVENT_SENT = "sent"
	EVENT_DELIVERED = "delivered"
	EVENT_FAILED = "failed"
	EVENT_INVALID_NUMBER = "invalid_number"
	EVENT_EXPIRED = "expired"

	EVENT_CHOICES = [
		(EVENT_SENT, "Sent"),
		(EVENT_DELIVERED, "Delivered"),
		(EVENT_FAILED, "Failed"),
		(EVENT_INVALID_NUMBER, "Invalid number"),
		(EVENT_EXPIRED, "Expired"),
	]

	sms_send = models.ForeignKey(SmsSend, on_delete=models.CASCADE, related_name="events")
	event_type = models.CharField(max_length=20, choices=EVENT_CHOICES, db_index=True)
	event_data = models.JSONField(default=dict, blank=True)
	occurred_at = models.DateTimeField(db_index=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["-occurred_at"]

	def __str__(self) -> str:
		return f"{self.sms_send_id}:{self.event_type}"


class SmsSuppression(models.Model):
	REASON_INVALID_NUMBER = "invalid_number"
	REASON_OPTED_OUT = "opted_out"
	REASON_FAILED_REPEATEDLY = "failed_repeatedly"
	REASON_MANUAL = "manual"

	REASON_CHOICES = [
		(REASON_INVALID_NUMBER, "Invalid number"),
		(REASON_OPTED_OUT, "Opted out"),
		(REASON_FAILED_REPEATEDLY, "Failed repeatedly"),
		(REASON_MANUAL, "Manual"),
	]

	phone = models.CharField(max_length=20, unique=True)
	reason = models.CharField(max_length=30, choices=REASON_CHOICES, db_index=True)
	suppressed_at = models.DateTimeField(db_index=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-suppressed_at"]

	def __str__(self) -> str:
		return f"{self.phone} ({self.reason})"


class SmsPreference(models.Model):
	phone = models.CharField(max_length=20, unique=True)
	sms_opt_in = models.BooleanField(default=True)
	marketing_opt_in = models.BooleanField(default=False)
	opted_out_at = models.DateTimeField(blank=True, null=True)
	updated_at = models.DateTimeField(auto_now=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["-updated_at"]

	def __str__(self) -> str:
		return f"{self.phone} sms_opt_in={self.sms_opt_in} marketing_opt_in={self.marketing_opt_in}"
