from django.contrib import admin
from .models import SmsEvent, SmsPreference, SmsSend, SmsSettings, SmsSuppression, SmsTemplate


class SmsEventInline(admin.TabularInline):
	model = SmsEvent
	extra = 0
	fields = ("event_type", "occurred_at", "event_data")
	readonly_fields = fields
	can_delete = False


@admin.register(SmsSend)
class SmsSendAdmin(admin.ModelAdmin):
	list_display = (
		"id",
		"phone_to",
		"template_key",
		"language",
		"status",
		"message_parts",
		"sent_at",
		"created_at",
	)
	search_fields = ("phone_to", "template_key", "message_key", "provider_message_id")
	list_filter = ("status", "language", "created_at")
	readonly_fields = ("message_key", "provider_message_id", "message_length", "message_parts", "created_at", "updated_at")
	inlines = [SmsEventInline]


@admin.register(SmsEvent)
class SmsEventAdmin(admin.ModelAdmin):
	list_display = ("id", "sms_send", "event_type", "occurred_at")
	search_fields = ("sms_send__phone_to", "sms_send__provider_message_id")
	list_filter = ("event_type", "occurred_at")


@admin.register(SmsTemplate)
class SmsTemplateAdmin(admin.ModelAdmin):
	list_display = ("key", "language", "max_length", "active", "updated_at")
	search_fields = ("key", "message_body")
	list_filter = ("language", "active")


@admin.register(SmsSuppression)
class SmsSuppressionAdmin(admin.ModelAdmin):
	list_display = ("phone", "reason", "suppressed_at", "created_at")
	search_fields = ("phone",)
	list_filter = ("reason", "suppressed_at")


@admin.register(SmsPreference)
class SmsPreferenceAdmin(admin.ModelAdmin):
	list_display = ("phone", "sms_opt_in", "marketing_opt_in", "opted_out_at", "updated_at")
	search_fields = ("phone",)
	list_filter = ("sms_opt_in", "marketing_opt_in")


@admin.register(SmsSettings)
class SmsSettingsAdmin(admin.ModelAdmin):
	list_display = ("id", "enabled", "service", "sender_name", "test_mode", "daily_limit", "monthly_limit", "updated_at")
