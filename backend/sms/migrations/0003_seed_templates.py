from django.db import migrations


TEMPLATE_VARIABLES = ["customer_name", "service_name", "appointment_date", "appointment_time", "app_name"]

OPT_OUT_TEXT = {
    "pl": "Wyslij STOP aby zrezygnowac",
    "en": "Reply STOP to opt-out",
}

TEMPLATES = [
    ("appointment-created", "pl", "Witaj {{customer_name}}! Rezerwacja na {{service_name}} dnia {{appointment_date}} o {{appointment_time}} utworzona. {{app_name}}", TEMPLATE_VARIABLES),
    ("appointment-created", "en", "Hi {{customer_name}}! Your {{service_name}} booking on {{appointment_date}} at {{appointment_time}} is confirmed. {{app_name}}", TEMPLATE_VARIABLES),
    ("appointment-confirmed", "pl", "Witaj {{customer_name}}! Twoja wizyta ({{service_name}}) {{appointment_date}} o {{appointment_time}} potwierdzona. Do zobaczenia! {{app_name}}", TEMPLATE_VARIABLES),
    ("appointment-confirmed", "en", "Hi {{customer_name}}! Your appointment ({{service_name}}) on {{appointment_date}} at {{appointment_time}} is confirmed. See you! {{app_name}}", TEMPLATE_VARIABLES),
    ("appointment-rescheduled", "pl", "Witaj {{customer_name}}! Twoja wizyta ({{service_name}}) przeniesiona na {{appointment_date}} o {{appointment_time}}. {{app_name}}", TEMPLATE_VARIABLES),
    ("appointment-rescheduled", "en", "Hi {{customer_name}}! Your appointment ({{service_name}}) has been rescheduled to {{appointment_date}} at {{appointment_time}}. {{app_name}}", TEMPLATE_VARIABLES),
    ("appointment-cancelled", "pl", "Witaj {{customer_name}}! Twoja wizyta ({{service_name}}) {{appointment_date}} o {{appointment_time}} anulowana. Kontakt: {{contact_phone}}. {{app_name}}", TEMPLATE_VARIABLES + ["contact_phone"]),
    ("appointment-cancelled", "en", "Hi {{customer_name}}! Your appointment ({{service_name}}) on {{appointment_date}} at {{appointment_time}} has been cancelled. Contact: {{contact_phone}}. {{app_name}}", TEMPLATE_VARIABLES + ["contact_phone"]),
    ("appointment-reminder-24h", "pl", "Przypomnienie! Jutro masz wizyte: {{service_name}}, {{appointment_date}} o {{appointment_time}}. Lokalizacja: {{location_address}}. {{app_name}}", ["service_name", "appointment_date", "appointment_time", "location_address", "app_name"]),
    ("appointment-reminder-24h", "en", "Reminder! Your appointment tomorrow: {{service_name}}, {{appointment_date}} at {{appointment_time}}. Location: {{location_address}}. {{app_name}}", ["service_name", "appointment_date", "appointment_time", "location_address", "app_name"]),
    ("appointment-reminder-2h", "pl", "Przypomnienie! Za 2h wizyta: {{service_name}} o {{appointment_time}}. Lokalizacja: {{location_address}}. Do zobaczenia! {{app_name}}", ["service_name", "appointment_time", "location_address", "app_name"]),
    ("appointment-reminder-2h", "en", "Reminder! In 2 hours: {{service_name}} at {{appointment_time}}. Location: {{location_address}}. See you soon! {{app_name}}", ["service_name", "appointment_time", "location_address", "app_name"]),
    ("appointment-followup", "pl", "Witaj {{customer_name}}! Dziekujemy za skorzystanie z {{service_name}}. Bylibysmy wdzieczni za opinie. {{app_name}} {{contact_phone}}", ["customer_name", "service_name", "app_name", "contact_phone"]),
    ("appointment-followup", "en", "Hi {{customer_name}}! Thank you for using {{service_name}}. We would appreciate your feedback. {{app_name}} {{contact_phone}}", ["customer_name", "service_name", "app_name", "contact_phone"]),
]


def seed_templates(apps, schema_editor):
    SmsTemplate = apps.get_model("sms", "SmsTemplate")
    for key, language, body, variables in TEMPLATES:
        SmsTemplate.objects.update_or_create(
            key=key,
            language=language,
            defaults={
                "message_body": body,
                "opt_out_text": OPT_OUT_TEXT[language],
                "variables": variables,
                "max_length": 160,
                "active": True,
            },
        )


def unseed_templates(apps, schema_editor):
    SmsTemplate = apps.get_model("sms", "SmsTemplate")
    for key, language, _body, _variables in TEMPLATES:
        SmsTemplate.objects.filter(key=key, language=language).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("sms", "0002_opt_out_preferences_and_settings"),
    ]

    operations = [
        migrations.RunPython(seed_templates, unseed_templates),
    ]
