from django.db import migrations, models


def seed_opt_out_text(apps, schema_editor):
    SmsTemplate = apps.get_model("sms", "SmsTemplate")
    SmsTemplate.objects.filter(language="pl").update(opt_out_text="Wyslij STOP aby zrezygnowac")
    SmsTemplate.objects.filter(language="en").update(opt_out_text="Reply STOP to opt-out")


class Migration(migrations.Migration):

    dependencies = [
        ("sms", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="smstemplate",
            name="opt_out_text",
            field=models.CharField(blank=True, default="", max_length=100),
        ),
        migrations.RunPython(seed_opt_out_text, migrations.RunPython.noop),
        migrations.CreateModel(
            name="SmsPreference",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone", models.CharField(max_length=20, unique=True)),
                ("sms_opt_in", models.BooleanField(default=True)),
                ("marketing_opt_in", models.BooleanField(default=False)),
                ("opted_out_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["-updated_at"]},
        ),
        migrations.CreateModel(
            name="SmsSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("enabled", models.BooleanField(default=True)),
                (
                    "service",
                    models.CharField(
                        choices=[("pl", "SMSAPI.pl"), ("com", "SMSAPI.com")],
                        default="pl",
                        max_length=10,
                    ),
                ),
                ("sender_name", models.CharField(default="Paradocks", max_length=11)),
                ("test_mode", models.BooleanField(default=False)),
                ("daily_limit", models.PositiveIntegerField(default=500)),
                ("monthly_limit", models.PositiveIntegerField(default=10000)),
                ("alert_threshold", models.PositiveSmallIntegerField(default=80)),
                ("alert_email", models.EmailField(blank=True, default="", max_length=254)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["-updated_at"], "verbose_name_plural": "SMS settings"},
        ),
    ]
