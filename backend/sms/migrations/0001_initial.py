import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SmsTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(db_index=True, max_length=255)),
                ("language", models.CharField(db_index=True, max_length=2)),
                ("message_body", models.TextField()),
                ("variables", models.JSONField(blank=True, default=list)),
                ("max_length", models.PositiveIntegerField(default=160)),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["key", "language"]},
        ),
        migrations.AddConstraint(
            model_name="smstemplate",
            constraint=models.UniqueConstraint(fields=("key", "language"), name="sms_template_unique_key_language"),
        ),
        migrations.CreateModel(
            name="SmsSend",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("template_key", models.CharField(db_index=True, max_length=255)),
                ("language", models.CharField(max_length=2)),
                ("phone_to", models.CharField(db_index=True, max_length=20)),
                ("message_body", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("sent", "Sent"),
                            ("delivered", "Delivered"),
                            ("failed", "Failed"),
                            ("invalid_number", "Invalid number"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("sent_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("message_key", models.CharField(max_length=64, unique=True)),
                ("error_message", models.TextField(blank=True, default="")),
                ("provider_message_id", models.CharField(blank=True, db_index=True, default="", max_length=100)),
                ("message_length", models.PositiveIntegerField(default=0)),
                ("message_parts", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="SmsEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("sent", "Sent"),
                            ("delivered", "Delivered"),
                            ("failed", "Failed"),
                            ("invalid_number", "Invalid number"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("event_data", models.JSONField(blank=True, default=dict)),
                ("occurred_at", models.DateTimeField(db_index=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "sms_send",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="sms.smssend",
                    ),
                ),
            ],
            options={"ordering": ["-occurred_at"]},
        ),
        migrations.CreateModel(
            name="SmsSuppression",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone", models.CharField(max_length=20, unique=True)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("invalid_number", "Invalid number"),
                            ("opted_out", "Opted out"),
                            ("failed_repeatedly", "Failed repeatedly"),
                            ("manual", "Manual"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                ("suppressed_at", models.DateTimeField(db_index=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["-suppressed_at"]},
        ),
    ]
