import django_filters

from .gateway import normalize_provider_number
from .models import SmsSend


class SmsSendFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=SmsSend.STATUS_CHOICES)
    template_key = django_filters.CharFilter(field_name="template_key")
    language = django_filters.CharFilter(field_name="language")
    phone = django_filters.CharFilter(method="filter_phone")
    created_after = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lt")

    class Meta:
        model = SmsSend
        fields: list[str] = []

    def filter_phone(self, queryset, name, value):
        # Accepts "+48 501 234 567" as well as the bare "48501234567" shown in SMSAPI panels.
        phone = normalize_provider_number(value)
        if not phone:
            return queryset
        return queryset.filter(phone_to=phone)
