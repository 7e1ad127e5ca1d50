from django.contrib import admin
from .models import Practitioner


@admin.register(Practitioner)
class PractitionerAdmin(admin.ModelAdmin):
    list_display = (
        "code", "name", "status", "employment_type", "contract_end_date",
        "mon", "tue", "wed", "thu", "fri", "sat", "sun",
    )
    list_filter = ("status", "employment_type")
    search_fields = ("code", "name", "email")
