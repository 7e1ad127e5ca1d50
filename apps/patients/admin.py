from django.contrib import admin
from .models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("id", "family_name", "given_name", "email", "phone", "user", "is_active")
    list_filter = ("is_active",)
    search_fields = ("given_name", "family_name", "email", "phone")
    raw_id_fields = ("user",)
