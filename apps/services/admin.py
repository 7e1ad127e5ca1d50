# apps/services/admin.py
from django.contrib import admin
from .models import Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "estimated_minutes", "per_teeth_service", "per_tooth_minutes", "is_active")
    list_editable = ("is_active",)
    list_filter = ("is_active", "per_teeth_service")
    prepopulated_fields = {"slug": ("name",)}
    search_fields = ("name",)
