from django.contrib import admin
from .models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ("id", "action", "category", "actor", "object_type", "object_id", "ip", "created_at")
    search_fields = ("action", "object_type", "object_id", "message", "actor__username", "ip")
    list_filter = ("category", "action", "object_type")
    readonly_fields = ("context",)
