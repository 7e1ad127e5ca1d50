from django.contrib import admin
from .models import RefundRequest, RefundSetting


@admin.register(RefundSetting)
class RefundSettingAdmin(admin.ModelAdmin):
    list_display = ("processing_business_days", "reminder_days", "updated_at")

    def has_add_permission(self, request):
        # singleton
        return not RefundSetting.objects.exists()


@admin.register(RefundRequest)
class RefundRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "refund_amount", "status", "requested_at", "deadline_at")
    list_filter = ("status",)
    search_fields = ("patient__given_name", "patient__family_name", "reason")
    readonly_fields = ("deadline_at", "created_at", "updated_at")
