from django.contrib import admin  # type: ignore

from .models import Booking, RefundReconciliation


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "tenant", "check_in", "check_out", "total_price", "created_at")
    list_filter = ("check_in",)
    search_fields = ("id", "charge_id", "tenant__email", "listing__title")
    readonly_fields = [f.name for f in Booking._meta.fields]

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(RefundReconciliation)
class RefundReconciliationAdmin(admin.ModelAdmin):
    list_display = ("id", "charge_id", "amount", "status", "attempts", "created_at")
    list_filter = ("status",)
    search_fields = ("charge_id", "refund_id")
    readonly_fields = ("charge_id", "amount", "listing_id", "tenant_id", "reason", "attempts", "refund_id", "last_error")
    exclude = ("host_payout_token",)
