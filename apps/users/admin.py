"""Admin registrations for the users domain."""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (_("Personal info"), {"fields": ("username", "first_name", "last_name")}),
        (_("Payouts"), {"fields": ("payout_token", "income")}),
        (
            _("Permissions"),
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "password1", "password2")}),
    )
    list_display = ("email", "username", "is_payable", "income", "is_staff", "created_at")
    list_filter = ("is_staff", "is_superuser", "is_active")
    search_fields = ("email", "username", "first_name", "last_name")
    ordering = ("-created_at",)
    readonly_fields = ("income", "last_login", "date_joined", "created_at", "updated_at")

    @admin.display(boolean=True, description=_("Payable"))
    def is_payable(self, obj: CustomUser) -> bool:
        return obj.is_payable

    def save_model(self, request, obj, form, change):  # type: ignore
        if not change:
            super().save_model(request, obj, form, change)
            return
        # income is only ever incremented by booking commits
        fields = [f.name for f in obj._meta.concrete_fields if f.name not in ("id", "income")]
        obj.save(update_fields=fields)
