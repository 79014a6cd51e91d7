from django.contrib import admin  # type: ignore
from django.db.models import F  # type: ignore

from .models import Listing


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "city", "host", "price", "version", "created_at")
    list_filter = ("listing_type", "city")
    search_fields = ("title", "city", "host__email")
    readonly_fields = ("availability", "version", "created_at", "updated_at")

    def save_model(self, request, obj, form, change):  # type: ignore
        if not change:
            super().save_model(request, obj, form, change)
            return
        # Never write back a stale availability index
        changed = {name: getattr(obj, name) for name in form.changed_data}
        if changed:
            Listing.objects.filter(pk=obj.pk).update(version=F("version") + 1, **changed)
