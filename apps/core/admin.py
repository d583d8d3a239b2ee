"""
Admin interface for staff profiles.

Role and bio edits go through ``update_staff_user`` so that the
``user_updated`` channel (and with it the role cache) sees them.
"""

from django.contrib import admin

from .models import StaffProfile
from .services import PROFILE_FIELDS, update_staff_user


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'last_active_at', 'created_at']
    list_filter = ['role']
    search_fields = ['user__username', 'user__email']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_active_at']
    raw_id_fields = ['user']

    def get_readonly_fields(self, request, obj=None):
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            readonly.append('user')
        return readonly

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return

        data = {name: form.cleaned_data[name] for name in PROFILE_FIELDS if name in form.changed_data}
        if data:
            update_staff_user(obj.user, data)
