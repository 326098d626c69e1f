from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from lims_core.iam.models import User


@admin.register(User)
class LimsUserAdmin(UserAdmin):
    list_display = ("username", "email", "is_active", "is_staff", "last_login")
    readonly_fields = ("last_login", "date_joined")
