"""
Django admin configuration for Users app
"""

from typing import ClassVar

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User, UserProfile


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    readonly_fields = ('loyalty_points', 'spin_credits')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Email-based user admin with the loyalty profile inline"""

    list_display: ClassVar[list[str]] = (
        'email', 'get_full_name', 'staff_role', 'is_staff', 'is_active', 'date_joined'
    )
    list_filter: ClassVar[list[str]] = ('staff_role', 'is_staff', 'is_active')
    search_fields: ClassVar[list[str]] = ('email', 'first_name', 'last_name')
    ordering: ClassVar[list[str]] = ('email',)
    inlines: ClassVar[list] = [UserProfileInline]

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name', 'phone')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'staff_role')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'staff_role'),
        }),
    )
