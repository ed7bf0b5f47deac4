from django.contrib import admin
from .models import (
    Event, EventStaff, Registration, Team, TeamMember, Ticket, Attendance
)

@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('title', 'event_type', 'status', 'organizer', 'start_time', 'registration_limit', 'registered_count')
    list_filter = ('status', 'event_type', 'team_registration_enabled', 'start_time')
    search_fields = ('title', 'description', 'organizer__username')
    date_hierarchy = 'start_time'
    # Only ever moved by the capacity gate.
    readonly_fields = ('registered_count',)

@admin.register(EventStaff)
class EventStaffAdmin(admin.ModelAdmin):
    list_display = ('user', 'event', 'role', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('user__username', 'event__title')

@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ('participant', 'event', 'kind', 'status', 'team', 'created_at')
    list_filter = ('status', 'kind')
    search_fields = ('participant__username', 'participant__email', 'event__title')
    raw_id_fields = ('participant', 'event', 'team')

class TeamMemberInline(admin.TabularInline):
    model = TeamMember
    extra = 0
    readonly_fields = ('user', 'is_active', 'joined_at')
    can_delete = False

@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ('name', 'event', 'leader', 'status', 'member_count', 'max_size', 'invite_code')
    list_filter = ('status',)
    search_fields = ('name', 'invite_code', 'leader__username', 'event__title')
    readonly_fields = ('invite_code', 'member_count', 'version', 'completed_at', 'cancelled_at')
    inlines = [TeamMemberInline]

@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ('ticket_id', 'registration', 'is_scanned', 'scanned_at', 'issued_at')
    list_filter = ('is_scanned',)
    search_fields = ('ticket_id', 'registration__participant__username')
    readonly_fields = ('ticket_id', 'qr_code', 'is_scanned', 'scanned_at')

@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('participant', 'event', 'method', 'scanned_at', 'scanned_by')
    list_filter = ('method', 'scanned_at')
    search_fields = ('participant__username', 'ticket__ticket_id', 'event__title')
