from django.urls import path
from .views import (
    RegisterEventView,
    CancelRegistrationView,
    RejectRegistrationView,
    RegistrationLimitView,
    MyRegistrationsView,
    RegistrationQRImageView,
    CreateTeamView,
    ScanQRView,
    ManualAttendanceView,
    AttendanceListView,
    AttendanceExportView,
)

# Teams API is in urls_teams.py, mounted at /api/teams/

urlpatterns = [
    # Registrations
    path("<int:event_id>/register/", RegisterEventView.as_view(), name="event-register"),
    path("<int:event_id>/limit/", RegistrationLimitView.as_view(), name="event-limit"),
    path("registrations/<int:reg_id>/cancel/", CancelRegistrationView.as_view(), name="registration-cancel"),
    path("registrations/<int:reg_id>/reject/", RejectRegistrationView.as_view(), name="registration-reject"),
    path("registrations/<int:reg_id>/qr/", RegistrationQRImageView.as_view(), name="registration-qr-image"),
    path("me/registrations/", MyRegistrationsView.as_view(), name="my-registrations"),

    # Teams
    path("<int:event_id>/teams/", CreateTeamView.as_view(), name="event-team-create"),

    # Attendance
    path("<int:event_id>/attendance/", AttendanceListView.as_view(), name="event-attendance"),
    path("<int:event_id>/attendance/scan/", ScanQRView.as_view(), name="attendance-scan"),
    path("<int:event_id>/attendance/manual/", ManualAttendanceView.as_view(), name="attendance-manual"),
    path("<int:event_id>/attendance/export/", AttendanceExportView.as_view(), name="attendance-export"),
]
