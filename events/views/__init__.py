from .registrations import (
    RegisterEventView,
    CancelRegistrationView,
    RejectRegistrationView,
    RegistrationLimitView,
    MyRegistrationsView,
    RegistrationQRImageView,
)
from .teams import CreateTeamView, EventTeamViewSet
from .scan import ScanQRView, ManualAttendanceView, AttendanceListView, AttendanceExportView
