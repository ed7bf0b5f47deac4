# core/constants.py

# --- Activity Verbs (used as the first token of core log lines) ---

# Registration Ledger
ACTIVITY_REGISTRATION_CREATED = "registration.created"
ACTIVITY_REGISTRATION_CANCELLED = "registration.cancelled"
ACTIVITY_REGISTRATION_REJECTED = "registration.rejected"
ACTIVITY_LIMIT_RAISED = "event.limit_raised"

# Teams
ACTIVITY_TEAM_CREATED = "team.created"
ACTIVITY_TEAM_JOINED = "team.joined"
ACTIVITY_TEAM_LEFT = "team.left"
ACTIVITY_TEAM_COMPLETED = "team.completed"
ACTIVITY_TEAM_CANCELLED = "team.cancelled"

# Tickets / Attendance
ACTIVITY_TICKET_ISSUED = "ticket.issued"
ACTIVITY_ATTENDANCE_RECORDED = "attendance.recorded"
ACTIVITY_ATTENDANCE_DUPLICATE = "attendance.duplicate"
