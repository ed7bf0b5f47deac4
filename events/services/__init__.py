"""
Registration core services.

Each module owns one aggregate and is the only place that mutates it:

- registrations: Registration rows and the event's confirmed count
- teams: Team / TeamMember rows
- tickets: Ticket rows
- attendance: Attendance rows (and the ticket scan cache)
"""
