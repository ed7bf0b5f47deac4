# events/emails.py
from django.core.mail import send_mail
from django.conf import settings


def _from_email():
    return getattr(settings, "DEFAULT_FROM_EMAIL", None)


def send_registration_email(registration):
    """
    Send a registration confirmation with the ticket id to the participant.
    """
    user = registration.participant
    event = registration.event

    if not getattr(user, "email", None):
        # No email set, nothing to send
        return False

    ticket = getattr(registration, "ticket", None)
    ticket_line = f"  Ticket: {ticket.ticket_id}\n" if ticket else ""

    subject = f"Registered for {event.title}"
    message = (
        f"Hi {user.display_name},\n\n"
        f"You have successfully registered for the event:\n"
        f"  {event.title}\n"
        f"  Starts: {event.start_time or 'TBA'}\n"
        f"{ticket_line}\n"
        f"Show the QR code of your ticket at the entrance.\n\n"
        f"Thank you,\n"
        f"Fest Events"
    )

    send_mail(
        subject=subject,
        message=message,
        from_email=_from_email(),
        recipient_list=[user.email],
        fail_silently=False,
    )
    return True


def send_team_complete_email(team):
    """
    Tell every member that the team is complete. Members whose own
    registration was kept instead of a team one are told so.
    Returns the number of emails handed to the backend.
    """
    event = team.event
    sent = 0
    ticketed = set(team.registrations.values_list("participant_id", flat=True))

    members = team.members.select_related("user")
    for member in members:
        user = member.user
        if not getattr(user, "email", None):
            continue

        if user.id in ticketed:
            ticket_line = (
                "Your team ticket has been issued; you can find it\n"
                "under My Registrations.\n\n"
            )
        else:
            ticket_line = (
                "You were already registered for this event, so your existing\n"
                "ticket stays valid and no team ticket was issued for you.\n\n"
            )

        message = (
            f"Hi {user.display_name},\n\n"
            f"Your team \"{team.name}\" for {event.title} is now complete.\n"
            f"{ticket_line}"
            f"Best,\n"
            f"Fest Events"
        )

        send_mail(
            subject=f"Team {team.name} is complete",
            message=message,
            from_email=_from_email(),
            recipient_list=[user.email],
            fail_silently=False,
        )
        sent += 1
    return sent
