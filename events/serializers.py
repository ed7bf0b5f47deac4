from rest_framework import serializers

from users.serializers import ParticipantSummarySerializer
from . import capacity
from .models import Event, Registration, Ticket, Attendance
from .services.attendance import is_ticket_used


# -----------------------------------------
# EVENT (read model)
# -----------------------------------------
class EventSummarySerializer(serializers.ModelSerializer):
    seats_left = serializers.SerializerMethodField()
    team_config = serializers.DictField(read_only=True)

    class Meta:
        model = Event
        fields = [
            "id",
            "title",
            "event_type",
            "status",
            "start_time",
            "end_time",
            "registration_deadline",
            "registration_limit",
            "registered_count",
            "seats_left",
            "team_config",
        ]

    def get_seats_left(self, obj):
        return capacity.remaining(obj)


# -----------------------------------------
# TICKET SERIALIZER
# -----------------------------------------
class TicketSerializer(serializers.ModelSerializer):
    class Meta:
        model = Ticket
        fields = ["ticket_id", "qr_code", "is_scanned", "scanned_at", "issued_at"]


# -----------------------------------------
# REGISTRATION SERIALIZER
# -----------------------------------------
class RegistrationSerializer(serializers.ModelSerializer):
    event = EventSummarySerializer(read_only=True)
    ticket = serializers.SerializerMethodField()

    class Meta:
        model = Registration
        fields = [
            "id",
            "event",
            "kind",
            "status",
            "team",
            "created_at",
            "closed_at",
            "ticket",
        ]

    def get_ticket(self, obj):
        ticket = getattr(obj, "ticket", None)
        if ticket is None:
            return None
        data = TicketSerializer(ticket).data
        # is_scanned is only a cache of the attendance row
        data["checked_in"] = is_ticket_used(ticket)
        return data


# -----------------------------------------
# ATTENDANCE SERIALIZER
# -----------------------------------------
class AttendanceSerializer(serializers.ModelSerializer):
    participant = ParticipantSummarySerializer(read_only=True)
    ticket_id = serializers.CharField(source="ticket.ticket_id", read_only=True)
    scanned_by = serializers.CharField(source="scanned_by.display_name", read_only=True)

    class Meta:
        model = Attendance
        fields = ["id", "participant", "ticket_id", "scanned_at", "method", "scanned_by", "remarks"]


# -----------------------------------------
# REQUEST BODIES
# -----------------------------------------
class RegistrationLimitSerializer(serializers.Serializer):
    registration_limit = serializers.IntegerField(min_value=1, allow_null=True)


class ScanSerializer(serializers.Serializer):
    qr_code = serializers.CharField(max_length=64, trim_whitespace=True)


class ManualAttendanceSerializer(serializers.Serializer):
    participant_email = serializers.EmailField()
    remarks = serializers.CharField(required=False, allow_blank=True, default="")
