import csv

from django.http import HttpResponse
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle

from events.serializers import AttendanceSerializer, ManualAttendanceSerializer, ScanSerializer
from events.services import attendance as recorder


def _scan_result(attendance):
    return {
        "participant": attendance.participant.display_name,
        "participant_email": attendance.participant.email,
        "ticket_id": attendance.ticket.ticket_id,
        "method": attendance.method,
        "scanned_at": attendance.scanned_at.isoformat(),
    }


class ScanQRView(APIView):
    """
    POST /api/events/<event_id>/attendance/scan/
    Body: {"qr_code": "<payload>"}

    A second scan of the same ticket answers 409 with the first scan's time.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "attendance-scan"

    def post(self, request, event_id):
        serializer = ScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attendance = recorder.scan(event_id, serializer.validated_data["qr_code"], request.user)
        return Response(_scan_result(attendance))


class ManualAttendanceView(APIView):
    """
    POST /api/events/<event_id>/attendance/manual/
    Body: {"participant_email": "...", "remarks": "phone died"}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, event_id):
        serializer = ManualAttendanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attendance = recorder.manual(
            event_id,
            serializer.validated_data["participant_email"],
            request.user,
            remarks=serializer.validated_data.get("remarks", ""),
        )
        return Response(_scan_result(attendance))


class AttendanceListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        summary = recorder.attendance_summary(event_id, request.user)
        event = summary["event"]
        return Response({
            "event": {"id": event.id, "title": event.title},
            "stats": summary["stats"],
            "records": AttendanceSerializer(summary["records"], many=True).data,
        })


class AttendanceExportView(APIView):
    """GET /api/events/<event_id>/attendance/export/ -> CSV download."""
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        event, rows = recorder.export_rows(event_id, request.user)

        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="attendance_event_{event.id}.csv"'

        writer = csv.writer(response)
        writer.writerows(rows)
        return response
