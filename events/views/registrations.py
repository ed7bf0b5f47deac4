from django.http import HttpResponse
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from rest_framework import status

from events import policies
from events.exceptions import AuthorizationError, NotFoundError
from events.serializers import RegistrationSerializer, RegistrationLimitSerializer
from events.services import registrations as ledger
from events.services import tickets


class RegisterEventView(APIView):
    """
    POST /api/events/<event_id>/register/
    Creates the registration and its ticket.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, event_id):
        registration, ticket = ledger.register(event_id, request.user)
        return Response(
            {
                "registration_id": registration.id,
                "ticket_id": ticket.ticket_id,
            },
            status=status.HTTP_201_CREATED,
        )


class CancelRegistrationView(APIView):
    """
    POST /api/events/registrations/<reg_id>/cancel/
    Soft cancel (audit trail); the participant cannot register again.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, reg_id):
        registration = ledger.cancel(reg_id, request.user)
        return Response({"message": "Registration cancelled", "status": registration.status})


class RejectRegistrationView(APIView):
    """
    POST /api/events/registrations/<reg_id>/reject/
    Organizer only.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, reg_id):
        registration = ledger.reject(reg_id, request.user)
        return Response({"message": "Registration rejected", "status": registration.status})


class RegistrationLimitView(APIView):
    """
    PATCH /api/events/<event_id>/limit/
    Body: { "registration_limit": 200 }  (null lifts the limit)
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, event_id):
        serializer = RegistrationLimitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = ledger.raise_registration_limit(
            event_id,
            request.user,
            serializer.validated_data["registration_limit"],
        )
        return Response({
            "event_id": event.id,
            "registration_limit": event.registration_limit,
        })


class MyRegistrationsView(APIView):
    """
    GET /api/events/me/registrations/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        regs = ledger.registrations_for(request.user)
        data = RegistrationSerializer(regs, many=True).data
        return Response({"count": len(data), "registrations": data})


class RegistrationQRImageView(APIView):
    """
    GET /api/events/registrations/<reg_id>/qr/
    PNG of the ticket's scan payload, for the ticket holder only.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "ticket-qr"

    def get(self, request, reg_id):
        registration = ledger.get_registration(reg_id)
        if not policies.owns_registration(request.user, registration):
            raise AuthorizationError("Unauthorized", code="not_owner")

        ticket = getattr(registration, "ticket", None)
        if ticket is None:
            raise NotFoundError("No ticket found for this registration", code="ticket_not_found")

        response = HttpResponse(tickets.render_qr_png(ticket), content_type="image/png")
        response["Cache-Control"] = "no-store"
        return response
