# events/views/teams.py - Team Formation API Views

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from events.team_serializers import (
    CreateTeamSerializer,
    TeamJoinSerializer,
    TeamSerializer,
)
from events.services import teams as team_service


class CreateTeamView(APIView):
    """
    POST /api/events/<event_id>/teams/
    Body: {"name": "Byte Me", "max_size": 4}

    The caller becomes leader and first member.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, event_id):
        serializer = CreateTeamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = team_service.create_team(
            event_id,
            request.user,
            serializer.validated_data["name"],
            serializer.validated_data["max_size"],
        )
        return Response(
            {"team_id": team.id, "invite_code": team.invite_code},
            status=status.HTTP_201_CREATED,
        )


class EventTeamViewSet(viewsets.ViewSet):
    """
    Team membership for the current user.

    Members only ever see their own teams; the invite code is shared
    out of band by the leader.
    """
    permission_classes = [IsAuthenticated]
    throttle_scope = None
    lookup_value_regex = r'\d+'

    def retrieve(self, request, pk=None):
        team = team_service.team_detail(pk, request.user)
        return Response(TeamSerializer(team, context={'request': request}).data)

    def destroy(self, request, pk=None):
        """Leader cancels a forming team."""
        team = team_service.cancel(pk, request.user)
        return Response({"team_id": team.id, "status": team.status})

    @action(
        detail=False,
        methods=['post'],
        url_path='join',
        throttle_classes=[ScopedRateThrottle],
        throttle_scope='team-join',
    )
    def join(self, request):
        """
        POST /api/teams/join/
        Body: {"invite_code": "A1B2C3"}

        The join that fills the last seat completes the team and issues
        every member's ticket.
        """
        serializer = TeamJoinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = team_service.join_by_code(serializer.validated_data["invite_code"], request.user)
        return Response({"team_id": team.id, "status": team.status})

    @action(detail=False, methods=['get'], url_path='mine')
    def mine(self, request):
        teams = team_service.teams_for(request.user)
        data = TeamSerializer(teams, many=True, context={'request': request}).data
        return Response({"count": len(data), "teams": data})

    @action(detail=True, methods=['post'], url_path='leave')
    def leave(self, request, pk=None):
        team = team_service.leave(pk, request.user)
        return Response({"team_id": team.id, "status": team.status, "current_size": team.member_count})
