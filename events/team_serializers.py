# events/team_serializers.py

from rest_framework import serializers
from .models import Team, TeamMember


class TeamMemberSerializer(serializers.ModelSerializer):
    """Serializer for team members"""
    user_id = serializers.IntegerField(source='user.id', read_only=True)
    name = serializers.CharField(source='user.display_name', read_only=True)
    email = serializers.CharField(source='user.email', read_only=True)
    is_leader = serializers.SerializerMethodField()

    class Meta:
        model = TeamMember
        fields = ['user_id', 'name', 'email', 'is_leader', 'joined_at']

    def get_is_leader(self, obj):
        return obj.user_id == obj.team.leader_id


class TeamSerializer(serializers.ModelSerializer):
    """Team detail including the invite code; only ever shown to members."""
    members = TeamMemberSerializer(many=True, read_only=True)
    event_title = serializers.CharField(source='event.title', read_only=True)
    slots_left = serializers.IntegerField(read_only=True)
    current_size = serializers.IntegerField(source='member_count', read_only=True)
    is_leader = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = [
            'id', 'event', 'event_title', 'name', 'invite_code', 'max_size',
            'current_size', 'slots_left', 'status', 'is_leader', 'members',
            'created_at', 'completed_at', 'cancelled_at',
        ]

    def get_is_leader(self, obj):
        request = self.context.get('request')
        if request is None:
            return False
        return obj.leader_id == request.user.id


class CreateTeamSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=60)
    max_size = serializers.IntegerField()


class TeamJoinSerializer(serializers.Serializer):
    """Serializer for joining a team via invite code"""
    invite_code = serializers.CharField(max_length=16)
