from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'display_name',
            'role',
            'phone',
            'institution',
            'date_joined',
        ]
        read_only_fields = ['id', 'role', 'date_joined']


class ParticipantSummarySerializer(serializers.ModelSerializer):
    """Compact participant payload used in attendance and team responses."""
    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email']
