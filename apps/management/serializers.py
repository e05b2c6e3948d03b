from rest_framework import serializers
from apps.users.serializers import UserSerializer, UserSummarySerializer
from .models import ManagementLog

class ManagementUserSerializer(UserSerializer):
    """Serializer for management user operations."""

    class Meta(UserSerializer.Meta):
        fields = [
            'id', 'username', 'email', 'name', 'role', 'rating', 'account_balance',
            'is_active', 'date_joined', 'last_login', 'rating_stats'
        ]
        read_only_fields = fields

class AdminStatsSerializer(serializers.Serializer):
    total_users = serializers.IntegerField()
    active_assignments = serializers.IntegerField()
    open_disputes = serializers.IntegerField()
    escrow_held = serializers.DecimalField(max_digits=14, decimal_places=2)

class ManagementLogSerializer(serializers.ModelSerializer):
    admin = UserSummarySerializer(read_only=True)

    class Meta:
        model = ManagementLog
        fields = ['id', 'admin', 'action', 'details', 'timestamp']
        read_only_fields = ['id', 'admin', 'timestamp']
