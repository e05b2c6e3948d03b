from rest_framework import serializers
from apps.tasks.serializers import AttachmentSerializer
from apps.users.serializers import UserSummarySerializer
from core.constants import RESOLUTION_OUTCOMES
from .models import Dispute, DisputeFollowup


class DisputeTaskSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    title = serializers.CharField()
    status = serializers.CharField()
    poster = UserSummarySerializer()
    doer = UserSummarySerializer(allow_null=True)


class DisputeFollowupSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    evidence = AttachmentSerializer(source='normalized_evidence', many=True, read_only=True)

    class Meta:
        model = DisputeFollowup
        fields = ['id', 'sender', 'message', 'evidence', 'created_at']
        read_only_fields = fields


class DisputeSerializer(serializers.ModelSerializer):
    task = DisputeTaskSerializer(source='assignment', read_only=True)
    initiator = UserSummarySerializer(read_only=True)
    resolved_by = UserSummarySerializer(read_only=True)
    payment_status = serializers.CharField(source='payment.status', read_only=True)
    amount = serializers.DecimalField(source='payment.amount', max_digits=10, decimal_places=2, read_only=True)
    evidence = AttachmentSerializer(source='normalized_evidence', many=True, read_only=True)
    response_evidence = AttachmentSerializer(source='normalized_response_evidence', many=True, read_only=True)
    is_initiator = serializers.SerializerMethodField()
    needs_response = serializers.SerializerMethodField()

    class Meta:
        model = Dispute
        fields = [
            'id', 'task', 'initiator', 'reason', 'evidence', 'status', 'response', 'response_evidence',
            'has_response', 'resolution', 'resolved_by', 'resolved_at', 'payment_status', 'amount',
            'is_initiator', 'needs_response', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_is_initiator(self, obj):
        return getattr(obj, 'is_initiator', None)

    def get_needs_response(self, obj):
        return getattr(obj, 'needs_response', None)


class DisputeDetailSerializer(DisputeSerializer):
    followups = DisputeFollowupSerializer(many=True, read_only=True)

    class Meta(DisputeSerializer.Meta):
        fields = DisputeSerializer.Meta.fields + ['followups']
        read_only_fields = fields


class DisputeCreateSerializer(serializers.Serializer):
    task_id = serializers.IntegerField()
    reason = serializers.CharField()
    evidence = serializers.JSONField(required=False, default=list)


class DisputeReplySerializer(serializers.Serializer):
    message = serializers.CharField()
    evidence = serializers.JSONField(required=False, default=list)


class DisputeResolveSerializer(serializers.Serializer):
    status = serializers.CharField()
    resolution = serializers.CharField()

    def validate_status(self, value):
        if value not in RESOLUTION_OUTCOMES:
            raise serializers.ValidationError("Invalid resolution status. Use RESOLVED_RELEASE or RESOLVED_REFUND.")
        return value
