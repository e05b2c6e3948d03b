from decimal import Decimal
from rest_framework import serializers
from apps.payments.serializers import PaymentSerializer
from apps.users.serializers import UserSummarySerializer
from core.constants import ASSIGNMENT_STATUS_CHOICES
from .models import Assignment, Bid, Submission


class AttachmentSerializer(serializers.Serializer):
    url = serializers.CharField()
    name = serializers.CharField()
    type = serializers.CharField()


class TaskSerializer(serializers.ModelSerializer):
    poster = UserSummarySerializer(read_only=True)
    doer = UserSummarySerializer(read_only=True)
    attachments = AttachmentSerializer(source='normalized_attachments', many=True, read_only=True)
    bids_count = serializers.SerializerMethodField()
    user_has_bid = serializers.SerializerMethodField()
    messages_count = serializers.SerializerMethodField()
    submissions_count = serializers.SerializerMethodField()

    class Meta:
        model = Assignment
        fields = [
            'id', 'title', 'description', 'category', 'budget', 'deadline', 'status', 'poster', 'doer',
            'attachments', 'bids_count', 'user_has_bid', 'messages_count', 'submissions_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    # Counts are only present when the queryset was annotated
    def get_bids_count(self, obj):
        return getattr(obj, 'bids_count', None)

    def get_user_has_bid(self, obj):
        return getattr(obj, 'user_has_bid', None)

    def get_messages_count(self, obj):
        return getattr(obj, 'messages_count', None)

    def get_submissions_count(self, obj):
        return getattr(obj, 'submissions_count', None)


class TaskWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    budget = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    deadline = serializers.DateTimeField()
    attachments = serializers.JSONField(required=False, default=list)


class BidSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    task_id = serializers.IntegerField(source='assignment_id', read_only=True)

    class Meta:
        model = Bid
        fields = ['id', 'task_id', 'user', 'content', 'bid_amount', 'status', 'created_at', 'updated_at']
        read_only_fields = fields


class BidTaskSerializer(serializers.ModelSerializer):
    poster = UserSummarySerializer(read_only=True)

    class Meta:
        model = Assignment
        fields = ['id', 'title', 'description', 'category', 'budget', 'deadline', 'status', 'poster']
        read_only_fields = fields


class UserBidSerializer(BidSerializer):
    task = BidTaskSerializer(source='assignment', read_only=True)

    class Meta(BidSerializer.Meta):
        fields = BidSerializer.Meta.fields + ['task']
        read_only_fields = fields


class BidWriteSerializer(serializers.Serializer):
    content = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))


class BidUpdateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'), required=False)

    def validate(self, data):
        if 'content' not in data and 'amount' not in data:
            raise serializers.ValidationError("Provide content or amount to update.")
        return data


class SubmissionSerializer(serializers.ModelSerializer):
    task_id = serializers.IntegerField(source='assignment_id', read_only=True)
    attachments = AttachmentSerializer(source='normalized_attachments', many=True, read_only=True)

    class Meta:
        model = Submission
        fields = ['id', 'task_id', 'user', 'content', 'attachments', 'status', 'created_at', 'updated_at']
        read_only_fields = fields


class SubmissionWriteSerializer(serializers.Serializer):
    content = serializers.CharField()
    attachments = serializers.JSONField(required=False, default=list)


class TaskStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in ASSIGNMENT_STATUS_CHOICES])


class SubmissionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['approved', 'rejected'])


class TaskDetailSerializer(TaskSerializer):
    bids = serializers.SerializerMethodField()
    submissions = SubmissionSerializer(many=True, read_only=True)
    payment = serializers.SerializerMethodField()

    class Meta(TaskSerializer.Meta):
        fields = TaskSerializer.Meta.fields + ['bids', 'submissions', 'payment']
        read_only_fields = fields

    def get_bids(self, obj):
        request = self.context.get('request')
        bids = obj.bids.all()
        # Doers only see their own bid
        if request is not None and request.user.id != obj.poster_id:
            bids = [bid for bid in bids if bid.user_id == request.user.id]
        return BidSerializer(bids, many=True).data

    def get_payment(self, obj):
        payment = getattr(obj, 'payment', None)
        return PaymentSerializer(payment).data if payment is not None else None
