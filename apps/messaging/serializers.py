from rest_framework import serializers
from apps.tasks.serializers import AttachmentSerializer
from apps.users.serializers import UserSummarySerializer
from .models import Message, SupportChatSession, SupportMessage


class MessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    task_id = serializers.IntegerField(source='assignment_id', read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'task_id', 'sender', 'receiver', 'content', 'attachments', 'is_read', 'created_at']
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    receiver_id = serializers.IntegerField()
    content = serializers.CharField(required=False, allow_blank=True, default='')
    attachment = serializers.JSONField(required=False, allow_null=True, default=None)
    file_name = serializers.CharField(required=False, allow_blank=True, default=None)
    file_type = serializers.CharField(required=False, allow_blank=True, default=None)

    def validate(self, data):
        if not (data.get('content') or '').strip() and not data.get('attachment'):
            raise serializers.ValidationError("Message content or an attachment is required")
        return data


class SupportMessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    sender_is_admin = serializers.BooleanField(source='sender.is_admin_role', read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = SupportMessage
        fields = ['id', 'session', 'sender', 'sender_is_admin', 'content', 'attachments', 'is_read', 'created_at']
        read_only_fields = fields


class SupportChatSessionSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    messages = SupportMessageSerializer(many=True, read_only=True)

    class Meta:
        model = SupportChatSession
        fields = ['id', 'user', 'title', 'status', 'messages', 'created_at', 'updated_at']
        read_only_fields = fields


class SupportChatSummarySerializer(serializers.ModelSerializer):
    """Inbox row for admins: the latest messages plus an unread badge."""
    user = UserSummarySerializer(read_only=True)
    recent_messages = serializers.SerializerMethodField()
    unread_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = SupportChatSession
        fields = ['id', 'user', 'title', 'status', 'recent_messages', 'unread_count', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_recent_messages(self, obj):
        recent = list(obj.messages.all())[-5:]
        return SupportMessageSerializer(list(reversed(recent)), many=True).data


class SupportMessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default='')
    attachments = serializers.JSONField(required=False, allow_null=True, default=None)

    def validate(self, data):
        if not (data.get('content') or '').strip() and not data.get('attachments'):
            raise serializers.ValidationError("Message content or an attachment is required")
        return data


class SupportReadSerializer(serializers.Serializer):
    message_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
