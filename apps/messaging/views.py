from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import (
    MessageSerializer, MessageCreateSerializer, SupportChatSessionSerializer, SupportChatSummarySerializer,
    SupportMessageCreateSerializer, SupportMessageSerializer, SupportReadSerializer,
)
from . import services
from core.utils import IsAdminRole, envelope_response, validation_error_response

error_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'error': openapi.Schema(type=openapi.TYPE_STRING),
    }
)

count_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={'count': openapi.Schema(type=openapi.TYPE_INTEGER)}
)

class TaskMessagesView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Chat history between the poster and doer of a task. Marks incoming messages read.",
        responses={200: MessageSerializer(many=True), 404: error_schema}
    )
    def get(self, request, task_id):
        return envelope_response(services.get_messages(request.user, task_id), MessageSerializer, many=True)

    @swagger_auto_schema(
        operation_description="Send a message to the other party of a task.",
        request_body=MessageCreateSerializer,
        responses={201: MessageSerializer, 400: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, task_id):
        serializer = MessageCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.send_message(
            request.user, task_id, data['receiver_id'], data['content'],
            attachment=data['attachment'], file_name=data['file_name'], file_type=data['file_type']
        )
        return envelope_response(result, MessageSerializer, success_status=status.HTTP_201_CREATED)

class UnreadMessageCountView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_description="Unread messages addressed to the authenticated user.", responses={200: count_schema})
    def get(self, request):
        return envelope_response(services.get_unread_message_count(request.user))

class TaskUnreadMessageCountView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_description="Unread messages on one task.", responses={200: count_schema})
    def get(self, request, task_id):
        return envelope_response(services.get_assignment_unread_count(request.user, task_id))

class SupportChatView(APIView):
    """The caller's own open support chat with the admin team."""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get the open support chat for the authenticated user, creating it if needed.",
        responses={200: SupportChatSessionSerializer}
    )
    def get(self, request):
        return envelope_response(services.get_user_support_chat(request.user), SupportChatSessionSerializer)

class SupportChatInboxView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @swagger_auto_schema(
        operation_description="All support chats, most recently active first, with unread counts for the admin.",
        responses={200: SupportChatSummarySerializer(many=True), 403: error_schema}
    )
    def get(self, request):
        return envelope_response(services.get_all_support_chats(request.user), SupportChatSummarySerializer, many=True)

class SupportChatDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="One support chat. Marks messages from the other side read.",
        responses={200: SupportChatSessionSerializer, 403: error_schema, 404: error_schema}
    )
    def get(self, request, session_id):
        return envelope_response(services.get_support_chat_by_id(request.user, session_id), SupportChatSessionSerializer)

class SupportChatMessageView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Post a message into a support chat as its owner or as an admin.",
        request_body=SupportMessageCreateSerializer,
        responses={201: SupportMessageSerializer, 400: error_schema, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, session_id):
        serializer = SupportMessageCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.send_support_message(request.user, session_id, data['content'], data['attachments'])
        return envelope_response(result, SupportMessageSerializer, success_status=status.HTTP_201_CREATED)

class SupportChatCloseView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Close a support chat.",
        responses={200: SupportChatSessionSerializer, 403: error_schema, 404: error_schema}
    )
    def post(self, request, session_id):
        return envelope_response(services.close_support_chat(request.user, session_id), SupportChatSessionSerializer)

class SupportMessagesReadView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Mark specific support messages as read.",
        request_body=SupportReadSerializer,
        responses={200: openapi.Schema(type=openapi.TYPE_OBJECT, properties={'updated': openapi.Schema(type=openapi.TYPE_INTEGER)})}
    )
    def post(self, request):
        serializer = SupportReadSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        return envelope_response(
            services.mark_support_messages_read(request.user, serializer.validated_data['message_ids'])
        )

class SupportUnreadCountView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_description="Unread support messages waiting for the authenticated user.", responses={200: count_schema})
    def get(self, request):
        return envelope_response(services.get_unread_support_message_count(request.user))
