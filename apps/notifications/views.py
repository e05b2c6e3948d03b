from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import NotificationSerializer
from . import services
from core.utils import envelope_response

class NotificationListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List the authenticated user's notifications, newest first.",
        manual_parameters=[
            openapi.Parameter('unread', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN, description="Only unread")
        ],
        responses={200: NotificationSerializer(many=True)}
    )
    def get(self, request):
        unread_only = request.query_params.get('unread', '').lower() in ('1', 'true', 'yes')
        result = services.get_notifications(request.user, unread_only=unread_only)
        return envelope_response(result, NotificationSerializer, many=True)

class NotificationReadView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_description="Mark one notification as read.", responses={200: NotificationSerializer})
    def post(self, request, notification_id):
        return envelope_response(services.mark_notification_read(request.user, notification_id), NotificationSerializer)

class NotificationReadAllView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_description="Mark every notification as read.")
    def post(self, request):
        return envelope_response(services.mark_all_notifications_read(request.user))

class NotificationUnreadCountView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_description="Number of unread notifications.")
    def get(self, request):
        return envelope_response(services.get_unread_notification_count(request.user))
