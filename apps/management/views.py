from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from apps.disputes.serializers import DisputeSerializer, DisputeResolveSerializer
from apps.disputes import services as dispute_services
from core.utils import IsAdminRole, envelope_response, validation_error_response
from .models import ManagementLog
from .serializers import ManagementUserSerializer, AdminStatsSerializer, ManagementLogSerializer
from . import services
import logging

logger = logging.getLogger(__name__)

class AdminStatsView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @swagger_auto_schema(
        operation_description="Marketplace totals for the admin dashboard.",
        responses={200: AdminStatsSerializer}
    )
    def get(self, request):
        return envelope_response(services.get_admin_dashboard_stats(request.user), AdminStatsSerializer)

class ManagementUserViewSet(viewsets.ViewSet):
    """
    Admin API for browsing and suspending users.
    Only accessible to admin accounts.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('role', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="POSTER, DOER or ADMIN")
        ],
        responses={200: ManagementUserSerializer(many=True)}
    )
    def list(self, request):
        """List all users with optional filtering by role."""
        result = services.list_users(request.user, request.query_params.get('role'))
        return envelope_response(result, ManagementUserSerializer, many=True)

    @action(detail=True, methods=['post'])
    def suspend(self, request, pk=None):
        return envelope_response(services.suspend_user(request.user, pk), ManagementUserSerializer)

    @action(detail=True, methods=['post'])
    def reactivate(self, request, pk=None):
        return envelope_response(services.reactivate_user(request.user, pk), ManagementUserSerializer)

class DisputeManagementViewSet(viewsets.ViewSet):
    """
    Admin API for the dispute queue and arbitration.
    Only accessible to admin accounts.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="Dispute status")
        ],
        responses={200: DisputeSerializer(many=True)}
    )
    def list(self, request):
        result = dispute_services.get_all_disputes(request.user, request.query_params.get('status'))
        return envelope_response(result, DisputeSerializer, many=True)

    @swagger_auto_schema(request_body=DisputeResolveSerializer, responses={200: DisputeSerializer})
    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        serializer = DisputeResolveSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = dispute_services.resolve_dispute(request.user, pk, data['resolution'], data['status'])
        return envelope_response(result, DisputeSerializer)

class ManagementLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Audit trail of admin actions."""
    queryset = ManagementLog.objects.select_related('admin')
    serializer_class = ManagementLogSerializer
    pagination_class = PageNumberPagination
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get_queryset(self):
        queryset = super().get_queryset()
        action_name = self.request.query_params.get('action')
        if action_name:
            queryset = queryset.filter(action=action_name)
        return queryset
