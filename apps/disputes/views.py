from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import (
    DisputeSerializer, DisputeDetailSerializer, DisputeFollowupSerializer,
    DisputeCreateSerializer, DisputeReplySerializer
)
from . import services
from core.utils import envelope_response, validation_error_response

error_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'error': openapi.Schema(type=openapi.TYPE_STRING),
    }
)

class DisputeListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List disputes the authenticated user initiated or is a party to.",
        responses={200: DisputeSerializer(many=True)}
    )
    def get(self, request):
        return envelope_response(services.get_user_disputes(request.user), DisputeSerializer, many=True)

    @swagger_auto_schema(
        operation_description="Raise a dispute on an assigned task. Freezes the task and its escrow.",
        request_body=DisputeCreateSerializer,
        responses={201: DisputeSerializer, 400: error_schema, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request):
        serializer = DisputeCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.create_dispute(request.user, data['task_id'], data['reason'], data['evidence'])
        return envelope_response(result, DisputeSerializer, success_status=status.HTTP_201_CREATED)

class DisputeDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get a dispute with its follow-up thread.",
        responses={200: DisputeDetailSerializer, 403: error_schema, 404: error_schema}
    )
    def get(self, request, dispute_id):
        return envelope_response(services.get_dispute_details(request.user, dispute_id), DisputeDetailSerializer)

class DisputeResponseView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Respond to an open dispute.",
        request_body=DisputeReplySerializer,
        responses={200: DisputeSerializer, 403: error_schema, 404: error_schema}
    )
    def post(self, request, dispute_id):
        serializer = DisputeReplySerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.submit_dispute_response(request.user, dispute_id, data['message'], data['evidence'])
        return envelope_response(result, DisputeSerializer)

class DisputeFollowupView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Append a follow-up message to a dispute thread.",
        request_body=DisputeReplySerializer,
        responses={201: DisputeFollowupSerializer, 403: error_schema, 404: error_schema}
    )
    def post(self, request, dispute_id):
        serializer = DisputeReplySerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.add_dispute_follow_up(request.user, dispute_id, data['message'], data['evidence'])
        return envelope_response(result, DisputeFollowupSerializer, success_status=status.HTTP_201_CREATED)

class TaskDisputeStatusView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Whether a task currently has an open dispute.",
        responses={200: openapi.Schema(type=openapi.TYPE_OBJECT, properties={
            'in_dispute': openapi.Schema(type=openapi.TYPE_BOOLEAN)
        })}
    )
    def get(self, request, task_id):
        return envelope_response(services.is_assignment_in_dispute(request.user, task_id))
