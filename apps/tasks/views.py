from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import (
    TaskSerializer, TaskWriteSerializer, TaskDetailSerializer, BidSerializer, UserBidSerializer,
    BidWriteSerializer, BidUpdateSerializer, SubmissionSerializer, SubmissionWriteSerializer,
    TaskStatusSerializer, SubmissionStatusSerializer
)
from . import services
from core.utils import IsPoster, IsDoer, envelope_response, validation_error_response
import logging

logger = logging.getLogger(__name__)

error_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'error': openapi.Schema(type=openapi.TYPE_STRING),
    }
)

class TaskListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List the tasks posted by the authenticated poster with bid, message and submission counts.",
        responses={200: TaskSerializer(many=True)}
    )
    def get(self, request):
        return envelope_response(services.get_user_tasks(request.user), TaskSerializer, many=True)

    @swagger_auto_schema(
        operation_description="Create a task (poster only).",
        request_body=TaskWriteSerializer,
        responses={201: TaskSerializer, 400: error_schema, 403: error_schema}
    )
    def post(self, request):
        serializer = TaskWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        result = services.create_task(request.user, **serializer.validated_data)
        return envelope_response(result, TaskSerializer, success_status=status.HTTP_201_CREATED)

class AvailableTaskListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List open tasks the authenticated user did not post.",
        responses={200: TaskSerializer(many=True)}
    )
    def get(self, request):
        return envelope_response(services.get_available_tasks(request.user), TaskSerializer, many=True)

class TaskDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get a task with its bids, submissions and payment (poster or assigned doer).",
        responses={200: TaskDetailSerializer, 404: error_schema}
    )
    def get(self, request, task_id):
        result = services.get_task_details(request.user, task_id)
        return envelope_response(result, TaskDetailSerializer, context={'request': request})

    @swagger_auto_schema(
        operation_description="Update an open task that has no bids yet.",
        request_body=TaskWriteSerializer,
        responses={200: TaskSerializer, 400: error_schema, 404: error_schema, 409: error_schema}
    )
    def patch(self, request, task_id):
        serializer = TaskWriteSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        changes = {key: value for key, value in serializer.validated_data.items() if key in request.data}
        result = services.update_task(request.user, task_id, **changes)
        return envelope_response(result, TaskSerializer)

    @swagger_auto_schema(
        operation_description="Delete an open task.",
        responses={200: 'Deleted', 404: error_schema, 409: error_schema}
    )
    def delete(self, request, task_id):
        return envelope_response(services.delete_task(request.user, task_id))

class TaskStatusView(APIView):
    permission_classes = [IsAuthenticated, IsDoer]

    @swagger_auto_schema(
        operation_description="Move an assigned task along ASSIGNED -> IN_PROGRESS -> UNDER_REVIEW -> COMPLETED.",
        request_body=TaskStatusSerializer,
        responses={200: TaskSerializer, 404: error_schema, 409: error_schema}
    )
    def post(self, request, task_id):
        serializer = TaskStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        result = services.update_task_status(request.user, task_id, serializer.validated_data['status'])
        return envelope_response(result, TaskSerializer)

class TaskBidView(APIView):
    permission_classes = [IsAuthenticated, IsDoer]

    @swagger_auto_schema(
        operation_description="Place a bid on an open task.",
        request_body=BidWriteSerializer,
        responses={201: BidSerializer, 400: error_schema, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, task_id):
        serializer = BidWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.submit_bid(request.user, task_id, data['content'], data['amount'])
        return envelope_response(result, BidSerializer, success_status=status.HTTP_201_CREATED)

class UserBidListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List the authenticated doer's bids.",
        responses={200: UserBidSerializer(many=True)}
    )
    def get(self, request):
        return envelope_response(services.get_user_bids(request.user), UserBidSerializer, many=True)

class BidDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Update a pending bid you own.",
        request_body=BidUpdateSerializer,
        responses={200: BidSerializer, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def patch(self, request, bid_id):
        serializer = BidUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.update_bid(request.user, bid_id, content=data.get('content'), amount=data.get('amount'))
        return envelope_response(result, BidSerializer)

    @swagger_auto_schema(
        operation_description="Withdraw a pending bid you own.",
        responses={200: 'Withdrawn', 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def delete(self, request, bid_id):
        return envelope_response(services.withdraw_bid(request.user, bid_id))

class BidAcceptView(APIView):
    permission_classes = [IsAuthenticated, IsPoster]

    @swagger_auto_schema(
        operation_description="Accept a bid: assigns the doer, rejects every other bid and funds escrow.",
        responses={200: TaskSerializer, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, bid_id):
        return envelope_response(services.accept_bid(request.user, bid_id), TaskSerializer)

class BidRejectView(APIView):
    permission_classes = [IsAuthenticated, IsPoster]

    @swagger_auto_schema(
        operation_description="Reject a single pending bid.",
        responses={200: BidSerializer, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, bid_id):
        return envelope_response(services.reject_bid(request.user, bid_id), BidSerializer)

class TaskSubmissionView(APIView):
    permission_classes = [IsAuthenticated, IsDoer]

    @swagger_auto_schema(
        operation_description="Submit work for an assigned task.",
        request_body=SubmissionWriteSerializer,
        responses={201: SubmissionSerializer, 400: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, task_id):
        serializer = SubmissionWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.create_task_submission(request.user, task_id, data['content'], data['attachments'])
        return envelope_response(result, SubmissionSerializer, success_status=status.HTTP_201_CREATED)

class SubmissionReviewView(APIView):
    permission_classes = [IsAuthenticated, IsPoster]

    @swagger_auto_schema(
        operation_description="Approve or reject a pending submission.",
        request_body=SubmissionStatusSerializer,
        responses={200: SubmissionSerializer, 400: error_schema, 404: error_schema, 409: error_schema}
    )
    def post(self, request, submission_id):
        serializer = SubmissionStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        result = services.update_submission_status(request.user, submission_id, serializer.validated_data['status'])
        return envelope_response(result, SubmissionSerializer)
