from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions
from rest_framework.authtoken.models import Token
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import (
    RegisterSerializer, LoginSerializer, UserSerializer, ProfileUpdateSerializer,
    SwitchRoleSerializer, ReviewSerializer, ReviewCreateSerializer, ReviewUpdateSerializer
)
from . import services
from core.utils import envelope_response, validation_error_response
import logging

logger = logging.getLogger(__name__)

error_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'error': openapi.Schema(type=openapi.TYPE_STRING),
    }
)

class AuthRegisterView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        operation_description="Register a new poster or doer account.",
        request_body=RegisterSerializer,
        responses={201: UserSerializer, 400: error_schema}
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        user = serializer.save()
        token, created = Token.objects.get_or_create(user=user)
        return Response({"token": token.key, "user": UserSerializer(user).data}, status=status.HTTP_201_CREATED)

class AuthLoginView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        request_body=LoginSerializer,
        responses={
            200: openapi.Response(
                description='Login successful',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'token': openapi.Schema(type=openapi.TYPE_STRING),
                        'user': openapi.Schema(
                            type=openapi.TYPE_OBJECT,
                            properties={
                                'id': openapi.Schema(type=openapi.TYPE_INTEGER),
                                'username': openapi.Schema(type=openapi.TYPE_STRING),
                                'name': openapi.Schema(type=openapi.TYPE_STRING),
                                'role': openapi.Schema(type=openapi.TYPE_STRING),
                                'email': openapi.Schema(type=openapi.TYPE_STRING),
                            }
                        )
                    }
                )
            ),
            400: error_schema
        }
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        user = serializer.save()
        token, created = Token.objects.get_or_create(user=user)
        return Response({"token": token.key, "user": UserSerializer(user).data}, status=status.HTTP_200_OK)

class UserProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(operation_description="Get the authenticated user's profile.", responses={200: UserSerializer})
    def get(self, request):
        return Response({"success": True, "data": UserSerializer(request.user).data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(request_body=ProfileUpdateSerializer, responses={200: UserSerializer, 400: error_schema})
    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        user = serializer.save()
        logger.info(f"Profile updated for user {user.id}")
        return Response({"success": True, "data": UserSerializer(user).data}, status=status.HTTP_200_OK)

class SwitchRoleView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Switch the authenticated user between the POSTER and DOER roles.",
        request_body=SwitchRoleSerializer,
        responses={200: UserSerializer, 400: error_schema, 403: error_schema}
    )
    def post(self, request):
        serializer = SwitchRoleSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        result = services.switch_role(request.user, serializer.validated_data['role'])
        return envelope_response(result, UserSerializer)

class UserRatingStatsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get rating statistics for a user.",
        responses={
            200: openapi.Response(
                description='Rating statistics',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'average_rating': openapi.Schema(type=openapi.TYPE_NUMBER),
                        'total_ratings': openapi.Schema(type=openapi.TYPE_INTEGER),
                        'rating_breakdown': openapi.Schema(
                            type=openapi.TYPE_OBJECT,
                            properties={
                                '5_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '4_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '3_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '2_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                                '1_star': openapi.Schema(type=openapi.TYPE_NUMBER),
                            }
                        )
                    }
                )
            ),
            401: 'Unauthorized',
            404: 'Not Found'
        }
    )
    def get(self, request, user_id=None):
        # If no user_id provided, return stats for the authenticated user
        result = services.get_rating_stats(request.user, user_id or request.user.id)
        return envelope_response(result)

class UserReviewsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get all reviews received by a user.",
        responses={200: ReviewSerializer(many=True), 404: error_schema}
    )
    def get(self, request, user_id=None):
        result = services.get_user_reviews(request.user, user_id or request.user.id)
        return envelope_response(result, ReviewSerializer, many=True)

    @swagger_auto_schema(
        operation_description="Review the other party of a completed task.",
        request_body=ReviewCreateSerializer,
        responses={201: ReviewSerializer, 400: error_schema, 403: error_schema, 409: error_schema}
    )
    def post(self, request, user_id=None):
        serializer = ReviewCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.create_review(
            request.user, data['receiver_id'], data['task_id'], data['rating'], data['comment']
        )
        return envelope_response(result, ReviewSerializer, success_status=status.HTTP_201_CREATED)

class ReviewDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Edit your own review within 48 hours of posting.",
        request_body=ReviewUpdateSerializer,
        responses={200: ReviewSerializer, 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def patch(self, request, review_id):
        serializer = ReviewUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        result = services.edit_review(request.user, review_id, data['rating'], data['comment'])
        return envelope_response(result, ReviewSerializer)

    @swagger_auto_schema(
        operation_description="Delete your own review within 48 hours of posting.",
        responses={200: 'Deleted', 403: error_schema, 404: error_schema, 409: error_schema}
    )
    def delete(self, request, review_id):
        return envelope_response(services.delete_review(request.user, review_id))
