from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import PaymentSerializer, EarningsSerializer
from . import services
from core.utils import IsPoster, envelope_response

error_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'error': openapi.Schema(type=openapi.TYPE_STRING),
    }
)

class PaymentReleaseView(APIView):
    permission_classes = [IsAuthenticated, IsPoster]

    @swagger_auto_schema(
        operation_description="Release the escrowed payment of a completed task to its doer.",
        responses={200: PaymentSerializer, 404: error_schema, 409: error_schema}
    )
    def post(self, request, task_id):
        return envelope_response(services.release_payment(request.user, task_id), PaymentSerializer)

class DoerEarningsView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Earnings summary and per-payment details for the authenticated doer.",
        responses={200: EarningsSerializer}
    )
    def get(self, request):
        return envelope_response(services.get_doer_earnings(request.user), EarningsSerializer)
