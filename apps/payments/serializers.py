from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    task_id = serializers.IntegerField(source='assignment_id', read_only=True)
    task_title = serializers.CharField(source='assignment.title', read_only=True)
    task_status = serializers.CharField(source='assignment.status', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'task_id', 'task_title', 'task_status', 'payer', 'payee', 'amount', 'currency',
            'status', 'released_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class EarningsSummarySerializer(serializers.Serializer):
    total_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    pending_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    disputed_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    completed_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    account_balance = serializers.DecimalField(max_digits=12, decimal_places=2)


class EarningsSerializer(serializers.Serializer):
    summary = EarningsSummarySerializer()
    payments = PaymentSerializer(many=True)
