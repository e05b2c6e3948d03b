from django.conf import settings
from django.db import models
from core.constants import PAYMENT_STATUS_CHOICES, FINALIZED_PAYMENT_STATUSES


class Payment(models.Model):
    """Escrow record funded when a bid is accepted."""
    assignment = models.OneToOneField('tasks.Assignment', on_delete=models.CASCADE, related_name='payment')
    payer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='payments_sent')
    payee = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='payments_received')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='NPR')
    status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='PENDING')
    released_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Payment of {self.amount} {self.currency} for {self.assignment.title} ({self.status})"

    @property
    def is_finalized(self):
        return self.status in FINALIZED_PAYMENT_STATUSES
