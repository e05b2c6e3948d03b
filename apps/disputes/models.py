from django.conf import settings
from django.db import models
from core.attachments import normalize_attachments
from core.constants import DISPUTE_STATUS_CHOICES


class Dispute(models.Model):
    assignment = models.ForeignKey('tasks.Assignment', on_delete=models.CASCADE, related_name='disputes')
    payment = models.ForeignKey('payments.Payment', on_delete=models.CASCADE, related_name='disputes')
    initiator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='initiated_disputes')
    reason = models.TextField()
    evidence = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=DISPUTE_STATUS_CHOICES, default='OPEN')
    response = models.TextField(blank=True, null=True)
    response_evidence = models.JSONField(default=list, blank=True)
    has_response = models.BooleanField(default=False)
    resolution = models.TextField(blank=True, null=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_disputes'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Dispute #{self.id} - {self.assignment.title}"

    @property
    def is_open(self):
        return self.status == 'OPEN'

    def is_involved(self, user):
        """Initiator, poster or doer of the disputed assignment."""
        return user.id in (self.initiator_id, self.assignment.poster_id, self.assignment.doer_id)

    @property
    def normalized_evidence(self):
        return normalize_attachments(self.evidence)

    @property
    def normalized_response_evidence(self):
        return normalize_attachments(self.response_evidence)


class DisputeFollowup(models.Model):
    dispute = models.ForeignKey(Dispute, on_delete=models.CASCADE, related_name='followups')
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='dispute_followups')
    message = models.TextField()
    evidence = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"Follow-up by {self.sender.username} on dispute #{self.dispute_id}"

    @property
    def normalized_evidence(self):
        return normalize_attachments(self.evidence)
