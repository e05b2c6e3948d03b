from django.conf import settings
from django.db import models
from core.attachments import normalize_attachments
from core.constants import ASSIGNMENT_STATUS_CHOICES, BID_STATUS_CHOICES, SUBMISSION_STATUS_CHOICES


class Assignment(models.Model):
    poster = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='posted_assignments')
    doer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_assignments'
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=100)
    budget = models.DecimalField(max_digits=10, decimal_places=2)
    deadline = models.DateTimeField()
    status = models.CharField(max_length=20, choices=ASSIGNMENT_STATUS_CHOICES, default='OPEN')
    attachments = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} - {self.poster.username}"

    def is_party(self, user):
        return user.id in (self.poster_id, self.doer_id)

    def counterparty_id(self, user_id):
        return self.doer_id if user_id == self.poster_id else self.poster_id

    def has_open_dispute(self):
        return self.disputes.filter(status='OPEN').exists()

    def has_finalized_payment(self):
        payment = getattr(self, 'payment', None)
        return payment is not None and payment.is_finalized

    @property
    def normalized_attachments(self):
        return normalize_attachments(self.attachments)


class Bid(models.Model):
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='bids')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bids')
    content = models.TextField()
    bid_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=BID_STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'user'], name='unique_bid_per_user_assignment'),
        ]

    def __str__(self):
        return f"{self.user.username} bid {self.bid_amount} on {self.assignment.title}"


class Submission(models.Model):
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='submissions')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='submissions')
    content = models.TextField()
    attachments = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=SUBMISSION_STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Submission #{self.id} for {self.assignment.title}"

    @property
    def normalized_attachments(self):
        return normalize_attachments(self.attachments)
