from django.conf import settings
from django.db import models
from core.attachments import normalize_attachments
from core.constants import MESSAGE_KIND_CHOICES, SUPPORT_CHAT_STATUS_CHOICES


class Message(models.Model):
    assignment = models.ForeignKey('tasks.Assignment', on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_messages')
    receiver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_messages')
    content = models.TextField(blank=True)
    file_urls = models.TextField(blank=True, null=True)  # JSON list of {url, name, type}
    kind = models.CharField(max_length=10, choices=MESSAGE_KIND_CHOICES, default='USER')
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['assignment', 'created_at']),
            models.Index(fields=['receiver', 'is_read']),
        ]

    def __str__(self):
        return f"Message from {self.sender.username} to {self.receiver.username} on {self.assignment.title}"

    @property
    def attachments(self):
        return normalize_attachments(self.file_urls)


class SupportChatSession(models.Model):
    """A conversation between one user and the admin team."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='support_sessions')
    title = models.CharField(max_length=255, default='Support Chat')
    status = models.CharField(max_length=10, choices=SUPPORT_CHAT_STATUS_CHOICES, default='open')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']
        indexes = [models.Index(fields=['user', 'status'])]

    def __str__(self):
        return f"{self.title} ({self.status}) for {self.user.username}"

    def is_visible_to(self, user):
        return self.user_id == user.id or user.is_admin_role


class SupportMessage(models.Model):
    session = models.ForeignKey(SupportChatSession, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='support_messages')
    content = models.TextField(blank=True)
    file_urls = models.TextField(blank=True, null=True)  # JSON list of {url, name, type}
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        indexes = [models.Index(fields=['session', 'is_read'])]

    def __str__(self):
        return f"Support message from {self.sender.username} in session {self.session_id}"

    @property
    def attachments(self):
        return normalize_attachments(self.file_urls)
