"""Notification model.

In-app notification shown to a registered guest. Created by the event
handlers in apps.notifications.services (booking accepted, points earned,
tier upgraded). Each notification can be marked as read.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications'
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    event_type = models.CharField(max_length=64, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"
