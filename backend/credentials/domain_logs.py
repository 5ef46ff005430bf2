from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone

__all__ = ['ActivityLog', 'ErrorLog']


class ActivityLog(models.Model):
    """Who called which administrative endpoint, and with what outcome.

    Written by RequestActivityMiddleware for mutating requests only.
    """
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    view_name = models.CharField(max_length=200, blank=True, null=True)
    path = models.CharField(max_length=1000, blank=True, null=True)
    method = models.CharField(max_length=10, blank=True, null=True)
    payload = models.JSONField(blank=True, null=True)
    status_code = models.IntegerField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'activity_log'
        ordering = ['-created_at']

    def __str__(self):
        who = self.user.username if self.user else 'Anonymous'
        return f"{who} {self.method or ''} {self.path or ''} -> {self.status_code} @ {self.created_at}"


class ErrorLog(models.Model):
    """Unhandled server exceptions, kept for operators."""
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    path = models.CharField(max_length=1000, blank=True, null=True)
    method = models.CharField(max_length=10, blank=True, null=True)
    message = models.TextField(blank=True, null=True)
    stack = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'error_log'
        ordering = ['-created_at']

    def __str__(self):
        who = self.user.username if self.user else 'Anonymous'
        return f"Error by {who} on {self.path or 'unknown'} @ {self.created_at}"
