"""Notification planning, dispatch and the notification worker."""
