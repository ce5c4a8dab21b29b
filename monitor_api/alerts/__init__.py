"""Evaluación de umbrales, deduplicación y notificación de alertas."""

from .evaluator import evaluate_reading
from .notifier import LoggingNotifier, Notifier, RateLimitedNotifier, WebhookNotifier, build_notifier
from .store import AlertStore, parse_status

__all__ = [
    "evaluate_reading",
    "AlertStore",
    "parse_status",
    "Notifier",
    "LoggingNotifier",
    "RateLimitedNotifier",
    "WebhookNotifier",
    "build_notifier",
]
