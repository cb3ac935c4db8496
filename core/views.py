"""
Core views for health checks and system status.
"""

from botocore.exceptions import BotoCoreError, ClientError
from django.core.cache import cache
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from core.infrastructure.dynamodb import get_table

SERVICE_NAME = "plg-website"


def _check_dynamodb() -> None:
    get_table().load()


def _check_cache() -> bool:
    cache.set("health_check", "ok", 10)
    return cache.get("health_check") == "ok"


@method_decorator(csrf_exempt, name="dispatch")
class HealthView(View):
    """Health check endpoint."""

    def get(self, _request):
        """Return service health status."""
        return JsonResponse({"status": "healthy", "service": SERVICE_NAME})


@method_decorator(csrf_exempt, name="dispatch")
class HealthDynamoDBView(View):
    """DynamoDB health check endpoint."""

    def get(self, _request):
        """Check the application table is reachable."""
        try:
            _check_dynamodb()
            return JsonResponse({"status": "healthy", "dynamodb": "connected"})
        except (BotoCoreError, ClientError) as e:
            return JsonResponse(
                {"status": "unhealthy", "dynamodb": "disconnected", "error": str(e)},
                status=503,
            )


@method_decorator(csrf_exempt, name="dispatch")
class HealthCacheView(View):
    """Cache health check endpoint."""

    def get(self, _request):
        """Check cache connectivity."""
        try:
            if _check_cache():
                return JsonResponse({"status": "healthy", "cache": "connected"})
            return JsonResponse(
                {"status": "unhealthy", "cache": "disconnected"},
                status=503,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            return JsonResponse(
                {"status": "unhealthy", "cache": "disconnected", "error": str(e)},
                status=503,
            )


@method_decorator(csrf_exempt, name="dispatch")
class ReadyView(View):
    """Readiness check endpoint."""

    def get(self, _request):
        """Check if service is ready to accept traffic."""
        checks = {
            "dynamodb": self._dynamodb_ok(),
            "cache": self._cache_ok(),
        }

        all_healthy = all(checks.values())
        status_code = 200 if all_healthy else 503

        return JsonResponse(
            {
                "status": "ready" if all_healthy else "not_ready",
                "checks": checks,
            },
            status=status_code,
        )

    def _dynamodb_ok(self) -> bool:
        try:
            _check_dynamodb()
            return True
        except (BotoCoreError, ClientError):
            return False

    def _cache_ok(self) -> bool:
        try:
            return _check_cache()
        except Exception:  # pylint: disable=broad-exception-caught
            return False
