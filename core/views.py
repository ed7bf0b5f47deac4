import time

from django.conf import settings
from django.db import connection
from django.db.utils import OperationalError
from rest_framework.views import APIView
from rest_framework.permissions import AllowAny
from rest_framework.response import Response


class HealthCheckView(APIView):
    """
    Liveness endpoint for uptime checks.
    - Round-trips a trivial query to the database
    - Reports env and latency
    """
    permission_classes = [AllowAny]
    authentication_classes = []  # public endpoint

    def get(self, request, *args, **kwargs):
        start = time.monotonic()

        db_ok = True
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except OperationalError:
            db_ok = False

        return Response(
            {
                "service": "fest-backend",
                "status": "ok" if db_ok else "degraded",
                "db": db_ok,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": int((time.monotonic() - start) * 1000),
            },
            status=200 if db_ok else 503,
        )
