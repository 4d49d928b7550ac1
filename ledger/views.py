from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .repository import DjangoLedgerRepository
from .services import (
    analysis_payload,
    build_analysis,
    loyalty_breakdown_for,
    reality_check_for,
    reality_check_payload,
    to_payload,
    weekly_projection_for,
)


def _as_of_param(request) -> date:
    raw = request.query_params.get("as_of")
    if not raw:
        return timezone.now().date()
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationError({"as_of": "Use the YYYY-MM-DD format."})
    return value


def _hours_param(request) -> Optional[Decimal]:
    raw = request.query_params.get("hours")
    if not raw:
        return None
    try:
        hours = Decimal(raw)
    except InvalidOperation:
        raise ValidationError({"hours": "Hours must be a number."})
    if not hours.is_finite() or hours < 0 or hours > 168:
        raise ValidationError({"hours": "Hours must be between 0 and 168."})
    return hours


def _position_param(request) -> Optional[int]:
    raw = request.query_params.get("position")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError({"position": "Position must be an id."})


class EarningsAnalysisApiView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        as_of = _as_of_param(request)
        analysis = build_analysis(DjangoLedgerRepository(request.user), as_of)
        payload = analysis_payload(analysis)
        payload["asOf"] = as_of.isoformat()
        return Response(payload)


class WeeklyProjectionApiView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        position_id = _position_param(request)
        projection = weekly_projection_for(DjangoLedgerRepository(request.user), position_id)
        return Response({"position": position_id, "projection": to_payload(projection) if projection else None})


class RealityCheckApiView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        as_of = _as_of_param(request)
        hours = _hours_param(request)
        check = reality_check_for(DjangoLedgerRepository(request.user), as_of, hours)
        return Response(
            {
                "asOf": as_of.isoformat(),
                "realityCheck": reality_check_payload(check) if check else None,
            }
        )


class LoyaltyTaxApiView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        as_of = _as_of_param(request)
        payload = loyalty_breakdown_for(DjangoLedgerRepository(request.user), as_of)
        payload["asOf"] = as_of.isoformat()
        return Response(payload)
