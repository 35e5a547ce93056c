"""
JSON plumbing shared by ShiftGuard views.

JsonErrorMixin turns scheduling errors raised anywhere below a view into
JSON responses with the matching status code:

    ShiftValidationError            → 400 {"error": ..., "field": ...}
    AuthorizationError              → 403
    InvalidStateError, RevisionConflict → 409

Place it after the role mixin so authentication runs first:

    class PublishPeriodView(ManagerRequiredMixin, JsonErrorMixin, View):
        ...
"""

import datetime
import logging

from django.http import HttpRequest, JsonResponse
from django.utils.dateparse import parse_date

from apps.scheduling.exceptions import (
    AuthorizationError,
    InvalidStateError,
    RevisionConflict,
    ShiftValidationError,
)

logger = logging.getLogger(__name__)


def json_error(message: str, status: int, field: str = "") -> JsonResponse:
    return JsonResponse({"error": message, "field": field}, status=status)


class JsonErrorMixin:
    """Map scheduling exceptions onto JSON error responses."""

    def dispatch(self, request: HttpRequest, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except ShiftValidationError as exc:
            logger.info("Rejected %s %s: %s", request.method, request.path, exc.reason)
            return json_error(exc.reason, 400, exc.field)
        except AuthorizationError as exc:
            return json_error(str(exc), 403)
        except RevisionConflict as exc:
            logger.info("Stale revision on %s %s: %s", request.method, request.path, exc)
            return json_error(str(exc), 409, "expected_revision")
        except InvalidStateError as exc:
            return json_error(str(exc), 409)


# ---------------------------------------------------------------------------
# Parameter parsing (query string or form body)
# ---------------------------------------------------------------------------


def int_param(params, name: str, default=None):
    """
    Read an integer parameter.

    Raises:
        ShiftValidationError: Missing (with no default) or not a whole number.
    """
    value = params.get(name, "")
    if value in (None, ""):
        if default is None:
            raise ShiftValidationError(f"{name} is required.", field=name)
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ShiftValidationError(f"{name} must be a whole number.", field=name)


def date_param(params, name: str, default=None) -> datetime.date:
    """Read a YYYY-MM-DD parameter, raising ShiftValidationError when malformed."""
    value = params.get(name, "")
    if not value:
        if default is None:
            raise ShiftValidationError(f"{name} is required.", field=name)
        return default
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ShiftValidationError(f"'{value}' is not a valid date (YYYY-MM-DD).", field=name)
    return parsed


def bool_param(params, name: str) -> bool:
    return params.get(name, "").strip().lower() in ("1", "true", "on", "yes")
