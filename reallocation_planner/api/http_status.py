from typing import NoReturn

from fastapi import HTTPException, status

from reallocation_planner.core.models import PlanningPreconditionError

HTTP_422_UNPROCESSABLE = getattr(
    status,
    "HTTP_422_UNPROCESSABLE_CONTENT",
    status.HTTP_422_UNPROCESSABLE_ENTITY,
)


def raise_planning_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, PlanningPreconditionError):
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=str(exc)) from exc
    raise exc
