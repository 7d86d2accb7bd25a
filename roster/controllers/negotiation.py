# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller helper: answer page-driven actions with a redirect back to the
roster page, API clients with the JSON payload.
"""

from typing import Any

from fastapi import Request
from starlette.responses import RedirectResponse


def wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def respond(request: Request, payload: Any) -> Any:
    if wants_html(request):
        return RedirectResponse(url="/", status_code=303)
    return payload
