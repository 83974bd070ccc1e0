"""
Routes for generating hub scripts from a plan.

Generation fetches the hub's code template, embeds the serialised plan
and returns the resulting Python script as a download.  The plan's
``hubType`` is updated only when generation succeeds.
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from ..services.codegen import script_filename, template_source_for_hub
from .models import GenerateRequest
from .routes_plans import get_plan_session

router = APIRouter()


@router.post("/plans/{plan_id}/generate")
async def generate_code(plan_id: str, body: GenerateRequest) -> Response:
    """Generate a script for the requested hub.

    Returns:
        The generated script as ``text/x-python`` with a download
        file name derived from the plan name and hub.

    Plans without runs, or whose motor ports do not exist on the hub,
    are rejected with 422 before the template is fetched.  Template
    failures yield 502.
    """
    session = get_plan_session(plan_id)
    script = await session.generate(body.hub, template_source_for_hub(body.hub))
    filename = script_filename(session.plan, body.hub)
    return Response(
        content=script,
        media_type="text/x-python",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
