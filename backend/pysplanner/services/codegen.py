"""
Code generation for robot hubs.

A hub script is produced by fetching a template for the hub and
replacing its single ``{INSERT_PATH_PLANNER_DATA}`` placeholder with
the serialised plan.  Everything else in the template is left byte for
byte as fetched.

The hub is an explicit argument.  The plan passed in is never modified;
the serialised copy embedded in the script records the hub it was
generated for, and callers that own the plan decide whether to commit
that hub once generation has succeeded.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional, Protocol

import httpx

from ..config import PLACEHOLDER_TOKEN, TEMPLATE_TIMEOUT_S, TEMPLATE_URLS
from .errors import PlaceholderNotFound, TemplateUnavailable, ValidationError, ValidationErrorKind
from .plan_codec import encode_plan
from .plan_model import HubType, SplanContent

logger = logging.getLogger(__name__)


class TemplateSource(Protocol):
    """Anything that can supply template text asynchronously."""

    async def fetch_template(self) -> str:
        ...


class StaticTemplateSource:
    """Template source backed by an in-memory string."""

    def __init__(self, text: str) -> None:
        self._text = text

    async def fetch_template(self) -> str:
        return self._text


class HttpTemplateSource:
    """Fetch a template over HTTP(S).

    Args:
        url: Location of the raw template text.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        url: str,
        timeout: float = TEMPLATE_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch_template(self) -> str:
        logger.info("Fetching code template from %s", self.url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Template fetch from %s failed: %s", self.url, exc)
            raise TemplateUnavailable(f"could not fetch template from {self.url}: {exc}") from exc
        return response.text


def template_source_for_hub(hub: HubType) -> HttpTemplateSource:
    """Return the configured template source for ``hub``."""
    return HttpTemplateSource(TEMPLATE_URLS[HubType(hub).value])


def merge_template(template: str, payload: str, token: str = PLACEHOLDER_TOKEN) -> str:
    """Substitute ``payload`` for the single occurrence of ``token``.

    Raises:
        PlaceholderNotFound: If ``token`` occurs zero or several times.
    """
    occurrences = template.count(token)
    if occurrences != 1:
        raise PlaceholderNotFound(
            f"template must contain {token} exactly once, found {occurrences} occurrence(s)"
        )
    return template.replace(token, payload, 1)


def check_generation_preconditions(plan: Optional[SplanContent], hub: HubType) -> None:
    """Fail fast on plans that cannot be generated, before any fetch."""
    if plan is None:
        raise ValueError("a plan is required to generate code")
    if not plan.runs:
        raise ValidationError(ValidationErrorKind.NO_RUNS, f"plan {plan.name!r} has no runs to generate")
    if not plan.drive_base.supports_hub(hub):
        raise ValidationError(
            ValidationErrorKind.INVALID_DRIVE_BASE,
            f"{hub.value} hubs have no port {plan.drive_base.left_motor_port!r} "
            f"or {plan.drive_base.right_motor_port!r}",
        )


async def generate_script(plan: SplanContent, hub: HubType, source: TemplateSource) -> str:
    """Generate a hub script for ``plan``.

    Args:
        plan: Plan to embed; it must have at least one run.
        hub: Hub the script targets.
        source: Where to fetch the template from.

    Returns:
        The template text with the serialised plan substituted in.

    Raises:
        ValidationError: If the plan has no runs or its ports do not
            exist on ``hub``.  Raised before the template is fetched.
        TemplateUnavailable: If the template cannot be fetched.
        PlaceholderNotFound: If the template lacks a unique placeholder.
    """
    hub = HubType(hub)
    check_generation_preconditions(plan, hub)
    template = await source.fetch_template()
    generated = replace(plan, runs=list(plan.runs), hub_type=hub)
    script = merge_template(template, encode_plan(generated))
    logger.info("Generated %s script for plan %r (%d run(s))", hub.value, plan.name, len(plan.runs))
    return script


def file_stem(name: str) -> str:
    """Reduce a plan name to a safe lower-case file name stem."""
    return re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_").lower() or "plan"


def script_filename(plan: SplanContent, hub: HubType) -> str:
    """Return a download file name such as ``my_plan_spike.py``."""
    return f"{file_stem(plan.name)}_{HubType(hub).value.lower()}.py"
