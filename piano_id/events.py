"""Composer event model.

Events are produced by the Piano Composer experience service and delivered
to listeners (see listeners.py). Each Event wraps exactly one EventData
variant.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import PianoIdDecodeError

logger = logging.getLogger(__name__)


class EventData:
    """Base class of the event payload variants."""


@dataclass(frozen=True)
class ExperienceExecute(EventData):
    """An experience was executed for the current user."""

    user: dict[str, Any] | None = None


class MeterState(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Meter(EventData):
    """Metered paywall state."""

    meter_name: str
    state: MeterState
    views: int = 0
    views_left: int = 0
    max_views: int = 0
    total_views: int = 0
    incremented: bool = False


@dataclass(frozen=True)
class NonSite(EventData):
    """The experience ran outside of a site context."""


@dataclass(frozen=True)
class UserSegment(EventData):
    """Whether the user belongs to the experience's segment."""

    state: bool


@dataclass(frozen=True)
class ShowTemplate(EventData):
    """A template (offer, paywall, ...) should be shown."""

    template_id: str
    template_variant_id: str | None = None
    display_mode: str | None = None
    container_selector: str | None = None
    delay_by: dict[str, Any] | None = None
    show_close_button: bool = False
    url: str | None = None


@dataclass(frozen=True)
class ShowLogin(EventData):
    """The login screen should be shown."""

    user_provider: str


@dataclass(frozen=True)
class EventModuleParams:
    module_id: str
    module_name: str


@dataclass(frozen=True)
class Event:
    """A Composer event.

    Attributes:
        event_data: The event payload variant
        event_module_params: Module that produced the event
        event_execution_context: Raw execution context from the service
    """

    event_data: EventData
    event_module_params: EventModuleParams | None = None
    event_execution_context: dict[str, Any] = field(default_factory=dict)


def _parse_meter(params: dict[str, Any], state: MeterState) -> Meter:
    return Meter(
        meter_name=params.get("meterName", ""),
        state=state,
        views=params.get("views", 0),
        views_left=params.get("viewsLeft", 0),
        max_views=params.get("maxViews", 0),
        total_views=params.get("totalViews", 0),
        incremented=params.get("incremented", False),
    )


def _parse_show_template(params: dict[str, Any]) -> ShowTemplate:
    if "templateId" not in params:
        raise PianoIdDecodeError("showTemplate event is missing templateId")
    return ShowTemplate(
        template_id=params["templateId"],
        template_variant_id=params.get("templateVariantId"),
        display_mode=params.get("displayMode"),
        container_selector=params.get("containerSelector"),
        delay_by=params.get("delayBy"),
        show_close_button=params.get("showCloseButton", False),
        url=params.get("url"),
    )


def parse_event_data(event_type: str, params: dict[str, Any]) -> EventData:
    """Build the payload variant for a Composer ``eventType``.

    Raises:
        PianoIdDecodeError: If the event type is unknown
    """
    if event_type == "experienceExecute":
        return ExperienceExecute(user=params.get("user"))
    if event_type == "meterActive":
        return _parse_meter(params, MeterState.ACTIVE)
    if event_type == "meterExpired":
        return _parse_meter(params, MeterState.EXPIRED)
    if event_type == "nonSite":
        return NonSite()
    if event_type == "userSegmentTrue":
        return UserSegment(state=True)
    if event_type == "userSegmentFalse":
        return UserSegment(state=False)
    if event_type == "showTemplate":
        return _parse_show_template(params)
    if event_type == "showLogin":
        return ShowLogin(user_provider=params.get("userProvider", ""))
    logger.debug(f"Rejecting unknown Composer event type {event_type}")
    raise PianoIdDecodeError(f"Unknown event type '{event_type}'")


def parse_event(data: dict[str, Any]) -> Event:
    """Build an Event from the Composer JSON shape.

    Args:
        data: Object with ``eventType``, ``eventParams`` and optional
            ``eventModuleParams`` / ``eventExecutionContext``

    Raises:
        PianoIdDecodeError: If the object is not a known event
    """
    if not isinstance(data, dict):
        raise PianoIdDecodeError(f"Expected an event object, got {type(data).__name__}")

    event_type = data.get("eventType")
    if not isinstance(event_type, str):
        raise PianoIdDecodeError("Event is missing eventType")

    params = data.get("eventParams") or {}
    if not isinstance(params, dict):
        raise PianoIdDecodeError(f"eventParams of {event_type} must be an object")

    event_data = parse_event_data(event_type, params)

    module_params = None
    raw_module = data.get("eventModuleParams")
    if raw_module and not isinstance(raw_module, dict):
        raise PianoIdDecodeError(f"eventModuleParams of {event_type} must be an object")
    if raw_module:
        module_params = EventModuleParams(
            module_id=raw_module.get("moduleId", ""),
            module_name=raw_module.get("moduleName", ""),
        )

    context = data.get("eventExecutionContext") or {}
    if not isinstance(context, dict):
        raise PianoIdDecodeError(f"eventExecutionContext of {event_type} must be an object")

    return Event(
        event_data=event_data,
        event_module_params=module_params,
        event_execution_context=context,
    )
