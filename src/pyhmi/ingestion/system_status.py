"""System status ingestion.

Translates monitor reports into status-record edits. The function here is
applied inside :meth:`StatusStore.mutate` and must stay in-memory.
"""

from __future__ import annotations

from pyhmi._constants import COMPONENT_NOT_REPORTED
from pyhmi.models.messages import ComponentState, ComponentStatus, SystemStatus
from pyhmi.models.status import StatusRecord


def is_realtime(message: SystemStatus, *, now: float, lifetime_seconds: float, use_sim_time: bool) -> bool:
    if use_sim_time:
        return message.is_realtime_in_simulation
    return now - message.header.timestamp_sec < lifetime_seconds


def apply_system_status(
    record: StatusRecord,
    message: SystemStatus,
    *,
    now: float,
    lifetime_seconds: float,
    use_sim_time: bool = False,
) -> None:
    """Update module running flags and monitored component summaries.

    Module flags are only touched by realtime reports, a stale report
    cannot mark a module as running or stopped. Component summaries are
    always refreshed; components the monitor did not mention become
    ``UNKNOWN``.
    """
    if is_realtime(message, now=now, lifetime_seconds=lifetime_seconds, use_sim_time=use_sim_time):
        for name in record.modules:
            reported = message.hmi_modules.get(name)
            record.modules[name] = reported is not None and reported.status == ComponentState.OK

    for name in record.monitored_components:
        component = message.components.get(name)
        if component is not None:
            record.monitored_components[name] = component.summary.model_copy()
        else:
            record.monitored_components[name] = ComponentStatus(
                status=ComponentState.UNKNOWN,
                message=COMPONENT_NOT_REPORTED,
            )
