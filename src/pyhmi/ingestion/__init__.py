"""Ingestion helpers for inbound vehicle messages."""

from pyhmi.ingestion.chassis import ChassisObserver
from pyhmi.ingestion.system_status import apply_system_status

__all__ = ["ChassisObserver", "apply_system_status"]
