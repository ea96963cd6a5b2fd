# ABOUTME: Structured logging with run IDs for the Weave GitOps add-on
# ABOUTME: Implements audit logging of lifecycle steps and observability patterns

"""
Structured logging with run IDs and audit trails.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

This module provides the observability features of the add-on:

1. STRUCTURED LOGGING: Logs in machine-readable format (JSON) with consistent
   fields, so a provisioning pipeline can search and alert on them.

2. RUN IDs: A short identifier attached to every log entry of one
   provisioning run. The add-on's hooks swallow their errors, so the log is
   often the ONLY place a failed install shows up; the run id lets you pull
   every line of the run that failed.

3. AUDIT LOGGING: One record per lifecycle step (deploy, post_deploy,
   credential resolution) with its outcome.

=============================================================================
WHY STRUCTURED LOGGING?
=============================================================================

Traditional logging:
    logger.error(f"Unable to deploy {chart} to {namespace}: {err}")
    # Output: "ERROR: Unable to deploy wego-core to wego-system: ..."

Structured logging:
    logger.error("chart_install_failed", chart="wego-core", namespace="wego-system")
    # Output: {"event": "chart_install_failed", "chart": "wego-core", ...}

The second form can be filtered with `jq 'select(.chart == "wego-core")'`
and shipped as-is to a log aggregator.

=============================================================================
CONTEXT VARIABLES (contextvars)
=============================================================================

The run id has to reach every log call without being passed through every
function. A ContextVar gives us exactly that, and unlike a module global it
stays correct if a host framework provisions several clusters from
different threads or tasks.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from weave_gitops_addon.utils.masking import mask_sensitive_data

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from pathlib import Path


# =============================================================================
# RUN ID MANAGEMENT
# =============================================================================

run_id: ContextVar[str] = ContextVar("run_id", default="")


def get_run_id() -> str:
    """
    Get current run ID or generate a new one.

    Code that runs before a run id was set (for example a host framework
    calling the hooks directly) still gets a stable id for the rest of the
    context, so its log lines remain correlatable.

    Returns:
        8-character run ID string.
    """
    rid = run_id.get()
    if not rid:
        rid = str(uuid.uuid4())[:8]
        run_id.set(rid)
    return rid


def set_run_id(rid: str) -> None:
    """
    Set run ID for current context.

    Called once at the start of a provisioning run. Passing an empty string
    makes the next get_run_id() call generate a fresh one.

    Args:
        rid: The run ID to set
    """
    run_id.set(rid)


def add_run_id(
    logger: structlog.types.WrappedLogger,  # noqa: ARG001 - Required by structlog Processor API
    method_name: str,  # noqa: ARG001 - Required by structlog Processor API
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """
    Add run ID to log events.

    This is a STRUCTLOG PROCESSOR: it receives the event dictionary of every
    log call, enriches it and hands it to the next processor in the chain.

    Args:
        logger: The structlog wrapped logger (unused but required by API)
        method_name: The logging method name (unused but required by API)
        event_dict: Dictionary containing log event data to enrich

    Returns:
        The event_dict with "run_id" field added.
    """
    event_dict["run_id"] = get_run_id()
    return event_dict


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """
    Configure structured logging.

    Call it ONCE at startup. Calling it again reconfigures logging.

    PROCESSOR PIPELINE:
    -------------------
    1. merge_contextvars: Adds any bound context variables
    2. add_log_level: Adds "level" field
    3. TimeStamper: Adds ISO-format timestamp
    4. add_run_id: Adds the provisioning run id
    5. Renderer: JSON (pipelines, aggregators) or colored console text

    Args:
        level: Logging level name ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        json_output: If True, output JSON. If False, output console text.

    Example:
        configure_logging(level="DEBUG")
        configure_logging(level="INFO", json_output=True)
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_run_id,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# =============================================================================
# AUDIT LOGGER
# =============================================================================


class AuditLogger:
    """
    Audit logger for recording lifecycle steps.

    WHAT WE LOG:
    ------------
    Every step records:
    - timestamp: When it happened (UTC ISO 8601)
    - run_id: Provisioning run identifier
    - action: Which step ("deploy", "post_deploy", "resolve_credentials")
    - target: What it acted on ("weave-gitops-core", a secret name, ...)
    - result: Outcome ("success", "skipped", "error")
    - details: Additional context, always passed through secret masking

    TWO OUTPUT MODES:
    -----------------
    1. FILE: Append JSON lines to a file
    2. STDOUT: Emit an "audit" event through structlog

    EXAMPLE AUDIT LOG ENTRIES:
    --------------------------
    {"timestamp": "2026-01-15T10:30:00+00:00", "run_id": "abc12345",
     "action": "deploy", "target": "weave-gitops-core", "result": "success"}

    {"timestamp": "2026-01-15T10:30:05+00:00", "run_id": "abc12345",
     "action": "post_deploy", "target": "weave-gitops-application",
     "result": "error", "details": {"kind": "missing_credentials", ...}}
    """

    def __init__(self, log_path: Path | None = None) -> None:
        """
        Initialize audit logger.

        Args:
            log_path: Path to audit log file, or None for structlog output.
                      The file is created if missing and always appended to.
        """
        self._log_path = log_path
        self._logger = structlog.get_logger("audit")

    def log(
        self,
        action: str,
        target: str,
        result: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Log an auditable step.

        All specialized methods delegate here.

        Args:
            action: Step name (e.g. "deploy")
            target: Release or secret the step acted on
            result: "success", "skipped" or "error"
            details: Additional context (optional, masked before writing)
        """
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "run_id": get_run_id(),
            "action": action,
            "target": target,
            "result": result,
        }

        if details:
            details = mask_sensitive_data(details)
            entry["details"] = details

        if self._log_path:
            with self._log_path.open("a") as f:
                f.write(json.dumps(entry) + "\n")
        else:
            self._logger.info(
                "audit",
                action=action,
                target=target,
                result=result,
                details=details,
            )

    def log_success(
        self,
        action: str,
        target: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Log a step that completed.

        Example:
            audit_logger.log_success("deploy", "weave-gitops-core", {"version": "0.0.5"})
        """
        self.log(action, target, "success", details)

    def log_skipped(self, action: str, target: str, reason: str) -> None:
        """
        Log a step that was intentionally not performed.

        Example:
            audit_logger.log_skipped("resolve_credentials", "-", "no secret name configured")
        """
        self.log(action, target, "skipped", {"reason": reason})

    def log_error(
        self,
        action: str,
        target: str,
        error: str,
        kind: str | None = None,
    ) -> None:
        """
        Log a step that failed.

        The hooks swallow their errors, so this entry is what operators see
        instead of a failed provisioning run.

        Args:
            action: The failed step (e.g. "post_deploy")
            target: What the step acted on
            error: Error description (masked before writing)
            kind: Error kind value, when the error is an AddOnError
        """
        details: dict[str, Any] = {"error": error}
        if kind:
            details["kind"] = kind
        self.log(action, target, "error", details)
