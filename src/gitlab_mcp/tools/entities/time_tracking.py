"""Issue time-estimate tools: ``browse_time_estimates`` and ``manage_time_estimate``.

Durations use GitLab's human format (``"1w 2d 4h 30m"``; 8h days, 5d weeks).
``add`` and bulk ``add`` read the current estimate first and post the new total.
"""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import Field

from gitlab_mcp.core.batch import batch_process, summarize_batch
from gitlab_mcp.core.durations import (
    DURATION_PATTERN,
    calculate_accuracy_percentage,
    calculate_variance_percentage,
    format_seconds_to_human_duration,
    get_time_tracking_status,
    parse_duration_to_seconds,
)
from gitlab_mcp.core.errors import GitLabAPIError
from gitlab_mcp.tools.dispatch import ActionCall, ResourceTool, Route
from gitlab_mcp.tools.entities.common import ActionInput, ProjectId

logger = logging.getLogger(__name__)

IssueIid = Annotated[str, Field(min_length=1, description="The internal ID of the issue")]
Duration = Annotated[
    str,
    Field(
        pattern=DURATION_PATTERN,
        description="Duration in GitLab format (mo, w, d, h, m), e.g. '2h', '1d 4h', '1w'",
    ),
]


def _issue_path(call: ActionCall, issue_iid: Any, suffix: str) -> str:
    return call.path(f"{{base}}/issues/{{issue_iid}}/{suffix}", issue_iid=issue_iid)


async def _post_estimate(call: ActionCall, issue_iid: Any, duration: str) -> Any:
    return await call.client.post(
        _issue_path(call, issue_iid, "time_estimate"), body={"duration": duration}
    )


async def _added_total(call: ActionCall, issue_iid: Any, duration: str) -> Dict[str, Any]:
    """Read the current estimate and compute the new total with ``duration`` added."""
    stats = await call.client.get(_issue_path(call, issue_iid, "time_stats")) or {}
    current = stats.get("time_estimate") or 0
    total = current + parse_duration_to_seconds(duration)
    return {"stats": stats, "total": format_seconds_to_human_duration(total)}


# ---------------------------------------------------------------------------
# browse_time_estimates
# ---------------------------------------------------------------------------


class GetTimeEstimate(ActionInput):
    """Get the time estimate of an issue."""

    action: Literal["get"]
    project_id: ProjectId
    issue_iid: IssueIid


class CompareTimeEstimate(ActionInput):
    """Compare estimated and spent time on an issue."""

    action: Literal["compare"]
    project_id: ProjectId
    issue_iid: IssueIid
    include_breakdown: Optional[bool] = Field(
        None, description="Include the individual time entries"
    )


async def _get_estimate(call: ActionCall) -> Dict[str, Any]:
    stats = await call.client.get(_issue_path(call, call.params["issue_iid"], "time_stats")) or {}
    return {
        "time_estimate": stats.get("time_estimate"),
        "human_time_estimate": stats.get("human_time_estimate"),
    }


async def _time_breakdown(call: ActionCall) -> Dict[str, Any]:
    try:
        entries = await call.client.get(
            _issue_path(call, call.params["issue_iid"], "resource_time_events")
        )
    except GitLabAPIError as exc:
        logger.warning("Time entry breakdown unavailable: %s", exc)
        return {}
    entries = entries or []
    return {
        "total_entries": len(entries),
        "entries": [
            {
                "duration": entry.get("duration"),
                "spent_at": entry.get("spent_at"),
                "user": (entry.get("user") or {}).get("name") or "Unknown",
                "note": entry.get("note"),
            }
            for entry in entries
        ],
    }


async def _compare_estimate(call: ActionCall) -> Dict[str, Any]:
    issue_iid = call.params["issue_iid"]
    stats = await call.client.get(_issue_path(call, issue_iid, "time_stats")) or {}
    estimated = stats.get("time_estimate") or 0
    actual = stats.get("total_time_spent") or 0
    difference = actual - estimated

    comparison = {
        "issue_iid": issue_iid,
        "estimated_seconds": estimated,
        "actual_seconds": actual,
        "difference_seconds": difference,
        "estimated_human": stats.get("human_time_estimate"),
        "actual_human": stats.get("human_total_time_spent"),
        "difference_human": format_seconds_to_human_duration(abs(difference)),
        "status": get_time_tracking_status(estimated, actual),
        "accuracy_percentage": calculate_accuracy_percentage(estimated, actual),
        "variance_percentage": calculate_variance_percentage(estimated, actual),
    }
    if call.params.get("include_breakdown"):
        comparison["breakdown"] = await _time_breakdown(call)
    return comparison


BROWSE_TIME_ESTIMATES = ResourceTool(
    name="browse_time_estimates",
    description=(
        "Read issue time estimates. Actions: get (current estimate), compare (estimate "
        "versus time spent, with accuracy and optional per-entry breakdown)."
    ),
    models=[GetTimeEstimate, CompareTimeEstimate],
    scope="project",
    read_only=True,
    handlers={"get": _get_estimate, "compare": _compare_estimate},
)


# ---------------------------------------------------------------------------
# manage_time_estimate
# ---------------------------------------------------------------------------


class SetTimeEstimate(ActionInput):
    """Replace the time estimate of an issue."""

    action: Literal["set"]
    project_id: ProjectId
    issue_iid: IssueIid
    duration: Duration


class AddTimeEstimate(ActionInput):
    """Add to the current time estimate of an issue."""

    action: Literal["add"]
    project_id: ProjectId
    issue_iid: IssueIid
    duration: Duration


class ResetTimeEstimate(ActionInput):
    """Reset the time estimate of an issue to zero."""

    action: Literal["reset"]
    project_id: ProjectId
    issue_iid: IssueIid


class BulkTimeEstimate(ActionInput):
    """Set or add the same estimate on several issues."""

    action: Literal["bulk"]
    project_id: ProjectId
    issue_iids: List[int] = Field(min_length=1, description="Issue internal IDs")
    duration: Duration
    mode: Literal["set", "add"] = Field("set", description="Replace (set) or add to the estimate")


async def _set_estimate(call: ActionCall) -> Any:
    return await _post_estimate(call, call.params["issue_iid"], call.params["duration"])


async def _add_estimate(call: ActionCall) -> Dict[str, Any]:
    issue_iid = call.params["issue_iid"]
    duration = call.params["duration"]
    current = await _added_total(call, issue_iid, duration)
    result = await _post_estimate(call, issue_iid, current["total"]) or {}
    return {
        **result,
        "previous_estimate": current["stats"].get("human_time_estimate"),
        "added_estimate": duration,
        "new_total_estimate": result.get("human_time_estimate"),
    }


async def _bulk_estimate(call: ActionCall) -> Dict[str, Any]:
    duration = call.params["duration"]
    mode = call.params.get("mode", "set")
    issue_iids = list(dict.fromkeys(call.params["issue_iids"]))
    logger.info("Bulk %s time estimate %s on %d issues", mode, duration, len(issue_iids))

    async def process(issue_iid: int) -> Dict[str, Any]:
        final = duration
        if mode == "add":
            final = (await _added_total(call, issue_iid, duration))["total"]
        result = await _post_estimate(call, issue_iid, final) or {}
        return {
            "issue_iid": issue_iid,
            "status": "success",
            "new_estimate": result.get("human_time_estimate"),
            "action": mode,
        }

    results = await batch_process(issue_iids, process)
    return summarize_batch(results, mode, duration=duration)


MANAGE_TIME_ESTIMATE = ResourceTool(
    name="manage_time_estimate",
    description=(
        "Change issue time estimates. Actions: set (replace), add (increase the current "
        "estimate), reset (clear), bulk (set or add on many issues at once)."
    ),
    models=[SetTimeEstimate, AddTimeEstimate, ResetTimeEstimate, BulkTimeEstimate],
    scope="project",
    routes={"reset": Route("POST", "{base}/issues/{issue_iid}/reset_time_estimate")},
    handlers={"set": _set_estimate, "add": _add_estimate, "bulk": _bulk_estimate},
)

TOOLS = [BROWSE_TIME_ESTIMATES, MANAGE_TIME_ESTIMATE]
