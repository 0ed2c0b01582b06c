"""Parser for the agent's task-list response.

Grammar, one task per line::

    line     := [bullet] [estimate] description
    bullet   := "- " | "* "
    estimate := "[" number "h]" whitespace*
"""

import math
import re
from typing import List

from anchorman.models import TaskResult

MIN_HOURS = 0.5
MIN_LINE_LENGTH = 5

_ESTIMATE = re.compile(r"^\[(\d+\.?\d*)h\]\s*")
_BULLETS = ("- ", "* ")


def round_to_half_hour(hours: float) -> float:
    """Round to the nearest 0.5 h, never below 0.5 h."""
    if hours < MIN_HOURS:
        return MIN_HOURS
    return math.floor(hours * 2 + 0.5) / 2


def parse_task_line(line: str):
    """Parse one response line.

    Returns:
        TaskResult, or None if the line is not a task
    """
    line = line.strip()
    if not line:
        return None

    for bullet in _BULLETS:
        if line.startswith(bullet):
            line = line[len(bullet):]
            break

    if len(line) < MIN_LINE_LENGTH:
        return None

    hours = MIN_HOURS
    match = _ESTIMATE.match(line)
    if match:
        hours = round_to_half_hour(float(match.group(1)))
        line = line[match.end():]

    description = line.strip()
    if not description:
        return None
    return TaskResult(description=description, estimated_hours=hours)


def parse_task_lines(response: str) -> List[TaskResult]:
    """Parse a full agent response into task results, in order."""
    tasks = []
    for raw_line in response.splitlines():
        task = parse_task_line(raw_line)
        if task is not None:
            tasks.append(task)
    return tasks
