"""
RunEmailJobCommand.

Command to run one of the scheduled lifecycle email jobs.
"""

from dataclasses import dataclass


@dataclass
class RunEmailJobCommand:
    """Command to run a scheduled email job by name."""

    task_name: str
    dry_run: bool = False
