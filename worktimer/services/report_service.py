"""
Report Generation Service using Jinja2 templates.

Architecture Decision: Template Pattern
Allows users to customize reports without changing code. The same numbers
back the JSON stats endpoint, so the text report and the dashboard agree.
"""

import datetime
from collections import defaultdict
from pathlib import Path
from typing import List, Optional
from jinja2 import Environment, FileSystemLoader

from worktimer.domain.duration import format_duration, format_duration_human
from worktimer.domain.models import ApiModel, TimeEntry
from worktimer.infra.repository import TaskLookup, TaskRepository
from worktimer.services.aggregator import TaskTimeAggregator
from worktimer.utils import get_resource_path


class TaskBreakdown(ApiModel):
    task_id: str
    task_title: Optional[str] = None
    seconds: int
    sessions: int
    percentage: int


class DailyTotal(ApiModel):
    date: datetime.date
    seconds: int


class TimeStats(ApiModel):
    """Totals for one user over a period"""
    start_date: datetime.datetime
    end_date: datetime.datetime
    total_seconds: int
    paused_seconds: int
    session_count: int
    daily_average_seconds: int
    task_breakdown: List[TaskBreakdown]
    daily_totals: List[DailyTotal]


class ReportService:
    """
    Generates statistics and reports from time tracking data.
    """

    def __init__(self, aggregator: Optional[TaskTimeAggregator] = None,
                 tasks: Optional[TaskLookup] = None,
                 template_dir: Optional[Path] = None):
        """
        Initialize the report service.

        Args:
            template_dir: Directory containing Jinja2 templates
        """
        if template_dir is None:
            template_dir = get_resource_path("worktimer/resources/templates")

        self.tasks = tasks or TaskRepository()
        self.aggregator = aggregator or TaskTimeAggregator(tasks=self.tasks)
        self.template_dir = template_dir

        # Setup Jinja2 environment
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True
        )

        # Add custom filters
        self.env.filters['format_duration'] = format_duration
        self.env.filters['format_duration_human'] = format_duration_human
        self.env.filters['format_date'] = self._format_date

    @staticmethod
    def _format_date(dt: datetime.datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        """Format datetime object"""
        return dt.strftime(fmt)

    async def compute_stats(self, user_id: str,
                            start_date: datetime.datetime,
                            end_date: datetime.datetime) -> TimeStats:
        """
        Aggregate a user's entries that started within [start_date, end_date].

        Task breakdown is sorted by time spent, largest first; daily totals
        cover every day of the period, including empty ones.
        """
        entries = await self.aggregator.entries_for(
            user_id, start_date=start_date, end_date=end_date, limit=None
        )
        return await self._stats_from_entries(entries, start_date, end_date)

    async def _stats_from_entries(self, entries: List[TimeEntry],
                                  start_date: datetime.datetime,
                                  end_date: datetime.datetime) -> TimeStats:
        total_seconds = sum(e.active_seconds for e in entries)

        per_task = defaultdict(lambda: [0, 0])
        per_day = defaultdict(int)
        for entry in entries:
            per_task[entry.task_id][0] += entry.active_seconds
            per_task[entry.task_id][1] += 1
            per_day[entry.started_at.date()] += entry.active_seconds

        breakdown = []
        for task_id, (seconds, sessions) in per_task.items():
            task = await self.tasks.resolve_task(task_id)
            breakdown.append(TaskBreakdown(
                task_id=task_id,
                task_title=task.title if task else None,
                seconds=seconds,
                sessions=sessions,
                percentage=round(seconds / total_seconds * 100) if total_seconds else 0,
            ))
        breakdown.sort(key=lambda b: b.seconds, reverse=True)

        days = []
        day = start_date.date()
        while day <= end_date.date():
            days.append(DailyTotal(date=day, seconds=per_day.get(day, 0)))
            day += datetime.timedelta(days=1)

        return TimeStats(
            start_date=start_date,
            end_date=end_date,
            total_seconds=total_seconds,
            paused_seconds=sum(e.total_paused_seconds for e in entries),
            session_count=len(entries),
            daily_average_seconds=total_seconds // max(1, len(days)),
            task_breakdown=breakdown,
            daily_totals=days,
        )

    async def generate_report(self, user_id: str,
                              start_date: datetime.datetime,
                              end_date: datetime.datetime,
                              template_name: str = "time_report.txt",
                              output_file: Optional[Path] = None) -> str:
        """
        Generate a report for a date range.

        Args:
            template_name: Name of the template file (e.g., 'time_report.txt')
            start_date: Start of reporting period
            end_date: End of reporting period
            output_file: Optional file path to save the report

        Returns:
            The generated report as a string
        """
        entries = await self.aggregator.entries_for(
            user_id, start_date=start_date, end_date=end_date, limit=None
        )
        stats = await self._stats_from_entries(entries, start_date, end_date)

        titles = {b.task_id: b.task_title or b.task_id for b in stats.task_breakdown}
        context = {
            'user_id': user_id,
            'stats': stats,
            'entries': sorted(entries, key=lambda e: e.started_at),
            'titles': titles,
            'generated_at': datetime.datetime.now(),
        }

        # Render template
        template = self.env.get_template(template_name)
        report_content = template.render(**context)

        # Save to file if specified
        if output_file:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, 'w', encoding='utf-8') as f:
                f.write(report_content)

        return report_content

    def list_templates(self) -> List[str]:
        """List all available template files"""
        return [f.name for f in self.template_dir.glob("*.txt")] + \
               [f.name for f in self.template_dir.glob("*.md")]
