"""Cron and in-process interval scheduling of task files."""

from .cron import CronScheduler
from .interval import IntervalRunner

__all__ = ["CronScheduler", "IntervalRunner"]
